"""Command implementations run against the Capability Interface.

Each module holds one family of commands; handlers in `server.registry` adapt the wire `args`
to these typed functions.
"""

from __future__ import annotations

from .base import CommandContext, CommandError

__all__ = ["CommandContext", "CommandError"]
