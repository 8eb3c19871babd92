"""Command server package.

Keep this package import light: importing `glyde.browser.server.*` should not eagerly pull
the command registry (avoids circular imports with tools).
"""

from __future__ import annotations

from typing import Any

__all__ = ["CommandRegistry", "create_default_registry"]


def __getattr__(name: str) -> Any:  # pragma: no cover
    if name == "CommandRegistry":
        from .dispatch import CommandRegistry

        return CommandRegistry
    if name == "create_default_registry":
        from .registry import create_default_registry

        return create_default_registry
    raise AttributeError(name)
