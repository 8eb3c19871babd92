"""
Base utilities for command implementations.

Provides:
- CommandError: structured, descriptive handler failures
- CommandContext: what a handler may touch (capability, config, session namespace)
- Argument coercion helpers for the loosely-typed `args` field
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..capability import Capability
    from ..config import GlydeConfig
    from ..session_paths import SessionContext


@dataclass
class CommandError(Exception):
    """Structured handler failure, reported to the client as `{"error": str(exc)}`."""

    command: str
    reason: str
    suggestion: str = ""

    def __str__(self) -> str:
        msg = f"{self.command} failed: {self.reason}"
        if self.suggestion:
            msg += f" ({self.suggestion})"
        return msg


@dataclass
class CommandContext:
    """Everything a command handler is allowed to use."""

    capability: Capability
    config: GlydeConfig
    session: SessionContext


def text_arg(args: Any, *keys: str) -> str:
    """Coerce `args` to a single string (plain string, first list item, or a dict key)."""
    if args is None:
        return ""
    if isinstance(args, str):
        return args.strip()
    if isinstance(args, dict):
        for key in keys:
            value = args.get(key)
            if value is not None:
                return str(value).strip()
        return ""
    if isinstance(args, (list, tuple)):
        return " ".join(str(a) for a in args).strip()
    return str(args).strip()


def raw_text_arg(args: Any, *keys: str) -> str:
    """Like text_arg, but preserves whitespace (scripts and chat messages)."""
    if isinstance(args, str):
        return args
    if isinstance(args, dict):
        for key in keys:
            value = args.get(key)
            if value is not None:
                return str(value)
        return ""
    if isinstance(args, (list, tuple)):
        return " ".join(str(a) for a in args)
    return "" if args is None else str(args)


def selector_and_text(args: Any) -> tuple[str, str]:
    """Accept {"selector", "text"}, [selector, text...] or "selector text..."."""
    if isinstance(args, dict):
        return str(args.get("selector") or "").strip(), str(args.get("text") or "")
    if isinstance(args, (list, tuple)):
        if not args:
            return "", ""
        return str(args[0]).strip(), " ".join(str(a) for a in args[1:])
    raw = str(args or "").strip()
    selector, _, text = raw.partition(" ")
    return selector, text


__all__ = ["CommandContext", "CommandError", "raw_text_arg", "selector_and_text", "text_arg"]
