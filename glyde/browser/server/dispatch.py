"""
Command registry: the fixed dispatch table behind the session socket.

Dispatch never raises: unknown commands and handler failures come back as error responses.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..browser_session import ScriptError
from ..http_client import HttpClientError
from ..tools.base import CommandError
from .types import UNKNOWN_COMMAND, CommandResponse, CommandSpec, HandlerFunc

if TYPE_CHECKING:
    from ..tools.base import CommandContext

logger = logging.getLogger("glyde.browser.registry")


class CommandRegistry:
    """Registry of command handlers keyed by command name."""

    def __init__(self) -> None:
        self._specs: dict[str, CommandSpec] = {}

    def register(self, name: str, handler: HandlerFunc, *, usage: str = "", summary: str = "") -> None:
        """Register a command handler."""
        self._specs[name] = CommandSpec(name=name, handler=handler, usage=usage or name, summary=summary)

    def dispatch(self, ctx: CommandContext, name: str, args: Any) -> CommandResponse:
        """Run one command and convert its outcome into exactly one response."""
        spec = self._specs.get(name)
        if spec is None:
            logger.error("Unknown command: %s", name)
            return CommandResponse.fail(UNKNOWN_COMMAND)

        try:
            result = spec.handler(ctx, args)
        except CommandError as e:
            logger.info("command_error command=%s reason=%s", e.command, e.reason)
            return CommandResponse.fail(str(e))
        except ScriptError as e:
            # Only eval/inject turn page exceptions into results; elsewhere they are errors.
            logger.info("script_error command=%s message=%s", name, e.message)
            return CommandResponse.fail(e.message or "Script error")
        except HttpClientError as e:
            logger.error("browser_error command=%s error=%s", name, e)
            return CommandResponse.fail(str(e) or "Browser connection failed")
        except Exception as exc:  # noqa: BLE001
            logger.exception("command_failed command=%s", name)
            return CommandResponse.fail(str(exc) or type(exc).__name__)

        logger.debug("Command result: %r", result)
        return CommandResponse.ok(result)

    def help_text(self) -> str:
        width = max((len(s.usage) for s in self._specs.values()), default=0) + 4
        lines = ["Glyde - Available Commands:"]
        for spec in self._specs.values():
            lines.append(f"  {spec.usage.ljust(width)}{spec.summary}")
        return "\n".join(lines)

    @property
    def command_names(self) -> list[str]:
        return list(self._specs.keys())


__all__ = ["CommandRegistry"]
