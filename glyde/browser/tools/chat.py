"""Chat command: drives a page-installed `window.sendMessageAndReturnResponse`.

The entry point is registered by an injected page script (see the scripts manifest); this
module only checks for it and awaits its promise.
"""

from __future__ import annotations

import json
import logging

from ..browser_session import ScriptError
from .base import CommandContext, CommandError

logger = logging.getLogger("glyde.browser.tools.chat")

CHAT_ENTRY_POINT = "sendMessageAndReturnResponse"


def send_chat_message(ctx: CommandContext, message: str) -> str:
    if not message.strip():
        raise CommandError("chat", "Please provide a message")

    logger.debug("sendChatMessage called with: %s", message)
    available = ctx.capability.evaluate(f"typeof window.{CHAT_ENTRY_POINT} === 'function'")
    if available is not True:
        raise CommandError(
            "chat",
            f"{CHAT_ENTRY_POINT} not available - are you on the correct page?",
            "Navigate to a page whose manifest entry installs the chat script",
        )

    script = f"window.{CHAT_ENTRY_POINT}({json.dumps(message)})"
    try:
        response = ctx.capability.evaluate(script, timeout=ctx.config.chat_timeout)
    except ScriptError as exc:
        raise CommandError("chat", exc.message) from exc
    logger.debug("Got response: %s", response)
    return "" if response is None else str(response)


__all__ = ["CHAT_ENTRY_POINT", "send_chat_message"]
