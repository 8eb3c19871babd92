"""
Default command table.

Handlers here only adapt the loosely-typed wire `args` to the typed functions in `tools/`.
"""

from __future__ import annotations

from typing import Any

from ..tools import chat, label, page
from ..tools.base import CommandContext, raw_text_arg, selector_and_text, text_arg
from .dispatch import CommandRegistry


def _handle_eval(ctx: CommandContext, args: Any) -> Any:
    return page.evaluate_script(ctx, raw_text_arg(args, "script", "expression"))


def _handle_screenshot(ctx: CommandContext, args: Any) -> str:
    return page.take_screenshot(ctx, text_arg(args, "filename", "name"))


def _handle_click(ctx: CommandContext, args: Any) -> str:
    return page.click_element(ctx, text_arg(args, "selector"))


def _handle_type(ctx: CommandContext, args: Any) -> str:
    selector, text = selector_and_text(args)
    return page.type_text(ctx, selector, text)


def _handle_url(ctx: CommandContext, args: Any) -> str:  # noqa: ARG001
    return page.current_url(ctx)


def _handle_reload(ctx: CommandContext, args: Any) -> str:  # noqa: ARG001
    return page.reload_page(ctx)


def _handle_wait(ctx: CommandContext, args: Any) -> str:
    return page.wait(ctx, text_arg(args, "ms"))


def _handle_chat(ctx: CommandContext, args: Any) -> str:
    return chat.send_chat_message(ctx, raw_text_arg(args, "message"))


def _handle_label(ctx: CommandContext, args: Any) -> int:
    return label.add_labels(ctx, label.LabelOptions.from_args(args))


def create_default_registry() -> CommandRegistry:
    """Build the fixed dispatch table served on every session socket."""
    registry = CommandRegistry()

    def _handle_help(ctx: CommandContext, args: Any) -> str:  # noqa: ARG001
        return registry.help_text()

    registry.register("help", _handle_help, summary="Show this help message")
    registry.register("inject", _handle_eval, usage="inject <script>", summary="Inject and execute JavaScript in the page")
    registry.register("eval", _handle_eval, usage="eval <expression>", summary="Evaluate JavaScript expression and return result")
    registry.register("screenshot", _handle_screenshot, usage="screenshot [filename]", summary="Take a screenshot of the current page")
    registry.register("click", _handle_click, usage="click <selector>", summary="Click an element matching the selector")
    registry.register("type", _handle_type, usage="type <selector> <text>", summary="Type text into an element")
    registry.register("wait", _handle_wait, usage="wait <ms>", summary="Wait for specified milliseconds")
    registry.register("url", _handle_url, summary="Get current page URL")
    registry.register("reload", _handle_reload, summary="Reload the current page")
    registry.register("chat", _handle_chat, usage="chat <message>", summary="Send a message and get the response")
    registry.register(
        "label",
        _handle_label,
        usage="label <selector> [options]",
        summary="Add visual labels to matching elements (number, coords, color, size, nocleanup)",
    )
    return registry


__all__ = ["create_default_registry"]
