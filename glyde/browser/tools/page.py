"""Page commands: evaluate, screenshot, click, type, url, reload, wait."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from ..browser_session import ScriptError
from .base import CommandContext, CommandError

logger = logging.getLogger("glyde.browser.tools.page")


def evaluate_script(ctx: CommandContext, script: str) -> Any:
    """Evaluate `script` in the page.

    Exceptions thrown by the script are returned as an "Error: <message>" string so authors
    can inspect them; evaluation-harness failures propagate to the caller. Blank script text
    evaluates to undefined, i.e. a null result, without touching the page.
    """
    if not script.strip():
        return None
    try:
        result = ctx.capability.evaluate(script, timeout=ctx.config.eval_timeout)
    except ScriptError as exc:
        logger.info("Script raised: %s", exc.message)
        return f"Error: {exc.message}"
    if result is not None:
        logger.info("Result: %s", result)
    return result


def _screenshot_name(filename: str) -> str:
    name = Path(filename).name if filename else ""
    if not name:
        name = f"screenshot-{datetime.now().strftime('%Y-%m-%d-%H-%M-%S')}.png"
    if not name.endswith(".png"):
        name += ".png"
    return name


def take_screenshot(ctx: CommandContext, filename: str = "") -> str:
    path = ctx.session.dirs.screenshots / _screenshot_name(filename)
    try:
        saved = ctx.capability.screenshot(path)
    except OSError as exc:
        raise CommandError("screenshot", f"Cannot write {path}: {exc}") from exc
    logger.info("Screenshot taken: %s", saved)
    return str(saved)


def click_element(ctx: CommandContext, selector: str) -> str:
    if not selector:
        raise CommandError("click", "Please provide a selector")
    ctx.capability.click(selector)
    logger.info("Clicked element: %s", selector)
    return f"Clicked element: {selector}"


def type_text(ctx: CommandContext, selector: str, text: str) -> str:
    if not selector or not text:
        raise CommandError("type", "Please provide both selector and text")
    ctx.capability.type(selector, text)
    logger.info("Typed text into: %s", selector)
    return f"Typed text into: {selector}"


def current_url(ctx: CommandContext) -> str:
    return ctx.capability.current_url()


def reload_page(ctx: CommandContext) -> str:
    ctx.capability.reload()
    logger.info("Page reloaded")
    return "Page reloaded"


def wait(ctx: CommandContext, ms: str) -> str:  # noqa: ARG001
    try:
        delay = int(str(ms).strip())
    except ValueError as exc:
        raise CommandError("wait", "Please provide a valid number of milliseconds") from exc
    time.sleep(max(0, delay) / 1000.0)
    return f"Waited {delay}ms"


__all__ = [
    "click_element",
    "current_url",
    "evaluate_script",
    "reload_page",
    "take_screenshot",
    "type_text",
    "wait",
]
