"""The Capability Interface: browser operations consumed by commands and page-load hooks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from .browser_session import BrowserSession
from .tools.base import CommandError


class Capability(Protocol):
    """Browser-driving operations for one page.

    `evaluate` raises `ScriptError` for exceptions thrown by the script itself and any other
    exception when the evaluation could not run.
    """

    def evaluate(self, script: str, *, timeout: float | None = None) -> Any: ...

    def click(self, selector: str) -> None: ...

    def type(self, selector: str, text: str) -> None: ...

    def screenshot(self, path: Path) -> Path: ...

    def current_url(self) -> str: ...

    def reload(self) -> None: ...

    def navigate(self, url: str) -> str: ...

    def get_cookies(self) -> list[dict[str, Any]]: ...

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None: ...

    def local_storage_items(self) -> dict[str, str]: ...

    def set_local_storage_items(self, items: dict[str, str]) -> None: ...


_LOCATE_JS = """(() => {
  let el;
  try { el = document.querySelector(%s); } catch (e) { return {ok: false, error: 'invalid selector: ' + e.message}; }
  if (!el) return {ok: false, error: 'not_found'};
  el.scrollIntoView({block: 'center', inline: 'center'});
  const r = el.getBoundingClientRect();
  if (r.width === 0 || r.height === 0) return {ok: false, error: 'not_visible'};
  return {ok: true, x: r.left + r.width / 2, y: r.top + r.height / 2};
})()"""

_FOCUS_JS = """(() => {
  let el;
  try { el = document.querySelector(%s); } catch (e) { return {ok: false, error: 'invalid selector: ' + e.message}; }
  if (!el) return {ok: false, error: 'not_found'};
  el.scrollIntoView({block: 'center', inline: 'center'});
  el.focus();
  return {ok: true};
})()"""


def _element_failure(command: str, selector: str, res: Any) -> CommandError:
    reason = res.get("error") if isinstance(res, dict) else None
    if reason == "not_found":
        return CommandError(command, f"No element matches selector {selector!r}", "Check the selector against the current page")
    if reason == "not_visible":
        return CommandError(command, f"Element {selector!r} has no visible box", "Scroll or wait until it is rendered")
    return CommandError(command, str(reason or f"Cannot locate {selector!r}"))


class PageCapability:
    """Capability implementation backed by a CDP BrowserSession."""

    def __init__(self, session: BrowserSession, *, default_timeout: float = 30.0) -> None:
        self.session = session
        self.default_timeout = default_timeout

    def evaluate(self, script: str, *, timeout: float | None = None) -> Any:
        return self.session.eval_js(script, timeout=timeout or self.default_timeout)

    def click(self, selector: str) -> None:
        res = self.session.eval_js(_LOCATE_JS % json.dumps(selector))
        if not isinstance(res, dict) or res.get("ok") is not True:
            raise _element_failure("click", selector, res)
        self.session.click(float(res["x"]), float(res["y"]))

    def type(self, selector: str, text: str) -> None:
        res = self.session.eval_js(_FOCUS_JS % json.dumps(selector))
        if not isinstance(res, dict) or res.get("ok") is not True:
            raise _element_failure("type", selector, res)
        self.session.type_text(text)

    def screenshot(self, path: Path) -> Path:
        data = self.session.screenshot("png", full_page=True)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def current_url(self) -> str:
        return self.session.get_url()

    def reload(self) -> None:
        self.session.reload()

    def navigate(self, url: str) -> str:
        return self.session.navigate(url)

    def get_cookies(self) -> list[dict[str, Any]]:
        return self.session.get_cookies()

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.session.set_cookies(cookies)

    def local_storage_items(self) -> dict[str, str]:
        return self.session.local_storage_items()

    def set_local_storage_items(self, items: dict[str, str]) -> None:
        self.session.set_local_storage_items(items)


__all__ = ["Capability", "PageCapability"]
