"""High-level CDP operations for a single page target."""

from __future__ import annotations

import base64
import json
from contextlib import suppress
from typing import TYPE_CHECKING, Any

from .http_client import HttpClientError

if TYPE_CHECKING:
    from .session_cdp import CdpConnection

# Fields accepted by Network.setCookies (CookieParam); read-only fields such as `size` are dropped.
_COOKIE_PARAM_FIELDS = (
    "name",
    "value",
    "url",
    "domain",
    "path",
    "secure",
    "httpOnly",
    "sameSite",
    "expires",
    "priority",
    "sameParty",
    "sourceScheme",
    "sourcePort",
    "partitionKey",
)


class ScriptError(Exception):
    """An exception raised by the evaluated script itself (inside the page)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def _exception_message(details: dict[str, Any]) -> str:
    """Extract the JS `error.message` equivalent from CDP exceptionDetails."""
    exc = details.get("exception")
    if isinstance(exc, dict):
        desc = exc.get("description")
        if isinstance(desc, str) and desc:
            first = desc.splitlines()[0]
            class_name = exc.get("className")
            if isinstance(class_name, str) and class_name:
                if first == class_name:
                    return ""
                if first.startswith(class_name + ": "):
                    return first[len(class_name) + 2 :]
            return first
        if "value" in exc:
            return str(exc.get("value"))
    text = details.get("text")
    return str(text) if text else "Script error"


def cookie_param(cookie: dict[str, Any]) -> dict[str, Any]:
    out = {k: cookie[k] for k in _COOKIE_PARAM_FIELDS if k in cookie}
    # Session cookies are reported with expires=-1; setting that would expire them immediately.
    if cookie.get("session") or (isinstance(out.get("expires"), (int, float)) and out["expires"] < 0):
        out.pop("expires", None)
    return out


class BrowserSession:
    """
    Browser session for one page target.

    Wraps CdpConnection with the operations the controller needs.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._page_enabled = False
        self._runtime_enabled = False

    def close(self):
        """Close the session connection."""
        self.conn.close()

    def enable_page(self) -> None:
        if not self._page_enabled:
            self.conn.send("Page.enable", {})
            self._page_enabled = True

    def enable_runtime(self) -> None:
        if not self._runtime_enabled:
            self.conn.send("Runtime.enable", {})
            self._runtime_enabled = True

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, wait_load: bool = True, timeout: float = 30.0) -> str:
        """Navigate to URL, optionally waiting for load."""
        self.enable_page()
        clear = getattr(self.conn, "clear_events", None)
        if clear is not None:
            clear("Page.loadEventFired")
        result = self.conn.send("Page.navigate", {"url": url})
        error_text = result.get("errorText") if isinstance(result, dict) else None
        if error_text:
            raise HttpClientError(f"Navigation to {url} failed: {error_text}")
        if wait_load:
            self.wait_load(timeout)
        self.tab_url = url
        return url

    def wait_load(self, timeout: float = 30.0) -> bool:
        """Wait for page load event."""
        return self.conn.wait_for_event("Page.loadEventFired", timeout) is not None

    def reload(self, ignore_cache: bool = False, timeout: float = 30.0) -> None:
        """Reload current page and wait for it to load."""
        self.enable_page()
        clear = getattr(self.conn, "clear_events", None)
        if clear is not None:
            clear("Page.loadEventFired")
        self.conn.send("Page.reload", {"ignoreCache": ignore_cache})
        self.wait_load(timeout)

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript in the page and return the result by value.

        Raises ScriptError when the script itself throws (or its promise rejects) and
        HttpClientError when the evaluation could not be performed at all.
        """
        self.enable_runtime()
        result = self.conn.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "returnByValue": True,
                "awaitPromise": True,
            },
            timeout=timeout,
        )

        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            raise ScriptError(_exception_message(details))

        if "result" not in result:
            return None
        value = result["result"]
        # CDP reports undefined as {"type": "undefined"} with no "value" field.
        if isinstance(value, dict) and value.get("type") == "undefined":
            return None
        if isinstance(value, dict) and value.get("type") == "object" and value.get("subtype") == "null":
            return None
        if isinstance(value, dict):
            return value.get("value", value.get("description"))
        return value

    def get_url(self) -> str:
        """Get current page URL."""
        return self.eval_js("window.location.href") or ""

    # ─────────────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────────────

    def click(self, x: float, y: float, button: str = "left", click_count: int = 1) -> None:
        """Click at viewport coordinates."""
        self.conn.send_many(
            [
                {
                    "method": "Input.dispatchMouseEvent",
                    "params": {"type": "mouseMoved", "x": x, "y": y, "button": "none", "clickCount": 0},
                },
                {
                    "method": "Input.dispatchMouseEvent",
                    "params": {"type": "mousePressed", "x": x, "y": y, "button": button, "clickCount": click_count},
                },
                {
                    "method": "Input.dispatchMouseEvent",
                    "params": {"type": "mouseReleased", "x": x, "y": y, "button": button, "clickCount": click_count},
                },
            ]
        )

    def type_text(self, text: str) -> None:
        """Insert text into the focused element."""
        if not text:
            return
        try:
            self.conn.send("Input.insertText", {"text": str(text)})
            return
        except HttpClientError:
            pass
        cmds = [{"method": "Input.dispatchKeyEvent", "params": {"type": "char", "text": c}} for c in str(text)]
        self.conn.send_many(cmds)

    # ─────────────────────────────────────────────────────────────────────────
    # Screenshots & storage
    # ─────────────────────────────────────────────────────────────────────────

    def screenshot(self, format: str = "png", *, full_page: bool = True) -> bytes:
        """Capture a screenshot and return the decoded image bytes."""
        params: dict[str, Any] = {"format": format, "fromSurface": True}
        if full_page:
            params["captureBeyondViewport"] = True
            with suppress(HttpClientError, ScriptError):
                size = self.eval_js(
                    "({w: Math.max(document.documentElement.scrollWidth, window.innerWidth),"
                    " h: Math.max(document.documentElement.scrollHeight, window.innerHeight)})"
                )
                if isinstance(size, dict) and size.get("w") and size.get("h"):
                    params["clip"] = {"x": 0, "y": 0, "width": size["w"], "height": size["h"], "scale": 1}
        result = self.conn.send("Page.captureScreenshot", params)
        data = result.get("data", "")
        if not data:
            raise HttpClientError("Screenshot data is empty")
        return base64.b64decode(data)

    def get_cookies(self) -> list[dict[str, Any]]:
        result = self.conn.send("Network.getAllCookies", {})
        cookies = result.get("cookies")
        return [c for c in cookies if isinstance(c, dict)] if isinstance(cookies, list) else []

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        params = [cookie_param(c) for c in cookies if c.get("name")]
        if params:
            self.conn.send("Network.setCookies", {"cookies": params})

    def local_storage_items(self) -> dict[str, str]:
        js = (
            "(() => {"
            "  const items = {};"
            "  for (let i = 0; i < localStorage.length; i++) {"
            "    const key = localStorage.key(i);"
            "    items[key] = localStorage.getItem(key);"
            "  }"
            "  return items;"
            "})()"
        )
        items = self.eval_js(js)
        return {str(k): str(v) for k, v in items.items()} if isinstance(items, dict) else {}

    def set_local_storage_items(self, items: dict[str, str]) -> None:
        if not items:
            return
        js = (
            "((items) => {"
            "  for (const [key, value] of Object.entries(items)) localStorage.setItem(key, value);"
            f"}})({json.dumps(items)})"
        )
        self.eval_js(js)


__all__ = ["BrowserSession", "ScriptError", "cookie_param"]
