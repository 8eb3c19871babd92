"""Background CDP event reader for the controlled page.

Holds its own CDP connection so it never competes with the command connection for responses.
It fires registered load callbacks on `Page.loadEventFired` and mirrors page console output,
uncaught page errors and failed requests into the `glyde.page` logger.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from contextlib import suppress
from typing import Any

from .session_cdp import CdpConnection

logger = logging.getLogger("glyde.browser.events")
page_logger = logging.getLogger("glyde.page")

LoadCallback = Callable[[], None]

_CONSOLE_LEVELS = {
    "error": logging.ERROR,
    "assert": logging.ERROR,
    "warning": logging.WARNING,
    "debug": logging.DEBUG,
}


def _remote_object_text(obj: Any) -> str:
    if not isinstance(obj, dict):
        return str(obj)
    if "value" in obj:
        return str(obj["value"])
    if obj.get("unserializableValue"):
        return str(obj["unserializableValue"])
    if obj.get("description"):
        return str(obj["description"])
    return f"[{obj.get('type', 'unknown')}]"


class PageEventWatcher:
    """Watches one page target; reconnects with backoff until stopped."""

    def __init__(self, ws_url: str, *, name: str = "glyde-page-events") -> None:
        self.ws_url = ws_url
        self._callbacks: list[LoadCallback] = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._conn: CdpConnection | None = None
        self._request_urls: OrderedDict[str, str] = OrderedDict()
        self._max_tracked_requests = 500

    def on_load(self, callback: LoadCallback) -> None:
        self._callbacks.append(callback)

    def start(self) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        conn = self._conn
        if conn is not None:
            with suppress(Exception):
                conn.close()

    def handle_event(self, event: dict[str, Any]) -> None:
        method = event.get("method")
        params = event.get("params") if isinstance(event.get("params"), dict) else {}

        if method == "Page.loadEventFired":
            for callback in list(self._callbacks):
                try:
                    callback()
                except Exception:  # noqa: BLE001
                    logger.exception("Load callback failed")
        elif method == "Runtime.consoleAPICalled":
            kind = str(params.get("type") or "log")
            text = " ".join(_remote_object_text(a) for a in params.get("args") or [])
            page_logger.log(_CONSOLE_LEVELS.get(kind, logging.INFO), "Browser console [%s]: %s", kind, text)
        elif method == "Runtime.exceptionThrown":
            details = params.get("exceptionDetails") or {}
            exc = details.get("exception") if isinstance(details, dict) else None
            message = _remote_object_text(exc) if exc else str(details.get("text") or "unknown error")
            page_logger.error("Page error: %s", message)
        elif method == "Network.requestWillBeSent":
            request_id = str(params.get("requestId") or "")
            url = (params.get("request") or {}).get("url")
            if request_id and isinstance(url, str):
                self._request_urls[request_id] = url
                while len(self._request_urls) > self._max_tracked_requests:
                    self._request_urls.popitem(last=False)
        elif method == "Network.loadingFailed":
            request_id = str(params.get("requestId") or "")
            url = self._request_urls.pop(request_id, "")
            if params.get("canceled"):
                return
            page_logger.error("Request failed: %s %s", url[:100] or request_id, params.get("errorText") or "")

    def _run(self) -> None:
        backoff = 0.2
        while not self._stop.is_set():
            conn: CdpConnection | None = None
            try:
                conn = CdpConnection(self.ws_url, timeout=5.0)
                self._conn = conn
                conn.send_many(
                    [
                        {"method": "Page.enable", "params": {}},
                        {"method": "Runtime.enable", "params": {}},
                        {"method": "Network.enable", "params": {}},
                    ]
                )
                backoff = 0.2
                # Events that arrived while enabling domains were queued by the connection.
                for queued in conn.take_events():
                    self.handle_event(queued)

                while not self._stop.is_set():
                    data = conn.recv_message(0.5)
                    if data is None:
                        continue
                    if isinstance(data.get("method"), str) and "id" not in data:
                        self.handle_event(data)
            except Exception as exc:  # noqa: BLE001
                if not self._stop.is_set():
                    logger.warning("Page event connection lost: %s", exc)
            finally:
                if conn is not None:
                    with suppress(Exception):
                        conn.close()
                self._conn = None

            if self._stop.is_set():
                break
            time.sleep(backoff)
            backoff = min(backoff * 1.5, 2.0)


__all__ = ["PageEventWatcher"]
