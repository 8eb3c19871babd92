"""Raw Chrome DevTools Protocol connection over websocket-client."""

from __future__ import annotations

import json
import socket
import time
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, (TimeoutError, websocket.WebSocketTimeoutException)):
        return True
    return "timed out" in str(exc).lower()


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, timeout: float = 5.0):
        self.ws = websocket.create_connection(ws_url, timeout=timeout)
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # Events that arrive while waiting for a command response are kept for later waits.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = 2000

    def _push_event(self, event: dict[str, Any]) -> None:
        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Pop the oldest queued event params for the given event name."""
        for i, ev in enumerate(self._event_queue):
            if ev.get("method") == event_name:
                self._event_queue.pop(i)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def take_events(self) -> list[dict[str, Any]]:
        """Remove and return every queued event."""
        events, self._event_queue = self._event_queue, []
        return events

    def clear_events(self, event_name: str) -> None:
        self._event_queue = [ev for ev in self._event_queue if ev.get("method") != event_name]

    def recv_message(self, timeout: float) -> dict[str, Any] | None:
        """Receive one decoded message, or None when nothing arrived within `timeout`."""
        try:
            self.ws.settimeout(timeout)
            raw = self.ws.recv()
        except Exception as exc:  # noqa: BLE001
            if _is_timeout(exc):
                return None
            raise HttpClientError(str(exc)) from exc
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        return data if isinstance(data, dict) else None

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send CDP command and wait for its response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise HttpClientError(str(exc)) from exc

        return self._recv_until(msg_id, self.timeout if timeout is None else float(timeout))

    def send_many(self, commands: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Send several CDP commands sequentially, stopping at the first failure."""
        out: list[dict[str, Any]] = []
        for cmd in commands:
            method = cmd.get("method")
            if not isinstance(method, str) or not method.strip():
                raise HttpClientError("send_many: each command must include a non-empty 'method'")
            params = cmd.get("params") if isinstance(cmd.get("params"), dict) else None
            out.append(self.send(method, params))
        return out

    def _recv_until(self, expected_id: int, timeout: float) -> dict[str, Any]:
        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError("CDP response timed out")

            data = self.recv_message(min(0.5, remaining))
            if data is None:
                continue

            if isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue

            if data.get("id") == expected_id:
                if "error" in data:
                    err = data["error"]
                    message = err.get("message") if isinstance(err, dict) else err
                    raise HttpClientError(str(message))
                result = data.get("result")
                return result if isinstance(result, dict) else {}

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Wait for a specific CDP event (queued events are consumed first)."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued

        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                return None
            data = self.recv_message(min(0.5, remaining))
            if data is None:
                continue
            if isinstance(data.get("method"), str) and "id" not in data:
                if data.get("method") == event_name:
                    params = data.get("params")
                    return params if isinstance(params, dict) else {}
                self._push_event(data)

    def abort(self) -> None:
        """Hard break of the underlying socket (never blocks on websocket-client locks)."""
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(OSError):
                sock.close()

    def close(self) -> None:
        self.abort()


__all__ = ["CdpConnection"]
