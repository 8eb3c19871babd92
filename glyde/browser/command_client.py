"""One-shot client for a session's command socket."""

from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import Any

from .server.types import CommandRequest, CommandResponse


class CommandClientError(Exception):
    pass


class ControllerNotRunningError(CommandClientError):
    def __init__(self, socket_path: Path) -> None:
        super().__init__(f"Browser is not running (no socket at {socket_path}). Start it first with glyde-controller")
        self.socket_path = socket_path


class CommandFailedError(CommandClientError):
    """The controller answered with {"error": ...}."""


class ProtocolError(CommandClientError):
    """The controller's reply could not be parsed as exactly one response."""


def send_command(command: str, args: Any = None, *, socket_path: Path, timeout: float | None = None) -> Any:
    """Send one command and return its result.

    Opens a fresh connection, writes the request, half-closes the write side, then reads
    until the controller closes the connection. There is no protocol-level timeout; pass
    `timeout` to bound the socket operations locally.
    """
    path = Path(socket_path)
    if not path.exists():
        raise ControllerNotRunningError(path)

    payload = CommandRequest(command=command, args=args).encode()
    chunks: list[bytes] = []
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
        sock.settimeout(timeout)
        try:
            sock.connect(str(path))
        except (FileNotFoundError, ConnectionRefusedError) as exc:
            raise ControllerNotRunningError(path) from exc
        sock.sendall(payload)
        sock.shutdown(socket.SHUT_WR)
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)

    raw = b"".join(chunks)
    if not raw:
        raise ProtocolError("Controller closed the connection without a response")
    try:
        response = CommandResponse.decode(raw)
    except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as exc:
        raise ProtocolError(f"Malformed response from controller: {exc}") from exc
    if response.is_error:
        raise CommandFailedError(response.error or "Command failed")
    return response.result


def format_result(result: Any) -> str:
    """Render a command result for humans: strings as-is, everything else as indented JSON."""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False)


__all__ = [
    "CommandClientError",
    "CommandFailedError",
    "ControllerNotRunningError",
    "ProtocolError",
    "format_result",
    "send_command",
]
