from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .server.dispatch import CommandRegistry
from .server.registry import create_default_registry
from .server.types import INVALID_FORMAT, CommandRequest, CommandResponse, RequestFormatError
from .tools.base import CommandContext

logger = logging.getLogger("glyde.browser.server")

_MAX_REQUEST_BYTES = 8_000_000
_READ_CHUNK = 64 * 1024


class RequestTooLarge(Exception):
    pass


async def _read_request(reader: asyncio.StreamReader) -> bytes:
    """Read until the peer half-closes. One request per connection, no length prefix."""
    buf = bytearray()
    while True:
        chunk = await reader.read(_READ_CHUNK)
        if not chunk:
            return bytes(buf)
        buf.extend(chunk)
        if len(buf) > _MAX_REQUEST_BYTES:
            raise RequestTooLarge(f"request exceeds {_MAX_REQUEST_BYTES} bytes")


async def _write_response(writer: asyncio.StreamWriter, response: CommandResponse) -> None:
    writer.write(response.encode())
    await writer.drain()


class CommandServer:
    """Serves one session's command socket.

    - Each connection carries exactly one JSON request, terminated by the client's half-close,
      and receives exactly one JSON response before the server closes it.
    - Command execution is serialized: one lock (FIFO) guards the page, and it is held from
      dispatch until the response has been written. Page-load hooks take the same lock via
      `run_exclusive` / `submit_threadsafe`.
    - Handlers are synchronous (CDP over websocket-client) and run in a worker thread so the
      loop keeps accepting connections while a command is in flight.
    """

    def __init__(
        self,
        ctx: CommandContext,
        registry: CommandRegistry | None = None,
        *,
        socket_path: Path | None = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry or create_default_registry()
        self.socket_path = Path(socket_path or ctx.session.socket_path)
        self._lock = asyncio.Lock()
        self._server: asyncio.AbstractServer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        return self._loop

    def _remove_socket_file(self) -> None:
        with contextlib.suppress(FileNotFoundError):
            self.socket_path.unlink()

    async def start(self) -> None:
        """Bind the session socket. A leftover socket file is removed first; bind errors propagate."""
        if not hasattr(asyncio, "start_unix_server"):
            raise RuntimeError("Unix domain sockets are not available on this platform")
        self._loop = asyncio.get_running_loop()
        self._remove_socket_file()
        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        self._server = await asyncio.start_unix_server(self._handle_connection, path=str(self.socket_path))
        logger.info("Command server listening on socket: %s", self.socket_path)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        server = self._server
        self._server = None
        if server is not None:
            server.close()
            with contextlib.suppress(Exception):
                await server.wait_closed()
        self._remove_socket_file()

    async def run_exclusive(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a synchronous page operation under the session lock."""
        async with self._lock:
            return await asyncio.to_thread(fn, *args)

    def submit_threadsafe(self, fn: Callable[..., Any], *args: Any) -> concurrent.futures.Future:
        """Schedule `fn` under the session lock from a non-loop thread (event watchers)."""
        if self._loop is None:
            raise RuntimeError("CommandServer is not started")
        return asyncio.run_coroutine_threadsafe(self.run_exclusive(fn, *args), self._loop)

    async def execute(self, command: str, args: Any = None) -> CommandResponse:
        """Dispatch one command under the session lock (used by the console)."""
        async with self._lock:
            return await asyncio.to_thread(self.registry.dispatch, self.ctx, command, args)

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            try:
                raw = await _read_request(reader)
                request = CommandRequest.decode(raw)
            except (RequestFormatError, RequestTooLarge) as exc:
                logger.error("Invalid command format: %s", exc)
                await _write_response(writer, CommandResponse.fail(INVALID_FORMAT))
                return

            logger.debug("Received command: %s args=%r", request.command, request.args)
            async with self._lock:
                response = await asyncio.to_thread(self.registry.dispatch, self.ctx, request.command, request.args)
                await _write_response(writer, response)
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            logger.warning("Client connection dropped: %s", exc)
        finally:
            with contextlib.suppress(Exception):
                writer.close()
                await writer.wait_closed()


__all__ = ["CommandServer"]
