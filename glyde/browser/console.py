"""Interactive `browser> ` console for a running controller."""

from __future__ import annotations

import asyncio
import sys
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TextIO

from .command_client import format_result

if TYPE_CHECKING:
    from .command_server import CommandServer

PROMPT = "browser> "
_CLEAR_SCREEN = "\x1b[2J\x1b[H"


def parse_console_line(line: str) -> tuple[str, Any]:
    """Split `command rest-of-line`; the rest is passed verbatim as args (None if empty)."""
    command, _, rest = line.strip().partition(" ")
    rest = rest.strip()
    return command, (rest or None)


async def run_console(
    server: CommandServer,
    *,
    on_exit: Callable[[], None],
    stdin: TextIO | None = None,
    out: TextIO | None = None,
) -> None:
    """Read commands until `exit` or EOF, dispatching each through the server's serialized path."""
    stdin = stdin or sys.stdin
    out = out or sys.stdout
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    ready = threading.Event()

    def _read() -> None:
        while True:
            out.write(PROMPT)
            out.flush()
            line = stdin.readline()
            loop.call_soon_threadsafe(queue.put_nowait, line if line else None)
            if not line:
                return
            # Wait for the command to finish so the prompt follows its output.
            ready.wait()
            ready.clear()

    threading.Thread(target=_read, name="glyde-console", daemon=True).start()

    while True:
        line = await queue.get()
        if line is None:
            on_exit()
            return
        command, args = parse_console_line(line)
        if command == "exit":
            on_exit()
            return
        if command == "clear":
            out.write(_CLEAR_SCREEN)
        elif command:
            response = await server.execute(command, args)
            if response.is_error:
                out.write(f"Error: {response.error}\n")
            else:
                out.write(f"Response: {format_result(response.result)}\n")
        out.flush()
        ready.set()


__all__ = ["PROMPT", "parse_console_line", "run_console"]
