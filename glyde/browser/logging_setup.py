from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_HANDLER_MARK = "_glyde_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def configure_logging(logs_dir: Path | None = None, *, debug: bool = False, stream=None) -> logging.Logger:
    """Configure the `glyde` logger tree for a controller run.

    Console output goes to stderr (or `stream`). With `logs_dir`, every record is also written to
    `combined-YYYY-MM-DD.log` and ERROR records to `error-YYYY-MM-DD.log`. Calling this again
    replaces the handlers installed by a previous call.
    """
    root = logging.getLogger("glyde")
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(_mark(console))

    if logs_dir is not None:
        logs_dir = Path(logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        day = date.today().isoformat()
        file_formatter = logging.Formatter(FILE_FORMAT)

        combined = logging.FileHandler(logs_dir / f"combined-{day}.log", encoding="utf-8")
        combined.setFormatter(file_formatter)
        root.addHandler(_mark(combined))

        errors = logging.FileHandler(logs_dir / f"error-{day}.log", encoding="utf-8")
        errors.setLevel(logging.ERROR)
        errors.setFormatter(file_formatter)
        root.addHandler(_mark(errors))

    return root


__all__ = ["configure_logging"]
