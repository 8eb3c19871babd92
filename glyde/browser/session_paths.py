"""Session namespace: directories and the command socket derived from a session name."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

# sockaddr_un.sun_path is 104 bytes on macOS/BSD and 108 on Linux (including the NUL).
_MAX_SOCKET_PATH = 100

_SAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9_.-]+")


class SessionSetupError(RuntimeError):
    """The session namespace could not be prepared; the controller must not start."""


def _infer_xdg_runtime_dir(uid: int | None) -> Path | None:
    if uid is None or uid < 0:
        return None
    try:
        candidate = Path("/run") / "user" / str(uid)
        if candidate.exists() and candidate.is_dir() and os.access(candidate, os.W_OK | os.X_OK):
            return candidate
    except OSError:
        return None
    return None


def _runtime_root() -> Path:
    raw = os.environ.get("GLYDE_RUNTIME_DIR")
    if isinstance(raw, str) and raw.strip():
        return Path(raw.strip()).expanduser()

    xdg = os.environ.get("XDG_RUNTIME_DIR")
    if isinstance(xdg, str) and xdg.strip():
        return Path(xdg.strip()).expanduser() / "glyde"

    uid = None
    try:
        uid = os.getuid()
    except AttributeError:
        uid = None
    inferred = _infer_xdg_runtime_dir(uid)
    if inferred is not None:
        return inferred / "glyde"
    suffix = str(uid) if isinstance(uid, int) and uid >= 0 else "user"
    return Path("/tmp") / f"glyde-{suffix}"


def sanitize_session_name(raw: str, *, max_len: int = 48) -> str:
    s = str(raw or "").strip()
    if not s:
        return "default"
    s = _SAFE_NAME_RE.sub("-", s).strip("-.") or "default"
    return s[: max(8, int(max_len))]


def session_dir(data_dir: str | Path, session_name: str) -> Path:
    return Path(data_dir) / "sessions" / sanitize_session_name(session_name)


def session_socket_path(data_dir: str | Path, session_name: str) -> Path:
    """Deterministic socket address for a session.

    Prefers `<session_dir>/.browser.sock`. Deep data directories can exceed the AF_UNIX path
    limit, in which case the socket moves to the per-user runtime directory instead. Client and
    controller both call this function, so they always agree.
    """
    name = sanitize_session_name(session_name)
    preferred = session_dir(data_dir, name) / ".browser.sock"
    if len(os.fsencode(str(preferred))) <= _MAX_SOCKET_PATH:
        return preferred
    return _runtime_root() / f"glyde-{name}.sock"


@dataclass(frozen=True, slots=True)
class SessionDirs:
    root: Path
    logs: Path
    state: Path
    screenshots: Path
    browser_data: Path

    def all(self) -> tuple[Path, ...]:
        return (self.root, self.logs, self.state, self.screenshots, self.browser_data)


@dataclass(frozen=True, slots=True)
class SessionContext:
    name: str
    dirs: SessionDirs
    socket_path: Path

    @classmethod
    def describe(cls, data_dir: str | Path, session_name: str) -> SessionContext:
        """Derive paths without touching the filesystem."""
        name = sanitize_session_name(session_name)
        root = session_dir(data_dir, name)
        dirs = SessionDirs(
            root=root,
            logs=root / "logs",
            state=root / "state",
            screenshots=root / "screenshots",
            browser_data=root / ".browser-data",
        )
        return cls(name=name, dirs=dirs, socket_path=session_socket_path(data_dir, name))

    @classmethod
    def resolve(cls, data_dir: str | Path, session_name: str) -> SessionContext:
        """Prepare the session namespace for a controller run.

        Creates the session directories (idempotent) and removes any socket file left behind by
        a previous instance. Raises SessionSetupError if either step fails.
        """
        ctx = cls.describe(data_dir, session_name)
        try:
            for path in ctx.dirs.all():
                path.mkdir(parents=True, exist_ok=True)
            ctx.socket_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SessionSetupError(f"Cannot create session directories for {ctx.name!r}: {exc}") from exc
        ctx.remove_stale_socket()
        return ctx

    def remove_stale_socket(self) -> None:
        try:
            self.socket_path.unlink(missing_ok=True)
        except IsADirectoryError as exc:
            raise SessionSetupError(f"Socket path is a directory: {self.socket_path}") from exc
        except OSError as exc:
            raise SessionSetupError(f"Cannot remove stale socket {self.socket_path}: {exc}") from exc
