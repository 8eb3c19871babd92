from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _project_root() -> Path:
    # glyde/browser/config.py -> project root is parents[2]
    return Path(__file__).resolve().parents[2]


def _get_local_chromium_path() -> str:
    """Get path to locally installed Chromium in vendor directory."""
    return str(_project_root() / "vendor" / "chromium" / "chrome")


DEFAULT_BINARY_CANDIDATES: list[str] = [
    _get_local_chromium_path(),
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    # Snap builds ignore --user-data-dir in some setups.
    "/snap/bin/chromium",
]

DEFAULT_SESSION_NAME = "default"


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name) or default)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name) or default)
    except ValueError:
        return default


def session_name_from_env() -> str:
    raw = os.environ.get("GLYDE_SESSION") or os.environ.get("SESSION_NAME") or ""
    return raw.strip() or DEFAULT_SESSION_NAME


@dataclass
class GlydeConfig:
    session_name: str
    data_dir: str
    manifest_path: str
    binary_path: str
    # 0 lets Chromium pick a free port per session.
    cdp_port: int = 0
    headless: bool = False
    window_size: str = "1280,800"
    extra_flags: list[str] = field(default_factory=list)
    start_url: str = "about:blank"
    eval_timeout: float = 60.0
    chat_timeout: float = 45.0
    launch_timeout: float = 15.0
    debug: bool = False

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("GLYDE_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            # A vendored binary without +x would fail with "Permission denied" at launch.
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        return "google-chrome"

    @classmethod
    def from_env(cls, session_name: str | None = None) -> GlydeConfig:
        data_dir = expand_path(os.environ.get("GLYDE_DATA_DIR") or str(_project_root() / "data"))
        manifest = expand_path(os.environ.get("GLYDE_MANIFEST") or str(_project_root() / "scripts.manifest.json"))
        flags_raw = os.environ.get("GLYDE_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        debug = os.environ.get("GLYDE_DEBUG") == "1" or bool(os.environ.get("DEBUG"))
        return cls(
            session_name=(session_name or "").strip() or session_name_from_env(),
            data_dir=data_dir,
            manifest_path=manifest,
            binary_path=cls.detect_binary(),
            cdp_port=_env_int("GLYDE_CDP_PORT", 0),
            headless=os.environ.get("GLYDE_HEADLESS", "0") == "1",
            window_size=os.environ.get("GLYDE_WINDOW_SIZE") or "1280,800",
            extra_flags=extra_flags,
            start_url=os.environ.get("GLYDE_START_URL") or "about:blank",
            eval_timeout=_env_float("GLYDE_EVAL_TIMEOUT", 60.0),
            chat_timeout=_env_float("GLYDE_CHAT_TIMEOUT", 45.0),
            launch_timeout=_env_float("GLYDE_LAUNCH_TIMEOUT", 15.0),
            debug=debug,
        )

    @property
    def scripts_root(self) -> Path:
        """Manifest entry paths are resolved relative to the manifest's directory."""
        return Path(self.manifest_path).parent
