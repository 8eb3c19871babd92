from __future__ import annotations

import contextlib
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .browser_session import BrowserSession
from .config import GlydeConfig
from .http_client import HttpClientError, http_get_json
from .session_cdp import CdpConnection


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str
    log_path: str | None = None
    log_tail: str | None = None


def _tail_text(path: Path, max_chars: int = 4000) -> str | None:
    try:
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return raw if len(raw) <= max_chars else raw[-max_chars:]


ACTIVE_PORT_FILE = "DevToolsActivePort"


def read_active_port(browser_data: Path) -> tuple[int, str] | None:
    """(port, browser ws path) that Chromium wrote into its profile, or None."""
    try:
        lines = (Path(browser_data) / ACTIVE_PORT_FILE).read_text(encoding="utf-8").splitlines()
    except OSError:
        return None
    if not lines or not lines[0].strip().isdigit():
        return None
    port = int(lines[0].strip())
    if port <= 0:
        return None
    return port, (lines[1].strip() if len(lines) > 1 else "")


class BrowserLauncher:
    """Starts (or reuses) the Chromium instance that owns one session's profile.

    The CDP port is never assumed: Chromium records the port it bound in
    `<browser_data>/DevToolsActivePort`, and the launcher only talks to an endpoint whose browser
    id matches that file. Two sessions therefore never share a browser, even on a fixed port.
    """

    def __init__(self, config: GlydeConfig, browser_data: Path) -> None:
        self.config = config
        self.browser_data = Path(browser_data)
        self.process: subprocess.Popen | None = None
        self.port: int | None = None

    @property
    def endpoint(self) -> str:
        if self.port is None:
            raise HttpClientError("Browser CDP port is not known yet")
        return f"http://127.0.0.1:{self.port}"

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if this session's CDP HTTP endpoint responds."""
        if self.port is None:
            return False
        try:
            http_get_json(f"{self.endpoint}/json/version", timeout=timeout)
        except HttpClientError:
            return False
        return True

    def _owned_port(self, timeout: float = 0.4) -> int | None:
        """Port of a live browser running this session's profile, or None."""
        active = read_active_port(self.browser_data)
        if active is None:
            return None
        port, ws_path = active
        try:
            version = http_get_json(f"http://127.0.0.1:{port}/json/version", timeout=timeout)
        except HttpClientError:
            return None
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        # A stale file can point at a port another browser has since taken.
        if not ws_url or (ws_path and not str(ws_url).endswith(ws_path)):
            return None
        return port

    def _port_available(self, port: int, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex(("127.0.0.1", port)) != 0
            except OSError:
                return False

    def _build_common_flags(self) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.cdp_port}",
            f"--user-data-dir={self.browser_data}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-infobars",
        ]

        # Portable builds under vendor/ run without the setuid sandbox helper.
        if "vendor/chromium" in self.config.binary_path:
            flags.append("--no-sandbox")

        if self.config.headless:
            flags.append("--headless=new")
        else:
            flags.append(f"--window-size={self.config.window_size}")
            if "--start-minimized" not in self.config.extra_flags:
                flags.append("--start-maximized")
        return flags

    def build_launch_command(self) -> list[str]:
        return [self.config.binary_path, *self._build_common_flags(), *self.config.extra_flags]

    def ensure_running(self, timeout: float | None = None) -> LaunchResult:
        """Launch Chromium for this profile unless the profile's own browser is already up."""
        owned = self._owned_port()
        if owned is not None and self.config.cdp_port in (0, owned):
            self.port = owned
            return LaunchResult([], False, f"Session browser already listening on CDP port {owned}")
        if self.config.cdp_port and not self._port_available(self.config.cdp_port):
            return LaunchResult([], False, f"Port {self.config.cdp_port} already in use")

        self.browser_data.mkdir(parents=True, exist_ok=True)
        with contextlib.suppress(FileNotFoundError):
            (self.browser_data / ACTIVE_PORT_FILE).unlink()
        cmd = self.build_launch_command()
        out_path = self.browser_data / "chrome-out.log"
        err_path = self.browser_data / "chrome-err.log"
        try:
            with open(out_path, "ab", buffering=0) as out_fh, open(err_path, "ab", buffering=0) as err_fh:
                self.process = subprocess.Popen(
                    cmd,
                    stdout=out_fh,
                    stderr=err_fh,
                    stdin=subprocess.DEVNULL,
                    start_new_session=True,
                )
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc), log_path=str(err_path), log_tail=_tail_text(err_path))

        deadline = time.time() + (self.config.launch_timeout if timeout is None else timeout)
        while time.time() < deadline:
            port = self._owned_port()
            if port is not None:
                self.port = port
                return LaunchResult(cmd, True, f"Browser launched on CDP port {port}", log_path=str(err_path))
            if self.process.poll() is not None:
                return LaunchResult(
                    cmd,
                    False,
                    f"Browser exited with code {self.process.returncode}",
                    log_path=str(err_path),
                    log_tail=_tail_text(err_path),
                )
            time.sleep(0.1)
        return LaunchResult(cmd, False, "Browser launch timed out", log_path=str(err_path), log_tail=_tail_text(err_path))

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Best-effort stop of the launcher-owned browser process."""
        proc = self.process
        if proc is None:
            return False
        if proc.poll() is not None:
            return True

        with contextlib.suppress(OSError):
            proc.terminate()
        try:
            proc.wait(timeout=max(0.1, float(timeout)))
        except subprocess.TimeoutExpired:
            with contextlib.suppress(OSError):
                proc.kill()
        return True

    def _browser_ws(self) -> str:
        version = http_get_json(f"{self.endpoint}/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise HttpClientError("CDP browser WebSocket URL not found")
        return ws_url

    def _create_tab(self, url: str) -> str:
        conn = CdpConnection(self._browser_ws(), timeout=5.0)
        try:
            result = conn.send("Target.createTarget", {"url": url})
        finally:
            conn.close()
        tab_id = result.get("targetId")
        if not tab_id:
            raise HttpClientError("Failed to create browser tab")
        return tab_id

    def _tab_ws_url(self, tab_id: str, timeout: float = 5.0) -> str:
        deadline = time.time() + timeout
        while time.time() < deadline:
            targets = http_get_json(f"{self.endpoint}/json/list") or []
            for target in targets:
                if isinstance(target, dict) and target.get("id") == tab_id and target.get("webSocketDebuggerUrl"):
                    return target["webSocketDebuggerUrl"]
            time.sleep(0.1)
        raise HttpClientError(f"Tab {tab_id} has no WebSocket URL")

    def open_page(self, url: str, *, timeout: float = 10.0) -> tuple[BrowserSession, str]:
        """Open a fresh tab for the session; returns its session and its WebSocket URL."""
        tab_id = self._create_tab(url)
        ws_url = self._tab_ws_url(tab_id)
        conn = CdpConnection(ws_url, timeout=timeout)
        return BrowserSession(conn, tab_id, url), ws_url


__all__ = ["ACTIVE_PORT_FILE", "BrowserLauncher", "LaunchResult", "read_active_port"]
