"""
Session controller: owns one browser page and serves its command socket.

Startup order: session namespace, logging, manifest, browser, page, cookie restore,
command server, page event watcher, start URL. Page-load hooks run under the same lock as
commands, so a hook never interleaves with a command on the page.
"""

from __future__ import annotations

import argparse
import asyncio
import concurrent.futures
import logging
import signal
import sys
from contextlib import suppress
from pathlib import Path

from .browser_session import BrowserSession
from .capability import PageCapability
from .command_server import CommandServer
from .config import GlydeConfig
from .launcher import BrowserLauncher
from .logging_setup import configure_logging
from .page_events import PageEventWatcher
from .script_injector import ensure_manifest, inject_page_scripts
from .session_paths import SessionContext, SessionSetupError
from .state_store import StateSnapshot, StateStore, origin_of, restore_cookies, restore_local_storage
from .tools.base import CommandContext

logger = logging.getLogger("glyde.browser")


class BrowserStartError(RuntimeError):
    pass


class Controller:
    """One session's controller process."""

    def __init__(self, config: GlydeConfig, session: SessionContext) -> None:
        self.config = config
        self.session = session
        self.store = StateStore(session.dirs.state)
        self.launcher = BrowserLauncher(config, session.dirs.browser_data)
        self.browser: BrowserSession | None = None
        self.capability: PageCapability | None = None
        self.server: CommandServer | None = None
        self.watcher: PageEventWatcher | None = None
        self._pending_storage: StateSnapshot | None = None
        self._stop: asyncio.Event | None = None

    def request_stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

    def _start_browser(self) -> str:
        result = self.launcher.ensure_running()
        logger.info("%s", result.message)
        if not result.started and not self.launcher.cdp_ready():
            tail = f"\n{result.log_tail}" if result.log_tail else ""
            raise BrowserStartError(f"Failed to start browser: {result.message}{tail}")

        self.browser, ws_url = self.launcher.open_page("about:blank", timeout=self.config.eval_timeout)
        self.browser.enable_page()
        self.browser.enable_runtime()
        self.capability = PageCapability(self.browser, default_timeout=self.config.eval_timeout)
        return ws_url

    def _restore_startup_state(self) -> None:
        assert self.capability is not None
        snapshot = self.store.load()
        if snapshot is None:
            return
        try:
            restore_cookies(self.capability, snapshot)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to restore cookies")
        if snapshot.local_storage:
            self._pending_storage = snapshot

    def _restore_pending_storage(self, url: str) -> None:
        snapshot = self._pending_storage
        if snapshot is None or self.capability is None:
            return
        page_origin = origin_of(url)
        if not page_origin or (snapshot.origin and snapshot.origin != page_origin):
            return
        self._pending_storage = None
        try:
            restore_local_storage(self.capability, snapshot)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to restore localStorage")

    def after_page_load(self) -> None:
        """Page-load hook body; runs under the session lock."""
        capability = self.capability
        if capability is None:
            return
        url = capability.current_url()
        logger.info("Page loaded: %s", url)
        self._restore_pending_storage(url)
        self.store.capture_and_save(capability)
        inject_page_scripts(
            capability,
            url=url,
            session_name=self.config.session_name,
            manifest_path=Path(self.config.manifest_path),
            scripts_root=self.config.scripts_root,
        )

    def _on_page_load(self) -> None:
        # Called from the watcher thread.
        server = self.server
        if server is None or server.loop is None or server.loop.is_closed():
            return
        future = server.submit_threadsafe(self.after_page_load)
        future.add_done_callback(_log_hook_failure)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_stop)

    async def run(self, *, console: bool = False) -> int:
        loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        self._install_signal_handlers(loop)

        logger.info("Session: %s (%s)", self.session.name, self.session.dirs.root)
        ensure_manifest(Path(self.config.manifest_path))

        try:
            ws_url = await asyncio.to_thread(self._start_browser)
            await asyncio.to_thread(self._restore_startup_state)

            assert self.capability is not None
            self.server = CommandServer(CommandContext(self.capability, self.config, self.session))
            await self.server.start()

            self.watcher = PageEventWatcher(ws_url)
            self.watcher.on_load(self._on_page_load)
            self.watcher.start()

            logger.info("Navigating to %s", self.config.start_url)
            await self.server.run_exclusive(self.capability.navigate, self.config.start_url)

            serve_task = asyncio.create_task(self.server.serve_forever())
            serve_task.add_done_callback(lambda _t: self.request_stop())
            console_task = None
            if console:
                from .console import run_console

                console_task = asyncio.create_task(run_console(self.server, on_exit=self.request_stop))

            logger.info("Browser ready. Socket: %s", self.session.socket_path)
            await self._stop.wait()

            for task in (serve_task, console_task):
                if task is not None and not task.done():
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task
        finally:
            await self.shutdown()
        return 0

    async def shutdown(self) -> None:
        logger.info("Shutting down session %s", self.session.name)
        if self.server is not None:
            await self.server.close()
        if self.watcher is not None:
            self.watcher.stop()
        if self.browser is not None:
            with suppress(Exception):
                self.browser.close()
        self.launcher.stop()


def _log_hook_failure(future: concurrent.futures.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Page load hook failed: %s", exc, exc_info=exc)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="glyde-controller", description="Run a browser session controller")
    parser.add_argument("--session", help="Session name (default: $GLYDE_SESSION or 'default')")
    console = parser.add_mutually_exclusive_group()
    console.add_argument("--console", dest="console", action="store_true", default=None, help="Interactive console")
    console.add_argument("--no-console", dest="console", action="store_false", help="Disable the console")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = GlydeConfig.from_env(args.session)
    try:
        session = SessionContext.resolve(config.data_dir, config.session_name)
    except SessionSetupError as exc:
        print(f"Failed to set up session: {exc}", file=sys.stderr)
        return 1

    configure_logging(session.dirs.logs, debug=config.debug)
    console = args.console if args.console is not None else sys.stdin.isatty()
    controller = Controller(config, session)
    try:
        return asyncio.run(controller.run(console=console))
    except KeyboardInterrupt:
        return 0
    except Exception:  # noqa: BLE001
        logger.exception("Fatal error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
