from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from glyde.browser.browser_session import ScriptError
from glyde.browser.config import GlydeConfig
from glyde.browser.session_paths import SessionContext
from glyde.browser.tools.base import CommandContext, CommandError


class FakeCapability:
    """In-process stand-in for a browser page.

    `eval_results` maps an exact script to its value (or to an exception to raise);
    `eval_hook`, when set, takes over evaluation entirely.
    """

    def __init__(self, url: str = "https://example.com/") -> None:
        self.url = url
        self.evaluated: list[str] = []
        self.eval_results: dict[str, Any] = {}
        self.eval_hook: Callable[[str], Any] | None = None
        self.elements: set[str] = set()
        self.clicked: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.cookies: list[dict[str, Any]] = []
        self.storage: dict[str, str] = {}
        self.reloads = 0
        self.calls: list[str] = []

    def evaluate(self, script: str, *, timeout: float | None = None) -> Any:  # noqa: ARG002
        self.evaluated.append(script)
        if self.eval_hook is not None:
            return self.eval_hook(script)
        outcome = self.eval_results.get(script)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def click(self, selector: str) -> None:
        if selector not in self.elements:
            raise CommandError("click", f"No element matches selector {selector!r}")
        self.clicked.append(selector)

    def type(self, selector: str, text: str) -> None:
        if selector not in self.elements:
            raise CommandError("type", f"No element matches selector {selector!r}")
        self.typed.append((selector, text))

    def screenshot(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x89PNG\r\n\x1a\n")
        return path

    def current_url(self) -> str:
        self.calls.append("current_url")
        return self.url

    def reload(self) -> None:
        self.reloads += 1

    def navigate(self, url: str) -> str:
        self.url = url
        return url

    def get_cookies(self) -> list[dict[str, Any]]:
        self.calls.append("get_cookies")
        return [dict(c) for c in self.cookies]

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.calls.append("set_cookies")
        self.cookies.extend(dict(c) for c in cookies)

    def local_storage_items(self) -> dict[str, str]:
        self.calls.append("local_storage_items")
        return dict(self.storage)

    def set_local_storage_items(self, items: dict[str, str]) -> None:
        self.calls.append("set_local_storage_items")
        self.storage.update(items)


def make_config(root: Path, session_name: str = "test") -> GlydeConfig:
    return GlydeConfig(
        session_name=session_name,
        data_dir=str(root / "data"),
        manifest_path=str(root / "scripts.manifest.json"),
        binary_path="chromium",
    )


@pytest.fixture
def short_tmp() -> Iterator[Path]:
    # AF_UNIX paths are short; pytest's tmp_path can exceed the limit.
    path = Path(tempfile.mkdtemp(prefix="glyde-", dir="/tmp"))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def fake_capability() -> FakeCapability:
    cap = FakeCapability()
    cap.eval_results["1+1"] = 2
    cap.eval_results["throw new Error('x')"] = ScriptError("x")
    return cap


@pytest.fixture
def command_context(short_tmp: Path, fake_capability: FakeCapability) -> CommandContext:
    config = make_config(short_tmp)
    session = SessionContext.resolve(config.data_dir, config.session_name)
    return CommandContext(capability=fake_capability, config=config, session=session)
