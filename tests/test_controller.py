from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import FakeCapability, make_config


@pytest.fixture
def controller(short_tmp: Path):
    from glyde.browser.main import Controller
    from glyde.browser.session_paths import SessionContext

    config = make_config(short_tmp, session_name="work")
    session = SessionContext.resolve(config.data_dir, config.session_name)
    ctl = Controller(config, session)
    ctl.capability = FakeCapability(url="https://app.test/home")
    return ctl


def _manifest(ctl, scripts: list[dict]) -> None:
    Path(ctl.config.manifest_path).write_text(json.dumps({"scripts": scripts, "plugins": []}))


def test_page_load_saves_snapshot_then_injects(controller) -> None:
    root = Path(controller.config.manifest_path).parent
    (root / "mon.js").write_text("'monitor'")
    _manifest(controller, [{"path": "mon.js", "sessions": ["work"], "urlPatterns": {"prod": ["app.test"]}}])
    cap = controller.capability
    cap.storage = {"k": "v"}
    cap.eval_hook = lambda script: cap.calls.append("evaluate") or "monitor"

    controller.after_page_load()

    snapshots = list(controller.session.dirs.state.glob("state-*.json"))
    assert len(snapshots) == 1
    assert json.loads(snapshots[0].read_text())["localStorage"] == {"k": "v"}
    assert cap.evaluated == ["'monitor'"]
    # Snapshot is captured before any script runs.
    assert cap.calls.index("local_storage_items") < cap.calls.index("evaluate")


def test_every_load_appends_a_snapshot(controller) -> None:
    _manifest(controller, [])
    controller.after_page_load()
    controller.after_page_load()
    assert len(list(controller.session.dirs.state.glob("state-*.json"))) == 2


def test_startup_restores_cookies_and_defers_local_storage(controller) -> None:
    from glyde.browser.state_store import StateSnapshot

    controller.store.save(
        StateSnapshot(
            cookies=[{"name": "sid", "domain": ".app.test", "value": "saved"}],
            local_storage={"token": "abc", "theme": "dark"},
            url="https://app.test/home",
        )
    )
    cap = controller.capability
    cap.cookies = []
    cap.url = "about:blank"

    controller._restore_startup_state()
    assert [c["name"] for c in cap.cookies] == ["sid"]
    assert cap.storage == {}

    _manifest(controller, [])
    # A load on another origin leaves the pending restore in place.
    cap.url = "https://other.test/"
    controller.after_page_load()
    assert cap.storage == {}

    cap.url = "https://app.test/dashboard"
    cap.storage = {"theme": "light"}
    controller.after_page_load()
    assert cap.storage == {"theme": "light", "token": "abc"}

    # Restored once only.
    cap.storage = {}
    controller.after_page_load()
    assert cap.storage == {}


def test_restore_happens_before_snapshot(controller) -> None:
    from glyde.browser.state_store import StateSnapshot

    controller.store.save(StateSnapshot(local_storage={"token": "abc"}, url="https://app.test/"))
    controller._restore_startup_state()
    _manifest(controller, [])

    controller.after_page_load()
    latest = controller.store.load()
    assert latest is not None
    assert latest.local_storage == {"token": "abc"}


def test_missing_state_is_not_an_error(controller) -> None:
    controller._restore_startup_state()
    assert controller.capability.cookies == []


def test_setup_failure_exits_nonzero(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    from glyde.browser.main import main

    blocker = tmp_path / "data"
    blocker.write_text("not a directory")
    monkeypatch.setenv("GLYDE_DATA_DIR", str(blocker))
    monkeypatch.setenv("GLYDE_BROWSER_BINARY", "/bin/false")

    assert main(["--session", "x", "--no-console"]) == 1
    assert "Failed to set up session" in capsys.readouterr().err


def test_manifest_matches_the_session_name_as_given(short_tmp: Path) -> None:
    from glyde.browser.main import Controller
    from glyde.browser.session_paths import SessionContext

    config = make_config(short_tmp, session_name="my session")
    session = SessionContext.resolve(config.data_dir, config.session_name)
    assert session.name == "my-session"

    ctl = Controller(config, session)
    ctl.capability = FakeCapability(url="https://app.test/")
    (short_tmp / "mine.js").write_text("'mine'")
    _manifest(ctl, [{"path": "mine.js", "sessions": ["my session"], "urlPatterns": {"prod": ["*"]}}])

    ctl.after_page_load()
    assert ctl.capability.evaluated == ["'mine'"]
