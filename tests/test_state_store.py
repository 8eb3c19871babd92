from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from conftest import FakeCapability


def test_save_is_append_only(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateSnapshot, StateStore

    store = StateStore(tmp_path / "state")
    first = store.save(StateSnapshot(cookies=[{"name": "a", "domain": "x"}], timestamp="t1"))
    second = store.save(StateSnapshot(cookies=[{"name": "b", "domain": "x"}], timestamp="t2"))

    assert first is not None and second is not None
    assert first != second
    files = sorted(p.name for p in (tmp_path / "state").iterdir())
    assert files == sorted([first.name, second.name])
    assert json.loads(first.read_text())["cookies"][0]["name"] == "a"
    assert store.latest_path() == second


def test_snapshot_file_layout(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateSnapshot, StateStore

    path = StateStore(tmp_path).save(
        StateSnapshot(cookies=[], local_storage={"k": "v"}, timestamp="2024-01-01T00:00:00Z", url="https://a.test/")
    )
    assert path is not None
    assert path.name.startswith("state-") and path.suffix == ".json"
    assert json.loads(path.read_text()) == {
        "cookies": [],
        "localStorage": {"k": "v"},
        "timestamp": "2024-01-01T00:00:00Z",
        "url": "https://a.test/",
    }


def test_load_picks_lexicographically_latest(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateStore

    (tmp_path / "state-2024-01-01-00-00-00-000000.json").write_text(json.dumps({"cookies": [], "url": "old"}))
    (tmp_path / "state-2024-06-01-00-00-00-000000.json").write_text(json.dumps({"cookies": [], "url": "new"}))
    (tmp_path / "notes.txt").write_text("ignored")

    snapshot = StateStore(tmp_path).load()
    assert snapshot is not None
    assert snapshot.url == "new"


def test_load_without_files_returns_none(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateStore

    assert StateStore(tmp_path / "missing").load() is None
    assert StateStore(tmp_path).load() is None


def test_load_invalid_latest_returns_none(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    from glyde.browser.state_store import StateStore

    (tmp_path / "state-2024-01-01-00-00-00-000000.json").write_text(json.dumps({"cookies": []}))
    (tmp_path / "state-2024-06-01-00-00-00-000000.json").write_text("{not json")

    with caplog.at_level(logging.ERROR, logger="glyde.browser.state"):
        assert StateStore(tmp_path).load() is None
    assert "Failed to load state" in caplog.text


def test_save_failure_is_logged_not_raised(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    from glyde.browser.state_store import StateSnapshot, StateStore

    blocker = tmp_path / "state"
    blocker.write_text("a file where the directory should be")
    with caplog.at_level(logging.ERROR, logger="glyde.browser.state"):
        assert StateStore(blocker).save(StateSnapshot()) is None
    assert "Failed to save state" in caplog.text


def test_merge_cookies_keeps_live_values() -> None:
    from glyde.browser.state_store import merge_cookies

    live = [{"name": "sid", "domain": ".a.test", "value": "live"}]
    saved = [
        {"name": "sid", "domain": ".a.test", "value": "old"},
        {"name": "sid", "domain": ".b.test", "value": "other-domain"},
        {"name": "pref", "domain": ".a.test", "value": "dark"},
        {"name": "", "domain": ".a.test", "value": "nameless"},
    ]
    merged = merge_cookies(live, saved)
    assert [(c["name"], c["domain"]) for c in merged] == [("sid", ".b.test"), ("pref", ".a.test")]


def test_merge_local_storage_fills_only_absent_keys() -> None:
    from glyde.browser.state_store import merge_local_storage

    live = {"theme": "light", "empty": ""}
    saved = {"theme": "dark", "empty": "restored?", "token": "abc"}
    assert merge_local_storage(live, saved) == {"token": "abc"}


def test_restore_never_overwrites_live_state() -> None:
    from glyde.browser.state_store import StateSnapshot, restore_cookies, restore_local_storage

    cap = FakeCapability()
    cap.cookies = [{"name": "sid", "domain": ".a.test", "value": "live"}]
    cap.storage = {"theme": "light"}
    snapshot = StateSnapshot(
        cookies=[{"name": "sid", "domain": ".a.test", "value": "old"}, {"name": "pref", "domain": ".a.test", "value": "x"}],
        local_storage={"theme": "dark", "token": "abc"},
    )

    assert restore_cookies(cap, snapshot) == 1
    assert restore_local_storage(cap, snapshot) == 1
    assert {c["name"]: c["value"] for c in cap.cookies} == {"sid": "live", "pref": "x"}
    assert cap.storage == {"theme": "light", "token": "abc"}


def test_restore_with_nothing_missing_sets_nothing() -> None:
    from glyde.browser.state_store import StateSnapshot, restore_cookies

    cap = FakeCapability()
    cap.cookies = [{"name": "sid", "domain": ".a.test"}]
    assert restore_cookies(cap, StateSnapshot(cookies=[{"name": "sid", "domain": ".a.test"}])) == 0
    assert "set_cookies" not in cap.calls


def test_capture_and_save_reads_live_state(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateStore

    cap = FakeCapability(url="https://a.test/page")
    cap.cookies = [{"name": "sid", "domain": ".a.test", "value": "1"}]
    cap.storage = {"k": "v"}

    path = StateStore(tmp_path).capture_and_save(cap)
    assert path is not None
    data = json.loads(path.read_text())
    assert data["url"] == "https://a.test/page"
    assert data["localStorage"] == {"k": "v"}
    assert data["cookies"][0]["name"] == "sid"
    assert data["timestamp"].endswith("Z")


def test_capture_failure_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    from glyde.browser.state_store import StateStore

    class Broken(FakeCapability):
        def get_cookies(self):
            raise RuntimeError("browser went away")

    with caplog.at_level(logging.ERROR, logger="glyde.browser.state"):
        assert StateStore(tmp_path).capture_and_save(Broken()) is None
    assert list(tmp_path.iterdir()) == []


def test_origin_of() -> None:
    from glyde.browser.state_store import StateSnapshot, origin_of

    assert origin_of("https://a.test:8443/x?y=1") == "https://a.test:8443"
    assert origin_of("about:blank") == ""
    assert StateSnapshot(url="http://localhost:3000/app").origin == "http://localhost:3000"


def test_round_trip_restores_into_empty_session_without_overwriting(tmp_path: Path) -> None:
    from glyde.browser.state_store import StateStore, restore_cookies

    source = FakeCapability()
    source.cookies = [{"name": "a", "domain": "x", "value": "1"}]
    store = StateStore(tmp_path)
    assert store.capture_and_save(source) is not None

    empty = FakeCapability()
    snapshot = store.load()
    assert snapshot is not None
    restore_cookies(empty, snapshot)
    assert empty.cookies == [{"name": "a", "domain": "x", "value": "1"}]

    live = FakeCapability()
    live.cookies = [{"name": "a", "domain": "x", "value": "2"}]
    restore_cookies(live, snapshot)
    assert live.cookies == [{"name": "a", "domain": "x", "value": "2"}]
