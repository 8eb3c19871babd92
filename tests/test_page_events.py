from __future__ import annotations

import logging

import pytest

from glyde.browser.page_events import PageEventWatcher


def test_load_event_runs_callbacks_in_order() -> None:
    watcher = PageEventWatcher("ws://unused")
    seen: list[str] = []
    watcher.on_load(lambda: seen.append("first"))
    watcher.on_load(lambda: seen.append("second"))

    watcher.handle_event({"method": "Page.loadEventFired", "params": {"timestamp": 1.0}})
    watcher.handle_event({"method": "Page.domContentEventFired", "params": {}})
    assert seen == ["first", "second"]


def test_failing_callback_is_logged_and_others_still_run(caplog: pytest.LogCaptureFixture) -> None:
    watcher = PageEventWatcher("ws://unused")
    seen: list[str] = []

    def _boom() -> None:
        raise RuntimeError("hook broke")

    watcher.on_load(_boom)
    watcher.on_load(lambda: seen.append("ok"))
    with caplog.at_level(logging.ERROR, logger="glyde.browser.events"):
        watcher.handle_event({"method": "Page.loadEventFired"})
    assert seen == ["ok"]
    assert "Load callback failed" in caplog.text


def test_console_messages_go_to_page_logger(caplog: pytest.LogCaptureFixture) -> None:
    watcher = PageEventWatcher("ws://unused")
    with caplog.at_level(logging.DEBUG, logger="glyde.page"):
        watcher.handle_event(
            {
                "method": "Runtime.consoleAPICalled",
                "params": {"type": "error", "args": [{"type": "string", "value": "bad"}, {"type": "number", "value": 3}]},
            }
        )
        watcher.handle_event(
            {"method": "Runtime.consoleAPICalled", "params": {"type": "log", "args": [{"type": "undefined"}]}}
        )

    records = [r for r in caplog.records if r.name == "glyde.page"]
    assert records[0].levelno == logging.ERROR
    assert records[0].getMessage() == "Browser console [error]: bad 3"
    assert records[1].levelno == logging.INFO
    assert records[1].getMessage() == "Browser console [log]: [undefined]"


def test_page_errors_and_failed_requests_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    watcher = PageEventWatcher("ws://unused")
    with caplog.at_level(logging.ERROR, logger="glyde.page"):
        watcher.handle_event(
            {
                "method": "Runtime.exceptionThrown",
                "params": {"exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: nope"}}},
            }
        )
        watcher.handle_event(
            {"method": "Network.requestWillBeSent", "params": {"requestId": "r1", "request": {"url": "https://a.test/x.js"}}}
        )
        watcher.handle_event({"method": "Network.loadingFailed", "params": {"requestId": "r1", "errorText": "net::ERR"}})
        watcher.handle_event(
            {"method": "Network.loadingFailed", "params": {"requestId": "r2", "errorText": "x", "canceled": True}}
        )

    messages = [r.getMessage() for r in caplog.records if r.name == "glyde.page"]
    assert messages == ["Page error: TypeError: nope", "Request failed: https://a.test/x.js net::ERR"]


def test_stop_before_start_is_harmless() -> None:
    watcher = PageEventWatcher("ws://unused")
    watcher.stop()
