from __future__ import annotations

from typing import Any

import pytest

from glyde.browser.browser_session import BrowserSession, ScriptError


class DummyConn:
    def __init__(self, evaluate_result: dict[str, Any]) -> None:
        self.evaluate_result = evaluate_result
        self.calls: list[tuple[str, dict[str, Any] | None, float | None]] = []

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        self.calls.append((method, params, timeout))
        if method == "Runtime.evaluate":
            return self.evaluate_result
        return {}


def test_eval_js_awaits_promises_and_returns_by_value() -> None:
    conn = DummyConn({"result": {"type": "number", "value": 123}})
    session = BrowserSession(conn, tab_id="t1")
    assert session.eval_js("1 + 2", timeout=7.0) == 123

    eval_calls = [(p, t) for (m, p, t) in conn.calls if m == "Runtime.evaluate"]
    assert len(eval_calls) == 1
    params, timeout = eval_calls[0]
    assert params is not None
    assert params.get("awaitPromise") is True
    assert params.get("returnByValue") is True
    assert "replMode" not in params
    assert timeout == 7.0


def test_eval_js_maps_undefined_to_none() -> None:
    session = BrowserSession(DummyConn({"result": {"type": "undefined"}}), tab_id="t1")
    assert session.eval_js("globalThis.__nope && 1") is None


def test_eval_js_maps_null_to_none() -> None:
    session = BrowserSession(DummyConn({"result": {"type": "object", "subtype": "null"}}), tab_id="t1")
    assert session.eval_js("null") is None


def test_eval_js_returns_objects_by_value() -> None:
    conn = DummyConn({"result": {"type": "object", "value": {"a": [1, 2]}}})
    assert BrowserSession(conn, tab_id="t1").eval_js("({a: [1, 2]})") == {"a": [1, 2]}


def test_eval_js_thrown_error_raises_script_error_with_message() -> None:
    conn = DummyConn(
        {
            "result": {"type": "object", "subtype": "error"},
            "exceptionDetails": {
                "text": "Uncaught",
                "exception": {
                    "type": "object",
                    "subtype": "error",
                    "className": "Error",
                    "description": "Error: x\n    at <anonymous>:1:7",
                },
            },
        }
    )
    with pytest.raises(ScriptError) as excinfo:
        BrowserSession(conn, tab_id="t1").eval_js("throw new Error('x')")
    assert excinfo.value.message == "x"


def test_eval_js_thrown_primitive_uses_value() -> None:
    conn = DummyConn({"exceptionDetails": {"text": "Uncaught", "exception": {"type": "string", "value": "plain"}}})
    with pytest.raises(ScriptError) as excinfo:
        BrowserSession(conn, tab_id="t1").eval_js("throw 'plain'")
    assert excinfo.value.message == "plain"


def test_eval_js_syntax_error_message() -> None:
    conn = DummyConn(
        {
            "exceptionDetails": {
                "text": "Uncaught",
                "exception": {
                    "className": "SyntaxError",
                    "description": "SyntaxError: Unexpected token ')'",
                },
            }
        }
    )
    with pytest.raises(ScriptError) as excinfo:
        BrowserSession(conn, tab_id="t1").eval_js("(")
    assert excinfo.value.message == "Unexpected token ')'"
