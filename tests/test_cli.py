from __future__ import annotations

from pathlib import Path

import pytest


def _request(argv: list[str]):
    from glyde.browser.cli import parse_args, request_from_args

    return request_from_args(parse_args(argv))


def test_cli_maps_subcommands_to_wire_requests() -> None:
    assert _request(["eval", "document.title"]) == ("eval", "document.title")
    assert _request(["eval", "1", "+", "1"]) == ("eval", "1 + 1")
    assert _request(["inject", "window.x=1"]) == ("inject", "window.x=1")
    assert _request(["click", "#go"]) == ("click", "#go")
    assert _request(["type", "#q", "hello", "world"]) == ("type", {"selector": "#q", "text": "hello world"})
    assert _request(["screenshot"]) == ("screenshot", None)
    assert _request(["screenshot", "home"]) == ("screenshot", "home")
    assert _request(["url"]) == ("url", None)
    assert _request(["reload"]) == ("reload", None)
    assert _request(["wait", "250"]) == ("wait", "250")
    assert _request(["chat", "hi", "there"]) == ("chat", "hi there")
    assert _request(["help"]) == ("help", None)
    assert _request([]) == ("help", None)


def test_cli_forwards_script_text_that_looks_like_options() -> None:
    assert _request(["eval", "-1+2"]) == ("eval", "-1+2")
    assert _request(["eval", "--", "-x", "-h"]) == ("eval", "-x -h")
    assert _request(["--session", "work", "inject", "--foo", "=", "1"]) == ("inject", "--foo = 1")
    assert _request(["--timeout", "3", "eval", "-1"]) == ("eval", "-1")


def test_cli_label_options() -> None:
    command, args = _request(["label", "button", "-n", "-c", "-C", "red", "-s", "14", "-N"])
    assert command == "label"
    assert args == {
        "selector": "button",
        "options": {"number": True, "coords": True, "nocleanup": True, "color": "red", "size": 14},
    }

    _, plain = _request(["label", "a"])
    assert plain == {"selector": "a", "options": {"number": False, "coords": False, "nocleanup": False}}


def test_cli_without_controller_exits_nonzero(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    from glyde.browser.cli import main

    monkeypatch.setenv("GLYDE_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("GLYDE_RUNTIME_DIR", str(tmp_path / "run"))

    assert main(["--session", "nobody", "url"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "not running" in err


def test_cli_prints_response(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    from glyde.browser import cli

    sent = {}

    def _fake_send(command, args, *, socket_path, timeout=None):
        sent.update(command=command, args=args, socket_path=socket_path)
        return {"count": 2}

    monkeypatch.setattr(cli, "send_command", _fake_send)
    assert cli.main(["--session", "work", "eval", "({count: 2})"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Response: {")
    assert '"count": 2' in out
    assert sent["command"] == "eval"
    assert "work" in str(sent["socket_path"])


def test_cli_reports_command_errors(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    from glyde.browser import cli
    from glyde.browser.command_client import CommandFailedError

    def _fail(*_a, **_k):
        raise CommandFailedError("Unknown command")

    monkeypatch.setattr(cli, "send_command", _fail)
    assert cli.main(["url"]) == 1
    assert capsys.readouterr().err.strip() == "Error: Unknown command"
