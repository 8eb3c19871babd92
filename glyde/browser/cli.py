"""`glyde` command-line client: one command per invocation against a running controller."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from .command_client import CommandClientError, format_result, send_command
from .config import GlydeConfig
from .session_paths import session_socket_path

logger = logging.getLogger("glyde.browser.cli")

SCRIPT_COMMANDS = ("eval", "inject")
_VALUE_OPTIONS = ("--session", "--timeout")


def _joined(values: list[str] | None) -> str:
    return " ".join(values or [])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="glyde", description="Send a command to a running browser session")
    parser.add_argument("--session", help="Session name (default: $GLYDE_SESSION or 'default')")
    parser.add_argument("--timeout", type=float, default=None, help="Local socket timeout in seconds")
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    sub.add_parser("help", help="Show the controller's command list")
    p = sub.add_parser("eval", help="Evaluate JavaScript expression and return result")
    p.add_argument("expression", nargs="*")
    p = sub.add_parser("inject", help="Inject and execute JavaScript in the page")
    p.add_argument("script", nargs="*")
    p = sub.add_parser("screenshot", help="Take a screenshot of the current page")
    p.add_argument("filename", nargs="?", default="")
    p = sub.add_parser("click", help="Click an element matching the selector")
    p.add_argument("selector")
    p = sub.add_parser("type", help="Type text into an element")
    p.add_argument("selector")
    p.add_argument("text", nargs="+")
    sub.add_parser("url", help="Get current page URL")
    sub.add_parser("reload", help="Reload the current page")
    p = sub.add_parser("wait", help="Wait for specified milliseconds")
    p.add_argument("ms")
    p = sub.add_parser("chat", help="Send a message and get the response")
    p.add_argument("message", nargs="+")
    p = sub.add_parser("label", help="Add visual labels to matching elements")
    p.add_argument("selector")
    p.add_argument("-n", "--number", action="store_true", help="Show element index numbers")
    p.add_argument("-c", "--coords", action="store_true", help="Show element coordinates")
    p.add_argument("-C", "--color", default=None, help="Label color (CSS)")
    p.add_argument("-s", "--size", type=int, default=None, help="Label font size in px")
    p.add_argument("-N", "--nocleanup", action="store_true", help="Keep labels on the page")
    return parser


def _split_script_tail(argv: list[str]) -> tuple[list[str], list[str] | None]:
    """Cut the argv after `eval`/`inject`; script text is forwarded verbatim, dashes included."""
    i = 0
    while i < len(argv):
        token = argv[i]
        if token in SCRIPT_COMMANDS:
            tail = argv[i + 1 :]
            if tail[:1] == ["--"]:
                tail = tail[1:]
            return argv[: i + 1], tail
        if token in _VALUE_OPTIONS:
            i += 2
            continue
        if not token.startswith("-"):
            break
        i += 1
    return argv, None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    head, tail = _split_script_tail(argv)
    ns = build_parser().parse_args(head)
    if tail is not None:
        setattr(ns, "expression" if ns.command == "eval" else "script", tail)
    if not ns.command:
        ns.command = "help"
    return ns


def request_from_args(ns: argparse.Namespace) -> tuple[str, Any]:
    """Map parsed arguments to the wire (command, args) pair."""
    command = ns.command
    if command in SCRIPT_COMMANDS:
        return command, _joined(ns.expression if command == "eval" else ns.script)
    if command == "screenshot":
        return command, ns.filename or None
    if command == "click":
        return command, ns.selector
    if command == "type":
        return command, {"selector": ns.selector, "text": _joined(ns.text)}
    if command == "wait":
        return command, ns.ms
    if command == "chat":
        return command, _joined(ns.message)
    if command == "label":
        options: dict[str, Any] = {"number": ns.number, "coords": ns.coords, "nocleanup": ns.nocleanup}
        if ns.color:
            options["color"] = ns.color
        if ns.size:
            options["size"] = ns.size
        return command, {"selector": ns.selector, "options": options}
    return command, None


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")
    ns = parse_args(argv)

    config = GlydeConfig.from_env(ns.session)
    socket_path = session_socket_path(config.data_dir, config.session_name)
    command, args = request_from_args(ns)
    try:
        result = send_command(command, args, socket_path=socket_path, timeout=ns.timeout)
    except CommandClientError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        logger.warning("socket error on %s", socket_path)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Response: {format_result(result)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
