"""
Wire types for the session command socket.

One UTF-8 JSON object per direction per connection:
    request:  {"command": str, "args": <str | JSON value>}
    response: {"result": <JSON value>}  or  {"error": str}
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..tools.base import CommandContext

INVALID_FORMAT = "Invalid command format"
UNKNOWN_COMMAND = "Unknown command"


class RequestFormatError(ValueError):
    pass


@dataclass(slots=True, frozen=True)
class CommandRequest:
    command: str
    args: Any = None

    @classmethod
    def decode(cls, raw: bytes) -> CommandRequest:
        try:
            obj = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise RequestFormatError(str(exc)) from exc
        if not isinstance(obj, dict):
            raise RequestFormatError("request must be a JSON object")
        command = obj.get("command")
        if not isinstance(command, str):
            raise RequestFormatError("request requires a string 'command'")
        return cls(command=command, args=obj.get("args"))

    def encode(self) -> bytes:
        return json.dumps({"command": self.command, "args": self.args}, ensure_ascii=False).encode("utf-8")


@dataclass(slots=True, frozen=True)
class CommandResponse:
    """Exactly one of `result` / `error` is meaningful; `is_error` selects which."""

    result: Any = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, result: Any) -> CommandResponse:
        return cls(result=result)

    @classmethod
    def fail(cls, message: str) -> CommandResponse:
        return cls(error=str(message) or "Command failed")

    def to_dict(self) -> dict[str, Any]:
        if self.is_error:
            return {"error": self.error}
        return {"result": self.result}

    def encode(self) -> bytes:
        payload = self.to_dict()
        try:
            return json.dumps(payload, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError):
            # Non-JSON results are reported by their string form.
            return json.dumps({"result": str(self.result)}, ensure_ascii=False).encode("utf-8")

    @classmethod
    def decode(cls, raw: bytes) -> CommandResponse:
        obj = json.loads(raw.decode("utf-8"))
        if not isinstance(obj, dict) or ("error" not in obj and "result" not in obj):
            raise ValueError("response must be an object with 'result' or 'error'")
        if obj.get("error") is not None:
            return cls(error=str(obj["error"]))
        return cls(result=obj.get("result"))


HandlerFunc = Callable[["CommandContext", Any], Any]


@dataclass(slots=True, frozen=True)
class CommandSpec:
    """Specification for a registered command."""

    name: str
    handler: HandlerFunc
    usage: str = ""
    summary: str = ""
