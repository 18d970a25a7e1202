"""Control-plane wire shapes.

Request:  {"command": "saveAll", "args": {...}}
Success:  {"success": true, "result": <any JSON value>}
Failure:  {"success": false, "error": "message"}
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from .errors import MalformedRequest


@dataclass(frozen=True)
class CommandRequest:
    command: str
    args: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"command": self.command, "args": self.args}


def parse_request(body: bytes | str) -> CommandRequest:
    """Parse a fully buffered request body.

    Raises:
        MalformedRequest: body is not JSON, not an object, or has no
            string ``command``.
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRequest(f"Request body is not UTF-8: {exc}") from exc
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedRequest(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedRequest("Request body must be a JSON object")

    command = payload.get("command")
    if not isinstance(command, str) or not command:
        raise MalformedRequest("Request is missing a command name")

    args = payload.get("args")
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise MalformedRequest("Request args must be a JSON object")
    return CommandRequest(command=command, args=args)


def success_payload(result: Any) -> dict[str, Any]:
    return {"success": True, "result": result}


def failure_payload(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


# ── Result variant ──


@dataclass(frozen=True)
class TextResult:
    text: str

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class StructuredResult:
    value: Any

    def render(self) -> str:
        return json.dumps(self.value, indent=2, default=str)


@dataclass(frozen=True)
class EmptyResult:
    def render(self) -> str:
        return "OK"


CommandResult = Union[TextResult, StructuredResult, EmptyResult]


def classify_result(value: Any) -> CommandResult:
    """Wrap a raw dispatch value in the closed result variant."""
    if value is None:
        return EmptyResult()
    if isinstance(value, str):
        return TextResult(value)
    return StructuredResult(value)
