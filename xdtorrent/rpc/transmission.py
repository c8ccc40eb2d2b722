"""Messages of the Transmission-compatible RPC and its anti-forgery token."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any

from xdtorrent import util

Args = dict
Tag = int
TorrentID = int
TorrentIDArray = list
TorrentFields = list

_TOKEN_LEN = 10
_TOKEN_LIFETIME = 60.0


def _fresh_token() -> str:
    return util.rand_str(_TOKEN_LEN)


def _deadline() -> float:
    return time.time() + _TOKEN_LIFETIME


@dataclass
class XsrfToken:
    """A random session token that is valid for one minute."""

    data: str = field(default_factory=_fresh_token)
    expires: float = field(default_factory=_deadline)

    def expired(self) -> bool:
        return time.time() > self.expires

    def update(self) -> None:
        """Regenerate the token if it has expired."""
        if self.expired():
            self.regen()

    def token(self) -> str:
        return self.data

    def regen(self) -> None:
        """Replace the token with a fresh one valid for another minute."""
        self.data = _fresh_token()
        self.expires = _deadline()

    def check(self, tok: str) -> bool:
        """True if ``tok`` is this token and it has not expired."""
        return self.data == tok and not self.expired()


def _member(obj: dict, key: str, kind: type, default: Any) -> Any:
    value = obj.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"{key!r} must be of type {kind.__name__}")
    return value


@dataclass
class Request:
    """One RPC call: a method name, its arguments and a tag echoed back."""

    method: str = ""
    args: dict[str, Any] = field(default_factory=dict)
    tag: int = 0

    @staticmethod
    def from_json(data: str | bytes) -> "Request":
        """Decode a request; raises ValueError on malformed input."""
        obj = json.loads(data)
        if not isinstance(obj, dict):
            raise ValueError("request must be a JSON object")
        args = _member(obj, "arguments", dict, None)
        return Request(
            method=_member(obj, "method", str, ""),
            args={} if args is None else args,
            tag=_member(obj, "tag", int, 0),
        )


@dataclass
class Response:
    """Reply to a :class:`Request`."""

    result: str = ""
    args: dict[str, Any] | None = None
    tag: int = 0

    def to_json(self) -> str:
        return json.dumps({"result": self.result, "arguments": self.args, "tag": self.tag})