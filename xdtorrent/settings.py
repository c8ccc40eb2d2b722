"""Per-torrent storage settings persisted as bencode."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO

from xdtorrent import bencode


@dataclass
class FsSettings:
    """String options stored under the ``settings`` key."""

    opts: dict[str, str] = field(default_factory=dict)

    def put(self, key: str, val: str) -> None:
        self.opts[key] = val

    def get(self, key: str, fallback: str = "") -> str:
        return self.opts.get(key, fallback)

    def dump(self, stream: BinaryIO) -> None:
        bencode.dump({"settings": self.opts}, stream)

    def load(self, stream: BinaryIO) -> None:
        obj = bencode.load(stream)
        if not isinstance(obj, dict):
            raise bencode.BencodeError("settings must be a dictionary")
        raw = obj.get("settings")
        if raw is None:
            return
        if not isinstance(raw, dict):
            raise bencode.BencodeError("settings value must be a dictionary")
        for key, value in raw.items():
            if not isinstance(value, bytes):
                raise bencode.BencodeError(f"setting {key!r} is not a string")
            self.opts[key] = value.decode("utf-8", "surrogateescape")