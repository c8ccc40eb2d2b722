"""Bencode encoding and decoding.

Byte strings decode to ``bytes``; dictionary keys decode to ``str``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, BinaryIO

_INT_RE = re.compile(rb"-?(0|[1-9][0-9]*)")
_LEN_RE = re.compile(rb"0|[1-9][0-9]*")


class BencodeError(ValueError):
    """Raised for data that cannot be encoded or decoded."""


def _key_bytes(key) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8", "surrogateescape")
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise BencodeError(f"dictionary key must be str or bytes, not {type(key).__name__}")


def _encode(obj: Any, out: bytearray) -> None:
    if isinstance(obj, bool):
        obj = int(obj)
    if isinstance(obj, int):
        out += b"i%de" % obj
    elif isinstance(obj, (bytes, bytearray, memoryview)):
        raw = bytes(obj)
        out += b"%d:" % len(raw)
        out += raw
    elif isinstance(obj, str):
        _encode(obj.encode("utf-8", "surrogateescape"), out)
    elif isinstance(obj, (list, tuple)):
        out += b"l"
        for item in obj:
            _encode(item, out)
        out += b"e"
    elif isinstance(obj, Mapping):
        items = sorted(((_key_bytes(k), v) for k, v in obj.items()), key=lambda kv: kv[0])
        out += b"d"
        previous = None
        for key, value in items:
            if key == previous:
                raise BencodeError(f"duplicate dictionary key {key!r}")
            previous = key
            _encode(key, out)
            _encode(value, out)
        out += b"e"
    else:
        raise BencodeError(f"cannot bencode {type(obj).__name__}")


def encode(obj: Any) -> bytes:
    """Return the bencoded form of ``obj``."""
    out = bytearray()
    _encode(obj, out)
    return bytes(out)


def _decode_string(data: bytes, pos: int) -> tuple[bytes, int]:
    colon = data.find(b":", pos)
    if colon < 0:
        raise BencodeError("unterminated string length")
    digits = data[pos:colon]
    if not _LEN_RE.fullmatch(digits):
        raise BencodeError(f"invalid string length {digits!r}")
    start = colon + 1
    end = start + int(digits)
    if end > len(data):
        raise BencodeError("string runs past end of data")
    return data[start:end], end


def _decode_at(data: bytes, pos: int) -> tuple[Any, int]:
    token = data[pos:pos + 1]
    if not token:
        raise BencodeError("unexpected end of data")
    if token == b"i":
        end = data.find(b"e", pos)
        if end < 0:
            raise BencodeError("unterminated integer")
        digits = data[pos + 1:end]
        if not _INT_RE.fullmatch(digits) or digits == b"-0":
            raise BencodeError(f"invalid integer {digits!r}")
        return int(digits), end + 1
    if token == b"l":
        pos += 1
        items = []
        while data[pos:pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unterminated list")
            item, pos = _decode_at(data, pos)
            items.append(item)
        return items, pos + 1
    if token == b"d":
        pos += 1
        result: dict = {}
        while data[pos:pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unterminated dictionary")
            if not data[pos:pos + 1].isdigit():
                raise BencodeError("dictionary key must be a string")
            raw_key, pos = _decode_string(data, pos)
            value, pos = _decode_at(data, pos)
            result[raw_key.decode("utf-8", "surrogateescape")] = value
        return result, pos + 1
    if token.isdigit():
        return _decode_string(data, pos)
    raise BencodeError(f"unexpected byte {token!r} at offset {pos}")


def decode(data: bytes) -> Any:
    """Decode one complete bencoded value; trailing data is an error."""
    data = bytes(data)
    value, end = _decode_at(data, 0)
    if end != len(data):
        raise BencodeError(f"trailing data at offset {end}")
    return value


def dump(obj: Any, stream: BinaryIO) -> None:
    """Bencode ``obj`` and write it to ``stream``."""
    stream.write(encode(obj))


def load(stream: BinaryIO) -> Any:
    """Read and decode the first bencoded value from ``stream``."""
    value, _ = _decode_at(bytes(stream.read()), 0)
    return value