"""BitTorrent meta info: the info section and whole torrent files."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from xdtorrent import bencode, log
from xdtorrent.bencode import BencodeError

_HASH_LEN = 20


def _int(data: dict, key: str, default: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise BencodeError(f"{key!r} must be an integer")
    return value


def _opt_int(data: dict, key: str) -> int | None:
    if key not in data:
        return None
    return _int(data, key)


def _bytes(data: dict, key: str) -> bytes:
    value = data.get(key, b"")
    if not isinstance(value, bytes):
        raise BencodeError(f"{key!r} must be a byte string")
    return value


def _text(data: dict, key: str) -> str:
    return _bytes(data, key).decode("utf-8", "surrogateescape")


def _text_list(value: Any, what: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, bytes) for v in value):
        raise BencodeError(f"{what} must be a list of strings")
    return [v.decode("utf-8", "surrogateescape") for v in value]


@dataclass
class FileInfo:
    """One file of a torrent: its length, relative path and optional md5sum."""

    length: int
    path: list[str] = field(default_factory=list)
    sum: bytes = b""

    def file_path(self, base: str = "") -> str:
        """Return the file's path, placed under ``base`` if one is given."""
        parts = [p for p in ([base, *self.path] if base else self.path) if p]
        if not parts:
            return ""
        return os.path.normpath(os.path.join(*parts))


def _file_to_dict(f: FileInfo) -> dict:
    d: dict[str, Any] = {"length": f.length, "path": list(f.path)}
    if f.sum:
        d["md5sum"] = f.sum
    return d


def _file_from_dict(data: Any) -> FileInfo:
    if not isinstance(data, dict):
        raise BencodeError("file entry must be a dictionary")
    return FileInfo(
        length=_int(data, "length"),
        path=_text_list(data.get("path", []), "file path"),
        sum=_bytes(data, "md5sum"),
    )


@dataclass
class Info:
    """The info section of a torrent file."""

    piece_length: int = 0
    pieces: bytes = b""
    path: str = ""
    files: list[FileInfo] = field(default_factory=list)
    private: int | None = None
    length: int = 0
    sum: bytes = b""

    def get_files(self) -> list[FileInfo]:
        """Files described by this section; single-file mode gives one entry."""
        if self.length > 0:
            return [FileInfo(length=self.length, path=[self.path], sum=self.sum)]
        return list(self.files)

    def num_pieces(self) -> int:
        return len(self.pieces) // _HASH_LEN

    def check_piece(self, index: int, data: bytes) -> bool:
        """Return True if ``data`` hashes to the stored hash of piece ``index``."""
        if 0 <= index < self.num_pieces():
            digest = hashlib.sha1(data).digest()
            expected = self.pieces[index * _HASH_LEN:(index + 1) * _HASH_LEN]
            if digest == expected:
                return True
            log.warn("piece missmatch: %s != %s", digest.hex(), expected.hex())
            return False
        log.error("piece index out of bounds")
        return False

    def to_dict(self) -> dict:
        """Return the bencodable form of this section."""
        d: dict[str, Any] = {
            "piece length": self.piece_length,
            "pieces": self.pieces,
            "name": self.path,
        }
        if self.files:
            d["files"] = [_file_to_dict(f) for f in self.files]
        if self.private is not None:
            d["private"] = self.private
        if self.length:
            d["length"] = self.length
        if self.sum:
            d["md5sum"] = self.sum
        return d


def info_from_dict(data: Any) -> Info:
    """Build an :class:`Info` from a decoded info dictionary."""
    if not isinstance(data, dict):
        raise BencodeError("info must be a dictionary")
    files_raw = data.get("files", [])
    if not isinstance(files_raw, list):
        raise BencodeError("'files' must be a list")
    return Info(
        piece_length=_int(data, "piece length"),
        pieces=_bytes(data, "pieces"),
        path=_text(data, "name"),
        files=[_file_from_dict(f) for f in files_raw],
        private=_opt_int(data, "private"),
        length=_int(data, "length"),
        sum=_bytes(data, "md5sum"),
    )


@dataclass
class TorrentFile:
    """A torrent file; ``raw_info`` holds the exact bytes of the info section."""

    info: Info = field(default_factory=Info)
    raw_info: bytes = b""
    announce: str = ""
    announce_list: list[list[str]] = field(default_factory=list)
    created: int = 0
    comment: bytes = b""
    created_by: bytes = b""
    encoding: bytes = b""

    def length_of_piece(self, idx: int) -> int:
        """Length of piece ``idx``; the last piece may be short."""
        np = self.info.num_pieces()
        pl = self.info.piece_length
        if np == idx + 1:
            return pl - (np * pl - self.total_size())
        return pl

    def total_size(self) -> int:
        if self.is_single_file():
            return self.info.length
        return sum(f.length for f in self.info.files)

    def get_all_announce_urls(self) -> list[str]:
        urls = [self.announce] if self.announce else []
        urls.extend(a for tier in self.announce_list for a in tier if a)
        return urls

    def torrent_name(self) -> str:
        return self.info.path

    def infohash(self) -> bytes:
        """SHA-1 digest of the raw info section."""
        return hashlib.sha1(self.raw_info).digest()

    def infohash_hex(self) -> str:
        return self.infohash().hex()

    def is_single_file(self) -> bool:
        return self.info.length > 0

    def is_private(self) -> bool:
        return self.info.private is not None and self.info.private > 0

    def dump(self, stream: BinaryIO) -> None:
        """Bencode this torrent to ``stream``, keeping the raw info bytes."""
        raw = self.raw_info or bencode.encode(self.info.to_dict())
        rest = bencode.encode({
            "announce": self.announce,
            "announce-list": self.announce_list,
            "created": self.created,
            "comment": self.comment,
            "created by": self.created_by,
            "encoding": self.encoding,
        })
        # "info" sorts after every other key, so it goes last.
        stream.write(rest[:-1] + bencode.encode(b"info") + raw + b"e")


def _value_end(data: bytes, pos: int) -> int:
    token = data[pos:pos + 1]
    if token == b"i":
        return data.index(b"e", pos) + 1
    if token in (b"l", b"d"):
        pos += 1
        while data[pos:pos + 1] != b"e":
            if pos >= len(data):
                raise BencodeError("unterminated container")
            pos = _value_end(data, pos)
        return pos + 1
    if token.isdigit():
        colon = data.index(b":", pos)
        return colon + 1 + int(data[pos:colon])
    raise BencodeError(f"unexpected byte {token!r} at offset {pos}")


def _find_raw_info(data: bytes) -> bytes | None:
    pos = 1
    while data[pos:pos + 1] != b"e":
        key_end = _value_end(data, pos)
        colon = data.index(b":", pos)
        value_end = _value_end(data, key_end)
        if data[colon + 1:key_end] == b"info":
            return data[key_end:value_end]
        pos = value_end
    return None


def _announce_list(obj: dict) -> list[list[str]]:
    raw = obj.get("announce-list", [])
    if not isinstance(raw, list):
        raise BencodeError("'announce-list' must be a list")
    return [_text_list(tier, "announce tier") for tier in raw]


def load_torrent(stream: BinaryIO) -> TorrentFile:
    """Read a torrent file from ``stream``."""
    data = bytes(stream.read())
    try:
        end = _value_end(data, 0)
    except (ValueError, IndexError) as exc:
        raise BencodeError("malformed torrent data") from exc
    data = data[:end]
    obj = bencode.decode(data)
    if not isinstance(obj, dict):
        raise BencodeError("torrent must be a dictionary")
    raw = _find_raw_info(data)
    if raw is None:
        raise BencodeError("torrent has no info section")
    return TorrentFile(
        info=info_from_dict(obj["info"]),
        raw_info=raw,
        announce=_text(obj, "announce"),
        announce_list=_announce_list(obj),
        created=_int(obj, "created"),
        comment=_bytes(obj, "comment"),
        created_by=_bytes(obj, "created by"),
        encoding=_bytes(obj, "encoding"),
    )


def torrent_from_info_bytes(data: bytes) -> TorrentFile:
    """Build a torrent from the raw bytes of an info section."""
    raw = bytes(data)
    return TorrentFile(info=info_from_dict(bencode.decode(raw)), raw_info=raw)


def torrent_from_info(info: Info) -> TorrentFile:
    """Build a torrent from an :class:`Info`, encoding its raw bytes."""
    return TorrentFile(info=info, raw_info=bencode.encode(info.to_dict()))