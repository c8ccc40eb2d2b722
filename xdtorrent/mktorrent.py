"""Create torrents from files on a filesystem driver."""

from __future__ import annotations

import glob as _glob
import hashlib
import os
import stat as _stat
from typing import BinaryIO, Iterator

from xdtorrent.fs import Driver
from xdtorrent.metainfo import FileInfo, Info, TorrentFile, torrent_from_info


class _PieceHasher:
    """Hashes a stream of data, possibly spread over several files, in pieces."""

    def __init__(self, piece_length: int) -> None:
        self.piece_length = piece_length
        self._buf = bytearray()
        self._pieces = bytearray()

    def feed(self, stream: BinaryIO) -> int:
        total = 0
        while True:
            chunk = stream.read(self.piece_length - len(self._buf))
            if not chunk:
                return total
            total += len(chunk)
            self._buf += chunk
            if len(self._buf) == self.piece_length:
                self._pieces += hashlib.sha1(self._buf).digest()
                self._buf.clear()

    def finish(self) -> bytes:
        if self._buf:
            self._pieces += hashlib.sha1(self._buf).digest()
            self._buf.clear()
        return bytes(self._pieces)


def _base_name(driver: Driver, fpath: str) -> str:
    stripped = fpath.rstrip("/" + os.sep) or fpath
    return driver.split(stripped)[1]


def _walk(driver: Driver, root: str, prefix: list[str]) -> Iterator[tuple[list[str], str]]:
    for entry in driver.glob(driver.join(_glob.escape(root), "*")):
        name = driver.split(entry)[1]
        if _stat.S_ISDIR(driver.stat(entry).st_mode or 0):
            yield from _walk(driver, entry, [*prefix, name])
        else:
            yield [*prefix, name], entry


def _make_single(driver: Driver, fpath: str, piece_length: int) -> TorrentFile:
    hasher = _PieceHasher(piece_length)
    with driver.open_file_read_only(fpath) as f:
        length = hasher.feed(f)
    info = Info(piece_length=piece_length, path=_base_name(driver, fpath),
                length=length, pieces=hasher.finish())
    return torrent_from_info(info)


def _make_dir(driver: Driver, fpath: str, piece_length: int) -> TorrentFile:
    hasher = _PieceHasher(piece_length)
    files = []
    for rel, full in _walk(driver, fpath, []):
        with driver.open_file_read_only(full) as f:
            files.append(FileInfo(length=hasher.feed(f), path=rel))
    info = Info(piece_length=piece_length, path=_base_name(driver, fpath),
                files=files, pieces=hasher.finish())
    return torrent_from_info(info)


def make_torrent(driver: Driver, fpath: str, piece_length: int) -> TorrentFile:
    """Build a torrent for a file or directory with pieces of ``piece_length`` bytes."""
    if piece_length <= 0:
        raise ValueError("piece length must be positive")
    st = driver.stat(fpath)
    if _stat.S_ISDIR(st.st_mode or 0):
        return _make_dir(driver, fpath, piece_length)
    return _make_single(driver, fpath, piece_length)