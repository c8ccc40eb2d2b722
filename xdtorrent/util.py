"""Assorted helpers: files, rates, random values and stream writing."""

from __future__ import annotations

import base64
import datetime
import math
import os
import random
from typing import BinaryIO
from urllib.parse import SplitResult, ParseResult, urlsplit

from xdtorrent import log

_WINDOWS = os.name == "nt"
_RATE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_ZERO_CHUNK = 64 * 1024
_STARTED_AT = datetime.datetime.now().astimezone()
_UNKNOWN_CLIENT = "idklol"


def format_rate(rate: float) -> str:
    """Format a bytes-per-second rate with the closest unit."""
    if math.isinf(rate):
        return "infinity"
    unit = 0
    while rate > 1024.0:
        rate /= 1024.0
        unit += 1
    return f"{rate:.2f}{_RATE_UNITS[unit]}/sec"


def check_file(fpath) -> bool:
    """Return True unless the path is known not to exist."""
    try:
        os.stat(fpath)
    except FileNotFoundError:
        return False
    except OSError:
        return True
    return True


def ensure_dir(fpath) -> None:
    """Create a directory and its parents if missing."""
    os.makedirs(fpath, exist_ok=True)


def ensure_file(fpath, size: int) -> None:
    """Make sure a file and its directory exist; new files are zero filled."""
    fpath = os.fspath(fpath)
    directory = os.path.dirname(fpath)
    if directory:
        ensure_dir(directory)
    try:
        os.stat(fpath)
        return
    except FileNotFoundError:
        pass
    log.debug("create file %s", fpath)
    with open(fpath, "wb") as f:
        if size > 0:
            write_zeros(f, size)


def client_name_from_id(peer_id) -> str:
    """Return the client name for a peer id; clients are not identified.

    Raises TypeError when ``peer_id`` is not a bytes-like object.
    """
    try:
        memoryview(peer_id)
    except TypeError:
        raise TypeError("peer id must be bytes-like") from None
    return _UNKNOWN_CLIENT


def scheme_path(url) -> tuple[str, str]:
    """Split a URL into its lower-cased scheme and a local path."""
    parts = url if isinstance(url, (SplitResult, ParseResult)) else urlsplit(url)
    scheme = parts.scheme.lower()
    if _WINDOWS:
        if len(scheme) == 1:
            scheme = "file"
        return scheme, parts.geturl()
    return scheme, parts.path


def started_at() -> datetime.datetime:
    """Time at which the program started."""
    return _STARTED_AT


def rand_bool_percent(percent: int) -> bool:
    """Return a random boolean weighted by ``percent``."""
    return random.random() * ((100 - percent) % 256) > percent


def rand_str(length: int) -> str:
    """Return a random base32 string of ``length`` characters."""
    return base64.b32encode(os.urandom(length)).decode("ascii")[:length]


def ratio(tx: float, rx: float) -> float:
    """Return tx/rx, infinity when only tx is positive, else zero."""
    if rx > 0:
        return tx / rx
    if tx > 0:
        return math.inf
    return 0.0


def write_full(stream: BinaryIO, data) -> None:
    """Write all of ``data`` to ``stream``, retrying short writes."""
    view = memoryview(data)
    total = len(view)
    written = 0
    while written < total:
        n = stream.write(view[written:])
        if n is None:
            n = total - written
        if n == 0:
            raise OSError(f"short write: {written} of {total} bytes")
        log.debug("wrote %d of %d", n, total)
        written += n


def write_zeros(stream: BinaryIO, size: int) -> None:
    """Write ``size`` zero bytes to ``stream``."""
    chunk = bytes(min(size, _ZERO_CHUNK))
    remaining = size
    while remaining > 0:
        n = min(remaining, len(chunk))
        write_full(stream, chunk[:n])
        remaining -= n


def string_compare(a: str, b: str) -> int:
    """Three-way comparison of two strings: -1, 0 or 1."""
    return (a > b) - (a < b)