"""Announcing to BitTorrent trackers over an abstract network."""

from __future__ import annotations

import abc
import datetime
import enum
import http.client
import io
import threading
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

from xdtorrent import bencode, log
from xdtorrent.bencode import BencodeError
from xdtorrent.i2p.addr import _split_host_port

_RESOLVE_INTERVAL = datetime.timedelta(hours=1)
_COMPACT_PEER_LEN = 32
_DEFAULT_INTERVAL = 30
_FALLBACK_INTERVAL = 60
_EPOCH = datetime.datetime.fromtimestamp(0, tz=datetime.timezone.utc)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Network(abc.ABC):
    """A network session that can dial, accept and resolve names."""

    @abc.abstractmethod
    def dial(self, network: str, address: str):
        """Open a stream to ``address``."""

    @abc.abstractmethod
    def accept(self):
        """Wait for and return the next inbound stream."""

    @abc.abstractmethod
    def read_from(self, size: int):
        """Return the next datagram and its sender."""

    @abc.abstractmethod
    def write_to(self, data: bytes, to) -> int:
        """Send a datagram to ``to``."""

    @abc.abstractmethod
    def open(self) -> None:
        """Open the session."""

    @abc.abstractmethod
    def close(self) -> None:
        """Close the session."""

    @abc.abstractmethod
    def addr(self):
        """Our own address on this network."""

    @abc.abstractmethod
    def lookup(self, name: str, port: str):
        """Resolve ``name`` and ``port`` to an address."""


class Event(str, enum.Enum):
    """Announce event sent to the tracker."""

    STARTED = "started"
    STOPPED = "stopped"
    COMPLETED = "completed"
    NOP = ""

    def __str__(self) -> str:
        return self.value


@dataclass
class Peer:
    """A peer returned by a tracker, either compact or by address."""

    compact: bytes = b""
    ip: str = ""
    port: int = 0


@dataclass
class AnnounceRequest:
    """Parameters of one announce."""

    infohash: bytes
    peer_id: bytes
    network: Network
    port: int = 0
    uploaded: int = 0
    downloaded: int = 0
    left: int = 0
    event: Event = Event.NOP
    num_want: int = 0
    compact: bool = False


@dataclass
class AnnounceResponse:
    """What a tracker answered and when to announce next."""

    interval: int = 0
    peers: list[Peer] = field(default_factory=list)
    error: str = ""
    next_announce: datetime.datetime | None = None


class AnnounceError(Exception):
    """An announce failed; ``response`` still carries the next announce time."""

    def __init__(self, message: str, response: AnnounceResponse | None = None) -> None:
        super().__init__(message)
        self.response = response


class _Replay:
    """Socket stand-in that replays an already received HTTP response."""

    def __init__(self, data: bytes) -> None:
        self._data = data

    def makefile(self, mode: str, *args, **kwargs) -> io.BytesIO:
        return io.BytesIO(self._data)


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "surrogateescape")
    if value is None:
        return ""
    return str(value)


def _peer_from_dict(entry: Any) -> Peer | None:
    if not isinstance(entry, dict):
        return None
    port = entry.get("port")
    if isinstance(port, bool) or not isinstance(port, int):
        port = 0
    return Peer(ip=_text(entry.get("ip")), port=port)


class HttpTracker:
    """Tracker reached with HTTP GET requests over the request's network."""

    def __init__(self, url: str | SplitResult) -> None:
        self._url = urlsplit(url) if isinstance(url, str) else url
        self._resolve_interval = _RESOLVE_INTERVAL
        self._last_resolved = _EPOCH
        self._addr = None
        self._lock = threading.Lock()

    def name(self) -> str:
        return urlunsplit(self._url)

    def _should_resolve(self) -> bool:
        return self._last_resolved + self._resolve_interval < _now()

    def _connect(self, network: Network):
        with self._lock:
            if self._should_resolve():
                if ":" not in self._url.netloc:
                    self._url = self._url._replace(netloc=self._url.netloc + ":80")
                host, port = _split_host_port(self._url.netloc)
                addr = network.lookup(host, port)
                self._addr = addr
                self._last_resolved = _now()
            else:
                addr = self._addr
        return network.dial(addr.network(), str(addr))

    def _query(self, req: AnnounceRequest, url: SplitResult) -> str:
        pairs: list[tuple[str, Any]] = parse_qsl(url.query, keep_blank_values=True)
        local = req.network.addr()
        try:
            host = _split_host_port(str(local))[0]
        except ValueError:
            host = ""
        if local.network() == "i2p":
            host += ".i2p"
            req.compact = True
        pairs += [
            ("ip", host),
            ("info_hash", bytes(req.infohash)),
            ("peer_id", bytes(req.peer_id)),
            ("port", str(req.port)),
            ("numwant", str(req.num_want)),
            ("left", str(req.left)),
        ]
        if req.event != Event.NOP:
            pairs.append(("event", str(req.event)))
        pairs.append(("downloaded", str(req.downloaded)))
        pairs.append(("uploaded", str(req.uploaded)))
        if req.compact or url.path != "/a":
            req.compact = True
            pairs.append(("compact", "1"))
        pairs.sort(key=lambda kv: kv[0])
        return urlencode(pairs)

    def _fetch(self, req: AnnounceRequest) -> bytes:
        url = self._url
        target = (url.path or "/") + "?" + self._query(req, url)
        log.debug("%s announcing", self.name())
        conn = self._connect(req.network)
        try:
            conn.write(f"GET {target} HTTP/1.1\r\nHost: {url.netloc}\r\n"
                       f"Connection: close\r\n\r\n".encode("utf-8"))
            chunks = []
            while True:
                chunk = conn.read(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            conn.close()
        response = http.client.HTTPResponse(_Replay(b"".join(chunks)), method="GET")
        response.begin()
        try:
            return response.read()
        finally:
            response.close()

    def _parse(self, req: AnnounceRequest, body: bytes, resp: AnnounceResponse) -> tuple[int, str]:
        obj = bencode.load(io.BytesIO(body))
        if not isinstance(obj, dict):
            raise BencodeError("announce response must be a dictionary")
        interval = obj.get("interval", 0)
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise BencodeError("'interval' must be an integer")
        reason = _text(obj.get("failure reason", b""))
        peers = obj.get("peers")
        if isinstance(peers, bytes):
            if not req.compact:
                raise BencodeError("'peers' must be a list")
            count = len(peers) // _COMPACT_PEER_LEN
            for n in range(count, 0, -1):
                chunk = peers[(n - 1) * _COMPACT_PEER_LEN:n * _COMPACT_PEER_LEN]
                resp.peers.append(Peer(compact=chunk))
        elif isinstance(peers, list):
            for entry in peers:
                peer = _peer_from_dict(entry)
                if peer is not None:
                    resp.peers.append(peer)
        resp.interval = interval
        resp.error = reason
        return interval, reason

    def announce(self, req: AnnounceRequest) -> AnnounceResponse:
        """Announce to the tracker and return the peers it gave.

        Raises :class:`AnnounceError` on failure; its ``response`` holds the
        time of the next announce.
        """
        resp = AnnounceResponse()
        interval = _DEFAULT_INTERVAL
        error: Exception | None = None
        try:
            interval, reason = self._parse(req, self._fetch(req), resp)
            if reason:
                error = AnnounceError(reason)
        except (OSError, ValueError, EOFError, http.client.HTTPException) as exc:
            error = exc
        if error is None:
            log.info("%s got %d peers for %s", self.name(), len(resp.peers), bytes(req.infohash).hex())
        else:
            log.warn("%s got error while announcing: %s", self.name(), error)
        if interval == 0:
            interval = _FALLBACK_INTERVAL
        resp.next_announce = _now() + datetime.timedelta(seconds=interval)
        if error is not None:
            raise AnnounceError(str(error), resp) from error
        return resp


def from_url(url: str) -> HttpTracker | None:
    """Return a tracker for an http URL, or None for anything else."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme == "http":
        return HttpTracker(parts)
    return None