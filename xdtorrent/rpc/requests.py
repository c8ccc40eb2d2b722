"""Requests understood by the daemon's JSON RPC and the response writer."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, BinaryIO

RPC_PATH = "/ecksdee/api"
RPC_NAME = "XD"
RPC_CONTENT_TYPE = "text/json; encoding=UTF-8"

RPC_LIST_TORRENTS = RPC_NAME + ".ListTorrents"
RPC_LIST_TORRENT_STATUS = RPC_NAME + ".SwarmStatus"
RPC_TORRENT_STATUS = RPC_NAME + ".TorrentStatus"
RPC_ADD_TORRENT = RPC_NAME + ".AddTorrent"
RPC_DEL_TORRENT = RPC_NAME + ".DelTorrent"
RPC_SET_PIECE_WINDOW = RPC_NAME + ".SetPieceWindow"
RPC_CHANGE_TORRENT = RPC_NAME + ".ChangeTorrent"
RPC_SWARM_COUNT = RPC_NAME + ".SwarmCount"

PARAM_INFOHASH = "infohash"
PARAM_URL = "url"
PARAM_N = "n"
PARAM_ACTION = "action"
PARAM_SWARMS = "swarms"
PARAM_METHOD = "method"
PARAM_SWARM = "swarm"


def _dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True)


class TorrentAction(str, enum.Enum):
    """Change that can be applied to a torrent."""

    START = "start"
    STOP = "stop"
    REMOVE = "remove"
    DELETE = "delete"


@dataclass
class AddTorrentRequest:
    """Add a torrent from a URL."""

    url: str
    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_SWARM: self.swarm, PARAM_URL: self.url,
                       PARAM_METHOD: RPC_ADD_TORRENT})


@dataclass
class ChangeTorrentRequest:
    """Start, stop, remove or delete a torrent."""

    infohash: str
    action: TorrentAction | str
    swarm: str = ""

    def to_json(self) -> str:
        action = self.action.value if isinstance(self.action, TorrentAction) else self.action
        return _dumps({PARAM_SWARM: self.swarm, PARAM_INFOHASH: self.infohash,
                       PARAM_ACTION: action, PARAM_METHOD: RPC_CHANGE_TORRENT})


@dataclass
class ListTorrentsRequest:
    """List the infohashes of all torrents."""

    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_SWARM: self.swarm, PARAM_METHOD: RPC_LIST_TORRENTS})


@dataclass
class ListTorrentStatusRequest:
    """Status of every torrent in a swarm."""

    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_SWARM: self.swarm, PARAM_METHOD: RPC_LIST_TORRENT_STATUS})


@dataclass
class SetPieceWindowRequest:
    """Set the number of outstanding piece requests."""

    n: int
    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_METHOD: RPC_SET_PIECE_WINDOW, PARAM_N: self.n,
                       PARAM_SWARM: self.swarm})


@dataclass
class SwarmCountRequest:
    """Number of swarms the daemon runs."""

    n: int = 0
    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_SWARMS: self.n, PARAM_METHOD: RPC_SWARM_COUNT})


@dataclass
class TorrentStatusRequest:
    """Status of one torrent."""

    infohash: str
    swarm: str = ""

    def to_json(self) -> str:
        return _dumps({PARAM_SWARM: self.swarm, PARAM_METHOD: RPC_TORRENT_STATUS,
                       PARAM_INFOHASH: self.infohash})


class ResponseWriter:
    """Writes JSON replies, one per line, to a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def send_json(self, obj: Any) -> None:
        self._stream.write((_dumps(obj) + "\n").encode("utf-8"))

    def send_error(self, msg: str) -> None:
        self.send_json({"error": msg})

    def send_result(self, obj: Any) -> None:
        self.send_json(obj)