# xdtorrent

Building blocks for a BitTorrent client that runs over I2P or over a TCP
overlay network whose hosts are named by reverse DNS.

The package needs Python 3.10 or newer and depends on `paramiko` (for the
SFTP driver) and `dnspython` (for the overlay internet session).

## Modules

- `xdtorrent.bencode`: `encode`, `decode`, `dump`, `load` and `BencodeError`.
  Byte strings decode to `bytes`, dictionary keys decode to `str`.
- `xdtorrent.metainfo`: `TorrentFile`, `Info`, `FileInfo`, `load_torrent`,
  `torrent_from_info`, `torrent_from_info_bytes` and `info_from_dict`.
- `xdtorrent.mktorrent`: `make_torrent(driver, fpath, piece_length)` for a
  single file or a whole directory.
- `xdtorrent.fs`: the abstract `Driver` and the local `StdFS` (also available
  as the instance `STD`).
- `xdtorrent.sftp`: `SFTPDriver`, storage on a remote host over SSH, checked
  against a fixed base64 host key.
- `xdtorrent.rate`: `Rate` and `RateSample`, a ring of per-tick samples.
- `xdtorrent.stats`: `Tracker`, one `Rate` per name, saved as bencode.
- `xdtorrent.settings`: `FsSettings`, string options saved as bencode.
- `xdtorrent.tracker`: `from_url`, `HttpTracker`, `AnnounceRequest`,
  `AnnounceResponse`, `AnnounceError`, `Event`, `Peer` and the abstract
  `Network`.
- `xdtorrent.i2p.addr`, `xdtorrent.i2p.keyfile`, `xdtorrent.i2p.sam`: I2P
  addresses (`I2PAddr`, `Base32Addr`), destination key files (`Keyfile`) and
  SAM v3 sessions (`new_session`, `SamSession`, `SamError`).
- `xdtorrent.inet`: `new_session(port, dns)` and `InetSession`, which listens
  and dials from the address of `localhost.loki` and names peers by reverse
  lookups through the given DNS server.
- `xdtorrent.rpc.requests`: the daemon's JSON-RPC request types, each with
  `to_json()`, plus `TorrentAction` and a `ResponseWriter`.
- `xdtorrent.rpc.transmission`: Transmission-style `Request`, `Response` and
  the one-minute `XsrfToken`.
- `xdtorrent.gnutella`: `GnutellaConn` and `GnutellaSwarm`.
- `xdtorrent.log`, `xdtorrent.util`, `xdtorrent.version`: logging, helpers
  such as `format_rate` and `ratio`, and `version(git)`.

## Making and reading a torrent

```python
from xdtorrent.fs import StdFS
from xdtorrent.mktorrent import make_torrent
from xdtorrent.metainfo import load_torrent

driver = StdFS()
torrent = make_torrent(driver, "data/example.bin", 65536)
print(torrent.torrent_name(), torrent.infohash_hex(), torrent.total_size())

with open("example.torrent", "wb") as out:
    torrent.dump(out)

with open("example.torrent", "rb") as src:
    again = load_torrent(src)
assert again.infohash() == torrent.infohash()
```

`Info.check_piece(index, data)` compares a piece's SHA-1 digest with the one
recorded in the info section, and `TorrentFile.length_of_piece(idx)` gives the
size of any piece, including the shorter last one.

## Bencode

```python
from xdtorrent import bencode

raw = bencode.encode({"settings": {"dir": "/srv/torrents"}})
assert bencode.decode(raw) == {"settings": {"dir": b"/srv/torrents"}}
```

Malformed input, or trailing data after the value passed to `decode`, raises
`bencode.BencodeError`.

## Transfer statistics

```python
from xdtorrent.stats import Tracker
from xdtorrent.util import format_rate

stats = Tracker()
stats.new_rate("download")
stats.add_sample("download", 4096)
stats.tick()
for name, rate in stats.items():
    print(name, format_rate(rate.mean()))
```

## Announcing to a tracker

`from_url` returns an `HttpTracker` for `http` URLs and `None` otherwise. An
`AnnounceRequest` carries the network to announce over: any object with the
`Network` methods, such as a `SamSession` or an `InetSession`. On failure
`announce` raises `AnnounceError`, whose `response` still holds the time of
the next announce.

```python
from xdtorrent.i2p.sam import new_session
from xdtorrent.tracker import AnnounceRequest, Event, from_url

with new_session("XD", "127.0.0.1:7656", "transient", None) as session:
    tracker = from_url("http://tracker.example.com/announce")
    req = AnnounceRequest(infohash=bytes(20), peer_id=bytes(20),
                          network=session, port=6881, event=Event.STARTED)
    resp = tracker.announce(req)
    print(len(resp.peers), resp.next_announce)
```

## Logging

```python
from xdtorrent import log

log.set_level("debug")
log.info("checking %s", "example.bin")
```

`log.fatal` writes its message and then raises `log.FatalLogError`.

## What this package does not do

It is a library only. It has no command to run, no daemon, no swarm or peer
wire protocol, no torrent storage sessions and no RPC server or client: the
`xdtorrent.rpc` modules define the messages and a `ResponseWriter`, but
nothing here sends requests to a daemon or answers them.