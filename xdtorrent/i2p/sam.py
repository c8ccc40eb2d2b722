"""I2P sessions over the SAM v3 bridge: streams, lookups and datagrams."""

from __future__ import annotations

import dataclasses
import socket
import threading
from typing import Mapping

from xdtorrent.i2p.addr import I2PAddr, _split_host_port, i2p_addr
from xdtorrent.i2p.keyfile import SIG_TYPE, Keyfile, new_keyfile, read_line

_MAX_DATAGRAM = 65336


class SamError(ConnectionError):
    """The SAM bridge refused or failed a request."""


def _expect_ok(line: str, skip: set[str]) -> None:
    for word in line.split():
        upper = word.upper()
        if upper in skip:
            continue
        if upper == "RESULT=OK":
            return
        raise SamError(line.strip())
    raise SamError(f"no result in reply: {line.strip()!r}")


def _lookup_port(port: str, proto: str) -> int:
    if port.isdigit():
        n = int(port)
        if n > 65535:
            raise ValueError(f"invalid port {port}")
        return n
    return socket.getservbyname(port, proto)


def _set_keepalive(sock: socket.socket, on: bool) -> None:
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1 if on else 0)
        if on:
            for opt in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
                if hasattr(socket, opt):
                    sock.setsockopt(socket.IPPROTO_TCP, getattr(socket, opt), 5)
    except OSError:
        pass


class I2PConn:
    """A stream to a remote destination over a SAM socket."""

    def __init__(self, sock: socket.socket, laddr: I2PAddr, raddr: I2PAddr) -> None:
        self.sock = sock
        self.laddr = laddr
        self.raddr = raddr

    def read(self, size: int = 4096) -> bytes:
        return self.sock.recv(size)

    def write(self, data: bytes) -> int:
        self.sock.sendall(data)
        return len(data)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "I2PConn":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


@dataclasses.dataclass
class I2PPacketConn:
    """Datagrams forwarded by the SAM bridge over UDP."""

    sock: socket.socket | None = None
    laddr: I2PAddr = dataclasses.field(default_factory=I2PAddr)
    samaddr: tuple | None = None
    version: str = ""

    def read_from(self, size: int) -> tuple[bytes, I2PAddr]:
        """Return the next datagram of at most ``size`` bytes and its sender."""
        if self.sock is None:
            raise SamError("no datagram session")
        while True:
            data, frm = self.sock.recvfrom(_MAX_DATAGRAM)
            if self.samaddr is None or tuple(frm[:2]) != tuple(self.samaddr[:2]):
                continue
            idx = data.find(b"\n")
            if idx <= 0:
                continue
            parts = data[:idx - 1].split(b" ", 1)
            if len(parts) < 2:
                continue
            sender = i2p_addr(parts[1].split(b" ")[-1].decode("utf-8", "replace"))
            payload = data[idx + 1:]
            if len(payload) > size:
                continue
            return payload, sender

    def write_to(self, data: bytes, to: I2PAddr) -> int:
        """Send ``data`` to destination ``to`` through the bridge."""
        if self.sock is None or self.samaddr is None:
            raise SamError("no datagram session")
        header = f"{self.version} {to}\n".encode("utf-8")
        self.sock.sendto(header + bytes(data), self.samaddr)
        return len(data)

    def close(self) -> None:
        if self.sock is not None:
            self.sock.close()


class SamSession:
    """A named session on a SAM bridge."""

    def __init__(self, name: str, address: str, keys: Keyfile,
                 opts: Mapping[str, str] | None = None,
                 minversion: str = "3.0", maxversion: str = "3.0") -> None:
        self._name = name
        self._address = address
        self.keys = keys
        self.opts = dict(opts) if opts else {}
        self.minversion = minversion
        self.maxversion = maxversion
        self.pktconn = I2PPacketConn()
        self._control: socket.socket | None = None
        self._lock = threading.Lock()

    def __enter__(self) -> "SamSession":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def name(self) -> str:
        return self._name

    def b32_addr(self) -> str:
        return str(self.keys.addr().base32_addr())

    def addr(self) -> I2PAddr:
        return self.keys.addr()

    def local_addr(self) -> I2PAddr:
        return self.keys.addr()

    def open_control_socket(self) -> socket.socket:
        """Connect to the bridge and complete the HELLO handshake."""
        host, port = _split_host_port(self._address)
        sock = socket.create_connection((host, _lookup_port(port, "tcp")))
        try:
            _set_keepalive(sock, True)
            sock.sendall(
                f"HELLO VERSION MIN={self.minversion} MAX={self.maxversion}\n".encode("ascii"))
            _expect_ok(read_line(sock), {"HELLO", "REPLY"})
        except BaseException:
            sock.close()
            raise
        return sock

    def dial_i2p(self, addr: I2PAddr) -> I2PConn:
        """Open a stream to a resolved destination."""
        nc = self.open_control_socket()
        try:
            port = f" PORT={_lookup_port(addr.port, 'tcp')}" if addr.port else ""
            nc.sendall(f"STREAM CONNECT ID={self._name} DESTINATION={addr.addr}{port} "
                       f"SILENT=false\n".encode("utf-8"))
            _expect_ok(read_line(nc), {"STREAM", "STATUS"})
            try:
                nc.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 0)
                nc.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 2400)
            except OSError:
                pass
        except BaseException:
            nc.close()
            raise
        return I2PConn(nc, self.keys.addr(), addr)

    def dial(self, network: str, address: str) -> I2PConn:
        """Resolve ``address`` and open a stream to it."""
        return self.dial_i2p(self.lookup_i2p(address))

    def lookup_i2p(self, name: str) -> I2PAddr:
        """Resolve a name (optionally with a port) to a destination."""
        try:
            name, port = _split_host_port(name)
        except ValueError:
            port = ""
        with self._lock:
            control = self._control
            if control is None:
                raise SamError("session closed")
            control.sendall(f"NAMING LOOKUP NAME={name}\n".encode("utf-8"))
            line = read_line(control)
        for txt in line.split():
            upper = txt.upper()
            if upper in ("NAMING", "REPLY", "RESULT=OK") or upper.startswith("NAME="):
                continue
            if txt.startswith("VALUE="):
                return dataclasses.replace(i2p_addr(txt[6:]), port=port)
            raise SamError(line.strip())
        raise SamError(f"no value in reply: {line.strip()!r}")

    def lookup(self, name: str, port: str) -> I2PAddr:
        return self.lookup_i2p(name)

    def accept(self) -> I2PConn:
        """Wait for and return the next inbound stream."""
        laddr = i2p_addr(self.keys.pubkey)
        nc = self.open_control_socket()
        try:
            nc.sendall(f"STREAM ACCEPT ID={self._name} SILENT=false\n".encode("utf-8"))
            _expect_ok(read_line(nc), {"STREAM", "STATUS", "RESULT"})
            line = read_line(nc)
            _set_keepalive(nc, False)
        except BaseException:
            nc.close()
            raise
        return I2PConn(nc, laddr, i2p_addr(line[:-1]))

    def read_from(self, size: int) -> tuple[bytes, I2PAddr]:
        return self.pktconn.read_from(size)

    def write_to(self, data: bytes, to: I2PAddr) -> int:
        return self.pktconn.write_to(data, to)

    def _udp_addr(self) -> tuple[tuple[str, int], tuple[str, int]]:
        host, port = _split_host_port(self._address)
        sam_ip = socket.gethostbyname(host)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            try:
                probe.connect((sam_ip, 9))
                src = probe.getsockname()[0]
            except OSError as exc:
                raise SamError(f"unroutable address: {host}") from exc
        return (sam_ip, _lookup_port(port, "udp") - 1), (src, 0)

    def _create_session(self, style: str) -> None:
        opts = " inbound.name=XD" + "".join(f" {k}={v}" for k, v in self.opts.items())
        if style == "DATAGRAM":
            samaddr, bindaddr = self._udp_addr()
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            try:
                sock.bind(bindaddr)
                host, port = sock.getsockname()[:2]
            except OSError:
                sock.close()
                raise
            self.pktconn.sock = sock
            self.pktconn.samaddr = samaddr
            opts += f" HOST={host} PORT={port}"
        control = self._control
        if control is None:
            raise SamError("session closed")
        control.sendall(f"SESSION CREATE STYLE={style} ID={self._name} "
                        f"SIGNATURE_TYPE={SIG_TYPE} DESTINATION={self.keys.privkey}"
                        f"{opts}\n".encode("utf-8"))
        _expect_ok(read_line(control), {"SESSION", "STATUS"})

    def open(self) -> None:
        """Connect, make sure keys exist, create the session and learn our address."""
        try:
            self._control = self.open_control_socket()
            self.keys.ensure(self._control)
            self._create_session("STREAM")
            me = self.lookup_i2p("ME")
            self.keys.pubkey = str(me)
            self.pktconn.laddr = me
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        with self._lock:
            control, self._control = self._control, None
        if control is None:
            return
        control.close()
        self.pktconn.close()


def new_session(name: str, addr: str, keyfile: str,
                opts: Mapping[str, str] | None = None) -> SamSession:
    """Create an unopened session named ``name`` on the bridge at ``addr``."""
    return SamSession(name, addr, new_keyfile(keyfile), opts)