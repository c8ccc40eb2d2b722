"""Sessions on a TCP overlay network whose hosts are named by reverse DNS."""

from __future__ import annotations

import errno
import ipaddress
import socket
import sys
from typing import Any

from dns.exception import DNSException
from dns.resolver import NoAnswer, Resolver

from xdtorrent.i2p.addr import _join_host_port, _split_host_port

DEFAULT_HOSTNAME = "localhost.loki"
DEFAULT_PORT = "6888"
DEFAULT_DNS_ADDR = "127.3.2.1:53" if sys.platform.startswith("linux") else "127.0.0.1:53"

_LOOKUP_TIMEOUT = 10.0
_PEER_LOOKUP_TIMEOUT = 2.0


def _lookup_port(port: str) -> int:
    if not port:
        return 0
    if port.isdigit():
        n = int(port)
        if n > 65535:
            raise OSError(f"invalid port {port}")
        return n
    return socket.getservbyname(port, "tcp")


def _is_ip(text: str) -> bool:
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def _reverse(resolver: Any, ip: str, timeout: float) -> str:
    try:
        answer = resolver.resolve_address(ip, lifetime=timeout)
    except DNSException as exc:
        raise OSError(f"reverse lookup of {ip} failed: {exc}") from exc
    names = [str(rdata.target) for rdata in answer]
    if not names:
        raise OSError(f"we have no rdns record for {ip}")
    return names[0].removesuffix(".")


class InetAddr:
    """A host name and port on the overlay network."""

    __slots__ = ("name", "port")

    def __init__(self, name: str = "", port: str = "") -> None:
        self.name = name
        self.port = port

    def network(self) -> str:
        return "tcp"

    def __str__(self) -> str:
        return _join_host_port(self.name, self.port)

    def __repr__(self) -> str:
        return f"InetAddr({self.name!r}, {self.port!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InetAddr):
            return NotImplemented
        return (self.name, self.port) == (other.name, other.port)

    def __hash__(self) -> int:
        return hash((self.name, self.port))


class InetConn:
    """A TCP stream labelled with the names of both ends."""

    def __init__(self, sock: socket.socket, laddr: InetAddr, raddr: InetAddr) -> None:
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

    def __enter__(self) -> "InetConn":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class InetSession:
    """Listens and dials from one local IP, naming peers through ``resolver``."""

    def __init__(self, port: str, local_ip: str, name: str, resolver: Any) -> None:
        self.port = port
        self.local_ip = local_ip
        self._name = name
        self._resolver = resolver
        self._serv: socket.socket | None = None
        self._laddr: InetAddr | None = None

    def __enter__(self) -> "InetSession":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def local_name(self) -> str:
        return self._name

    def _lookup_ips(self, name: str) -> list[str]:
        if _is_ip(name):
            return [name]
        ips: list[str] = []
        failure: Exception | None = None
        for rdtype in ("A", "AAAA"):
            try:
                answer = self._resolver.resolve(name, rdtype, lifetime=_LOOKUP_TIMEOUT)
            except NoAnswer:
                continue
            except DNSException as exc:
                failure = exc
                continue
            ips.extend(str(rdata.address) for rdata in answer)
        if not ips:
            raise OSError(f"no addresses for {name}: {failure or 'no records'}")
        return ips

    def lookup(self, name: str, port: str) -> InetAddr:
        """Resolve ``name`` to its first address, paired with ``port``."""
        ips = self._lookup_ips(name)
        return InetAddr(ips[0], str(_lookup_port(port)))

    def _wrap(self, sock: socket.socket) -> InetConn:
        try:
            host, port = sock.getpeername()[:2]
            peer_name = _reverse(self._resolver, host, _PEER_LOOKUP_TIMEOUT)
        except BaseException:
            sock.close()
            raise
        return InetConn(sock, InetAddr(self._name, self.port), InetAddr(peer_name, str(port)))

    def dial(self, network: str, address: str) -> InetConn:
        """Connect from our local IP to ``host:port``."""
        host, port = _split_host_port(address)
        raddr = self.lookup(host, port)
        sock = socket.create_connection((raddr.name, int(raddr.port)),
                                        source_address=(self.local_ip, 0))
        return self._wrap(sock)

    def open(self) -> None:
        """Start listening on our local IP and configured port."""
        family = socket.AF_INET6 if ":" in self.local_ip else socket.AF_INET
        serv = socket.create_server((self.local_ip, _lookup_port(self.port)), family=family)
        self._serv = serv
        self._laddr = InetAddr(self._name, str(serv.getsockname()[1]))

    def accept(self) -> InetConn:
        """Wait for and return the next inbound connection."""
        if self._serv is None:
            raise OSError("session not open")
        sock, _ = self._serv.accept()
        return self._wrap(sock)

    def read_from(self, size: int) -> tuple[bytes, Any]:
        """Datagrams do not exist on this network; raises OSError."""
        raise OSError(errno.EOPNOTSUPP,
                      f"cannot read a {size}-byte datagram: this network carries streams only")

    def write_to(self, data: bytes, to: Any) -> int:
        """Datagrams do not exist on this network; raises OSError."""
        raise OSError(errno.EOPNOTSUPP,
                      f"cannot send a datagram to {to}: this network carries streams only")

    def close(self) -> None:
        serv, self._serv = self._serv, None
        if serv is not None:
            serv.close()

    def addr(self) -> InetAddr | None:
        """Our listening address, or None before :meth:`open`."""
        return self._laddr


def new_session(port: str, dns: str) -> InetSession:
    """Create a session on our overlay IP, resolving names via the server ``dns``."""
    infos = socket.getaddrinfo(DEFAULT_HOSTNAME, None, type=socket.SOCK_STREAM)
    if not infos:
        raise OSError(f"no addresses for {DEFAULT_HOSTNAME}")
    local_ip = infos[0][4][0]
    host, dns_port = _split_host_port(dns)
    resolver = Resolver(configure=False)
    resolver.nameservers = [host]
    resolver.port = _lookup_port(dns_port)
    name = _reverse(resolver, local_ip, _LOOKUP_TIMEOUT)
    return InetSession(port, local_ip, name, resolver)