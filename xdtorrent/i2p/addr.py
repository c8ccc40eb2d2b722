"""I2P destination addresses and their base32 form."""

from __future__ import annotations

import base64
import binascii
import hashlib
from dataclasses import dataclass

# default address of the SAM interface
DEFAULT_ADDRESS = "127.0.0.1:7656"
# default path to the private keys
DEFAULT_KEYFILE = "xd-privkey.dat"
# default session name
DEFAULT_NAME = "XD"

_I2P_ALTCHARS = b"-~"


def _split_host_port(hostport: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port``; raise ValueError when malformed."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {hostport!r}")
        rest = hostport[end + 1:]
        if not rest:
            raise ValueError(f"missing port in address {hostport!r}")
        if not rest.startswith(":") or ":" in rest[1:]:
            raise ValueError(f"too many colons in address {hostport!r}")
        return hostport[1:end], rest[1:]
    idx = hostport.rfind(":")
    if idx < 0:
        raise ValueError(f"missing port in address {hostport!r}")
    host = hostport[:idx]
    if ":" in host:
        raise ValueError(f"too many colons in address {hostport!r}")
    return host, hostport[idx + 1:]


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class Base32Addr:
    """SHA-256 hash of an I2P destination."""

    digest: bytes = bytes(32)

    def __str__(self) -> str:
        encoded = base64.b32encode(self.digest).decode("ascii").lower()
        return encoded[:52] + ".b32.i2p"


@dataclass(frozen=True)
class I2PAddr:
    """An I2P destination with an optional port."""

    addr: str = ""
    port: str = ""

    def network(self) -> str:
        return "i2p"

    def __str__(self) -> str:
        return _join_host_port(self.addr, self.port)

    def base32_addr(self) -> Base32Addr:
        """Hash of the decoded destination; all zeros if it does not decode."""
        if "+" in self.addr or "/" in self.addr:
            return Base32Addr()
        try:
            raw = base64.b64decode(self.addr.encode("ascii"), altchars=_I2P_ALTCHARS,
                                   validate=True)
        except (binascii.Error, ValueError, UnicodeEncodeError):
            return Base32Addr()
        return Base32Addr(hashlib.sha256(raw).digest())


def i2p_addr(addr: str) -> I2PAddr:
    """Parse ``dest`` or ``dest:port`` into an :class:`I2PAddr`."""
    if ":" in addr:
        try:
            host, port = _split_host_port(addr)
        except ValueError:
            return I2PAddr()
        return I2PAddr(host, port)
    return I2PAddr(addr)