"""Destination key files and line reading on SAM sockets."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass

from xdtorrent.i2p.addr import I2PAddr, i2p_addr

SIG_TYPE = 7


def read_line(sock: socket.socket) -> str:
    """Read one newline-terminated line from ``sock``, byte by byte."""
    buf = bytearray()
    while True:
        b = sock.recv(1)
        if not b:
            raise EOFError("connection closed before end of line")
        buf += b
        if b == b"\n":
            return buf.decode("utf-8", "replace")


@dataclass
class Keyfile:
    """A destination keypair, optionally persisted to ``fname``."""

    fname: str = ""
    privkey: str = ""
    pubkey: str = ""

    def store(self) -> None:
        """Write the keys to the file; does nothing for transient keys."""
        if not self.fname:
            return
        fd = os.open(self.fname, os.O_CREAT | os.O_WRONLY, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"{self.privkey}\n{self.pubkey}\n")

    def load(self) -> None:
        """Read the keys from the file; does nothing for transient keys."""
        if not self.fname:
            return
        with open(self.fname, encoding="utf-8") as f:
            text = f.read()
        first, _, rest = text.partition("\n")
        second, sep, _ = rest.partition("\n")
        self.privkey = first.strip("\n")
        self.pubkey = second.strip("\n")
        if not sep:
            raise ValueError(f"truncated key file {self.fname}")

    def addr(self) -> I2PAddr:
        return i2p_addr(self.pubkey)

    def ensure(self, sock: socket.socket) -> None:
        """Load the keys, generating them over ``sock`` if there is no file."""
        missing = not self.fname
        if not missing:
            try:
                os.stat(self.fname)
            except FileNotFoundError:
                missing = True
        if not missing:
            self.load()
            return
        sock.sendall(f"DEST GENERATE SIGNATURE_TYPE={SIG_TYPE}\n".encode("ascii"))
        line = read_line(sock)
        for txt in line.split():
            upper = txt.upper()
            if upper in ("DEST", "REPLY"):
                continue
            if upper.startswith("PUB="):
                self.pubkey = txt[4:]
            elif upper.startswith("PRIV="):
                self.privkey = txt[5:]
        self.store()


def new_keyfile(fname: str) -> Keyfile:
    """Keyfile stored at ``fname``; the name ``transient`` means not stored."""
    if fname.upper() == "TRANSIENT":
        fname = ""
    return Keyfile(fname=fname)