"""Minimal Gnutella 0.6 peer handling."""

from __future__ import annotations

import socket

HANDSHAKE = "GNUTELLA CONNECT/0.6"
_REJECT_LINE = b"GNUTELLA/0.6 503 Rejected\r\n"


class GnutellaConn:
    """A connection to a Gnutella peer."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def handshake(self, reject: bool) -> None:
        """Answer the peer's handshake; only rejection is sent."""
        if reject:
            self.sock.sendall(_REJECT_LINE)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "GnutellaConn":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class GnutellaSwarm:
    """The set of connected Gnutella peers."""

    def __init__(self) -> None:
        self.active_conns: list[GnutellaConn] = []

    def add_inbound_peer(self, conn: GnutellaConn) -> None:
        self.active_conns.append(conn)

    def close(self) -> None:
        """Close every connection, ignoring errors, and forget them."""
        for conn in self.active_conns:
            try:
                conn.close()
            except OSError:
                pass
        self.active_conns = []