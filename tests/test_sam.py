import socket
import threading

import pytest

from xdtorrent.i2p.addr import I2PAddr
from xdtorrent.i2p.sam import I2PPacketConn, SamError, new_session

NAMES = {"ME": "destpub", "peer.i2p": "peerdest"}


class FakeSam:
    def __init__(self, hello_ok=True):
        self.commands = []
        self.hello_ok = hello_ok
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.address = "127.0.0.1:%d" % self.listener.getsockname()[1]
        threading.Thread(target=self._serve, daemon=True).start()

    def _serve(self):
        while True:
            try:
                conn, _ = self.listener.accept()
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _reply(self, line):
        if line.startswith("HELLO"):
            if self.hello_ok:
                return "HELLO REPLY RESULT=OK VERSION=3.0\n", False
            return "HELLO REPLY RESULT=NOVERSION\n", False
        if line.startswith("DEST GENERATE"):
            return "DEST REPLY PUB=destpub PRIV=secret\n", False
        if line.startswith("SESSION CREATE"):
            return "SESSION STATUS RESULT=OK DESTINATION=secret\n", False
        if line.startswith("NAMING LOOKUP"):
            name = line.split("NAME=", 1)[1].strip()
            if name in NAMES:
                return f"NAMING REPLY RESULT=OK NAME={name} VALUE={NAMES[name]}\n", False
            return f"NAMING REPLY RESULT=KEY_NOT_FOUND NAME={name}\n", False
        if line.startswith("STREAM CONNECT"):
            return "STREAM STATUS RESULT=OK\n", True
        if line.startswith("STREAM ACCEPT"):
            return "STREAM STATUS RESULT=OK\nremotedest\n", False
        return "ERROR\n", False

    def _handle(self, conn):
        conn.settimeout(5)
        try:
            with conn, conn.makefile("rb") as f:
                for raw in f:
                    line = raw.decode()
                    self.commands.append(line)
                    reply, echo = self._reply(line)
                    conn.sendall(reply.encode())
                    if echo:
                        for data in f:
                            conn.sendall(data)
                        return
        except OSError:
            pass

    def close(self):
        self.listener.close()


@pytest.fixture
def sam():
    server = FakeSam()
    yield server
    server.close()


@pytest.fixture
def session(sam):
    s = new_session("test", sam.address, "transient", None)
    s.open()
    yield s
    s.close()


def _read_until_newline(conn):
    data = b""
    while not data.endswith(b"\n"):
        chunk = conn.read(100)
        assert chunk
        data += chunk
    return data


def test_open_learns_own_address(sam, session):
    assert session.name() == "test"
    assert session.keys.privkey == "secret"
    assert session.addr() == I2PAddr("destpub", "")
    assert session.local_addr() == session.addr()
    assert ("SESSION CREATE STYLE=STREAM ID=test SIGNATURE_TYPE=7 "
            "DESTINATION=secret inbound.name=XD\n") in sam.commands
    assert session.b32_addr().endswith(".b32.i2p")


def test_session_options_are_sent(sam):
    s = new_session("opts", sam.address, "transient", {"inbound.length": "1"})
    with s:
        assert s.pktconn.laddr == I2PAddr("destpub", "")
    assert any(c.endswith(" inbound.name=XD inbound.length=1\n") for c in sam.commands)


def test_lookup_keeps_port(session):
    assert session.lookup_i2p("peer.i2p:6881") == I2PAddr("peerdest", "6881")
    assert session.lookup("peer.i2p", "99") == I2PAddr("peerdest", "")


def test_lookup_unknown_name(session):
    with pytest.raises(SamError):
        session.lookup_i2p("missing.i2p")


def test_lookup_before_open(sam):
    s = new_session("test", sam.address, "transient", None)
    with pytest.raises(SamError):
        s.lookup_i2p("peer.i2p")


def test_lookup_after_close(session):
    session.close()
    with pytest.raises(SamError):
        session.lookup_i2p("peer.i2p")


def test_dial_streams_data(sam, session):
    with session.dial("tcp", "peer.i2p:80") as conn:
        assert conn.raddr == I2PAddr("peerdest", "80")
        assert conn.write(b"ping\n") == 5
        assert _read_until_newline(conn) == b"ping\n"
    assert "STREAM CONNECT ID=test DESTINATION=peerdest PORT=80 SILENT=false\n" in sam.commands


def test_accept_returns_remote(session):
    with session.accept() as conn:
        assert conn.raddr == I2PAddr("remotedest", "")
        assert conn.laddr == I2PAddr("destpub", "")


def test_hello_failure():
    server = FakeSam(hello_ok=False)
    try:
        s = new_session("test", server.address, "transient", None)
        with pytest.raises(SamError):
            s.open_control_socket()
        with pytest.raises(SamError):
            s.open()
    finally:
        server.close()


def _udp():
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.bind(("127.0.0.1", 0))
    s.settimeout(5)
    return s


def test_packet_write_to():
    a, b = _udp(), _udp()
    try:
        pc = I2PPacketConn(sock=a, samaddr=b.getsockname(), version="3.0")
        assert pc.write_to(b"data", I2PAddr("dest", "")) == 4
        data, _ = b.recvfrom(1024)
        assert data == b"3.0 dest:\ndata"
    finally:
        a.close()
        b.close()


def test_packet_read_from_filters():
    a, b, c = _udp(), _udp(), _udp()
    try:
        pc = I2PPacketConn(sock=a, samaddr=b.getsockname(), version="3.0")
        c.sendto(b"3.0 otherX\nwrong source", a.getsockname())
        b.sendto(b"no newline", a.getsockname())
        b.sendto(b"3.0 bigdestX\n" + b"x" * 100, a.getsockname())
        b.sendto(b"3.0 fromdestX\npayload", a.getsockname())
        payload, sender = pc.read_from(10)
        assert payload == b"payload"
        assert sender == I2PAddr("fromdest", "")
    finally:
        a.close()
        b.close()
        c.close()


def test_packet_without_socket():
    with pytest.raises(SamError):
        I2PPacketConn().read_from(10)