import socket

import pytest

from xdtorrent.i2p.addr import i2p_addr
from xdtorrent.i2p.keyfile import Keyfile, new_keyfile, read_line


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    a.settimeout(5)
    b.settimeout(5)
    yield a, b
    a.close()
    b.close()


def test_transient_name_is_dropped():
    assert new_keyfile("transient").fname == ""
    assert new_keyfile("TRANSIENT").fname == ""
    assert new_keyfile("keys.dat").fname == "keys.dat"


def test_store_load_round_trip(tmp_path):
    path = tmp_path / "keys.dat"
    Keyfile(fname=str(path), privkey="secret", pubkey="destpub").store()
    loaded = Keyfile(fname=str(path))
    loaded.load()
    assert loaded.privkey == "secret"
    assert loaded.pubkey == "destpub"
    assert path.read_text() == "secret\ndestpub\n"


def test_transient_store_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    kf = Keyfile(privkey="secret", pubkey="destpub")
    kf.store()
    assert list(tmp_path.iterdir()) == []
    assert kf.addr() == i2p_addr("destpub")


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Keyfile(fname=str(tmp_path / "nope")).load()


def test_load_truncated_file(tmp_path):
    path = tmp_path / "keys.dat"
    path.write_text("secret\n")
    with pytest.raises(ValueError):
        Keyfile(fname=str(path)).load()


def test_addr_uses_pubkey():
    assert Keyfile(pubkey="destpub:80").addr() == i2p_addr("destpub:80")


def test_read_line(pair):
    a, b = pair
    b.sendall(b"hello\nworld\n")
    assert read_line(a) == "hello\n"
    assert read_line(a) == "world\n"


def test_read_line_eof(pair):
    a, b = pair
    b.sendall(b"partial")
    b.close()
    with pytest.raises(EOFError):
        read_line(a)


def test_ensure_generates_and_stores(pair, tmp_path):
    a, b = pair
    path = tmp_path / "keys.dat"
    b.sendall(b"DEST REPLY PUB=destpub PRIV=secret\n")
    kf = Keyfile(fname=str(path))
    kf.ensure(a)
    assert kf.pubkey == "destpub"
    assert kf.privkey == "secret"
    assert b.recv(100) == b"DEST GENERATE SIGNATURE_TYPE=7\n"
    assert path.read_text() == "secret\ndestpub\n"


def test_ensure_loads_existing(pair, tmp_path):
    a, b = pair
    path = tmp_path / "keys.dat"
    path.write_text("secret\ndestpub\n")
    kf = Keyfile(fname=str(path))
    kf.ensure(a)
    assert (kf.privkey, kf.pubkey) == ("secret", "destpub")
    b.setblocking(False)
    with pytest.raises(BlockingIOError):
        b.recv(100)