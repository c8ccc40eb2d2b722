import base64
import os
import types
from unittest import mock

import paramiko
import pytest

from xdtorrent.sftp import SFTPDriver


class LocalSFTP:
    """Stand-in SFTP client working on the local filesystem."""

    def __init__(self):
        self.closed = False

    def stat(self, path):
        return os.stat(path)

    def mkdir(self, path):
        os.mkdir(path)

    def open(self, path, mode):
        return open(path, mode)

    def listdir(self, path):
        return os.listdir(path)

    def listdir_attr(self, path):
        return [
            types.SimpleNamespace(filename=e.name, st_mode=e.stat(follow_symlinks=False).st_mode)
            for e in os.scandir(path)
        ]

    def remove(self, path):
        os.remove(path)

    def rmdir(self, path):
        os.rmdir(path)

    def rename(self, old, new):
        os.rename(old, new)

    def close(self):
        self.closed = True


@pytest.fixture(scope="module")
def keys(tmp_path_factory):
    key = paramiko.RSAKey.generate(1024)
    keyfile = tmp_path_factory.mktemp("keys") / "id_rsa"
    key.write_private_key_file(str(keyfile))
    return str(keyfile), key.get_base64()


@pytest.fixture
def connected(keys):
    keyfile, remote = keys
    fake = LocalSFTP()
    with mock.patch("paramiko.Transport") as transport_cls, \
            mock.patch("paramiko.SFTPClient.from_transport", return_value=fake):
        driver = SFTPDriver("user", "localhost", keyfile, remote, 2222)
        driver.open()
        yield driver, transport_cls, fake


def test_join_and_split_need_no_connection():
    driver = SFTPDriver("user", "localhost", "missing", "", 22)
    assert driver.join("a", "", "b", "c") == "a/b/c"
    assert driver.join("/a", "/b") == "/a/b"
    assert driver.join() == ""
    assert driver.split("/x/y/z.txt") == ("/x/y/", "z.txt")
    assert driver.split("z") == ("", "z")


def test_file_exists_false_when_closed():
    assert SFTPDriver("user", "localhost", "missing", "", 22).file_exists("/") is False


def test_missing_keyfile(tmp_path):
    driver = SFTPDriver("user", "localhost", str(tmp_path / "nokey"), "", 22)
    with pytest.raises(FileNotFoundError):
        driver.open()


def test_bad_remote_key(keys):
    keyfile, _ = keys
    with pytest.raises(ValueError):
        SFTPDriver("user", "localhost", keyfile, "not base64!", 22).open()


def test_unsupported_remote_key_type(keys):
    keyfile, _ = keys
    blob = len(b"ssh-foo").to_bytes(4, "big") + b"ssh-foo"
    remote = base64.b64encode(blob).decode()
    with pytest.raises(paramiko.SSHException):
        SFTPDriver("user", "localhost", keyfile, remote, 22).open()


def test_open_connects_with_fixed_host_key(connected, keys):
    _, remote = keys
    _, transport_cls, _ = connected
    transport_cls.assert_called_once_with(("localhost", 2222))
    kwargs = transport_cls.return_value.connect.call_args.kwargs
    assert kwargs["username"] == "user"
    assert kwargs["hostkey"].get_base64() == remote


def test_ensure_dir_nested(connected, tmp_path):
    driver, _, _ = connected
    target = tmp_path / "a" / "b" / "c"
    driver.ensure_dir(str(target))
    assert target.is_dir()
    driver.ensure_dir(str(target))
    assert target.is_dir()


def test_ensure_dir_through_file_fails(connected, tmp_path):
    driver, _, _ = connected
    (tmp_path / "f").write_bytes(b"")
    with pytest.raises(OSError):
        driver.ensure_dir(str(tmp_path / "f" / "d"))


def test_ensure_file(connected, tmp_path):
    driver, _, _ = connected
    target = tmp_path / "d" / "f.bin"
    driver.ensure_file(str(target), 10)
    assert target.read_bytes() == bytes(10)
    target.write_bytes(b"keep")
    driver.ensure_file(str(target), 10)
    assert target.read_bytes() == b"keep"


def test_write_and_read(connected, tmp_path):
    driver, _, _ = connected
    target = str(tmp_path / "w.bin")
    with driver.open_file_write_only(target) as f:
        f.write(b"payload")
    with driver.open_file_read_only(target) as f:
        assert f.read() == b"payload"
    assert driver.stat(target).st_size == len(b"payload")


def test_glob(connected, tmp_path):
    driver, _, _ = connected
    for name in ("b.txt", "a.txt", "c.bin"):
        (tmp_path / name).write_bytes(b"")
    assert driver.glob(str(tmp_path / "*.txt")) == [str(tmp_path / "a.txt"), str(tmp_path / "b.txt")]
    assert driver.glob(str(tmp_path / "c.bin")) == [str(tmp_path / "c.bin")]
    assert driver.glob(str(tmp_path / "nothing")) == []


def test_move(connected, tmp_path):
    driver, _, _ = connected
    src = tmp_path / "src"
    src.write_bytes(b"x")
    dst = tmp_path / "new" / "dst"
    driver.move(str(src), str(dst))
    assert dst.read_bytes() == b"x"
    assert not src.exists()


def test_remove_and_remove_all(connected, tmp_path):
    driver, _, _ = connected
    empty = tmp_path / "empty"
    empty.mkdir()
    driver.remove(str(empty))
    tree = tmp_path / "tree"
    (tree / "x" / "y").mkdir(parents=True)
    (tree / "x" / "y" / "f").write_bytes(b"1")
    (tree / "g").write_bytes(b"2")
    driver.remove_all(str(tree))
    assert not empty.exists() and not tree.exists()


def test_remove_missing(connected, tmp_path):
    driver, _, _ = connected
    with pytest.raises(OSError):
        driver.remove(str(tmp_path / "missing"))


def test_close(connected, tmp_path):
    driver, transport_cls, fake = connected
    driver.close()
    assert fake.closed
    transport_cls.return_value.close.assert_called_once()
    assert driver.file_exists(str(tmp_path)) is False