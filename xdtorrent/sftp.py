"""Filesystem driver over SFTP."""

from __future__ import annotations

import base64
import fnmatch
import io
import posixpath
import stat as _stat
from typing import BinaryIO

import paramiko

from xdtorrent import log, util
from xdtorrent.fs import Driver

_MAGIC = "*?["


def _load_private_key(keyfile: str) -> paramiko.PKey:
    with open(keyfile, "r", encoding="ascii") as f:
        text = f.read()
    for cls in (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key):
        try:
            return cls.from_private_key(io.StringIO(text))
        except (paramiko.SSHException, ValueError):
            continue
    raise paramiko.SSHException(f"unsupported private key in {keyfile}")


def _parse_public_key(encoded: str) -> paramiko.PKey:
    blob = base64.b64decode(encoded, validate=True)
    if len(blob) < 4:
        raise ValueError("public key too short")
    n = int.from_bytes(blob[:4], "big")
    kind = blob[4:4 + n].decode("ascii", "replace")
    if kind == "ssh-rsa":
        return paramiko.RSAKey(data=blob)
    if kind == "ssh-ed25519":
        return paramiko.Ed25519Key(data=blob)
    if kind.startswith("ecdsa-sha2-"):
        return paramiko.ECDSAKey(data=blob)
    raise paramiko.SSHException(f"unsupported host key type {kind}")


def _join_host_port(host: str, port: int) -> str:
    return f"[{host}]:{port}" if ":" in host else f"{host}:{port}"


class SFTPDriver(Driver):
    """Storage on a remote host reached over SSH with a fixed host key."""

    def __init__(self, username: str, hostname: str, keyfile: str,
                 remotekey: str, port: int = 22) -> None:
        self.username = username
        self.hostname = hostname
        self.keyfile = keyfile
        self.remotekey = remotekey
        self.port = port
        self._transport = None
        self._sftp = None

    def _ensure_ssh(self):
        if self._transport is None:
            log.debug("read key %s", self.keyfile)
            our_key = _load_private_key(self.keyfile)
            their_key = _parse_public_key(self.remotekey)
            log.debug("sftp dial to %s", _join_host_port(self.hostname, self.port))
            transport = paramiko.Transport((self.hostname, self.port))
            try:
                transport.connect(hostkey=their_key, username=self.username, pkey=our_key)
            except Exception:
                transport.close()
                raise
            self._transport = transport
        return self._transport

    def _ensure_sftp(self):
        if self._sftp is None:
            self._sftp = paramiko.SFTPClient.from_transport(self._ensure_ssh())
        return self._sftp

    def _client(self):
        try:
            return self._ensure_sftp()
        except Exception:
            self.close()
            raise

    def open(self) -> None:
        self._ensure_sftp()

    def close(self) -> None:
        sftp, self._sftp = self._sftp, None
        if sftp is not None:
            sftp.close()
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def ensure_dir(self, fpath: str) -> None:
        client = self._client()
        parents = "/" if fpath.startswith("/") else ""
        for name in fpath.split("/"):
            if not name:
                continue
            parents = posixpath.join(parents, name) if parents else name
            if self.file_exists(parents):
                continue
            try:
                client.mkdir(parents)
            except OSError as exc:
                try:
                    attrs = client.stat(parents)
                except OSError:
                    raise exc
                if not _stat.S_ISDIR(attrs.st_mode or 0):
                    raise FileExistsError(f"File exists: {parents}") from exc

    def file_exists(self, fpath: str) -> bool:
        if self._sftp is None:
            return False
        try:
            self._sftp.stat(fpath)
        except OSError:
            return False
        return True

    def open_file_read_only(self, fpath: str) -> BinaryIO:
        return self._client().open(fpath, "rb")

    def open_file_write_only(self, fpath: str) -> BinaryIO:
        return self._client().open(fpath, "wb")

    def glob(self, pattern: str) -> list[str]:
        return sorted(self._glob(self._client(), pattern))

    def _glob(self, client, pattern: str) -> list[str]:
        if not any(c in pattern for c in _MAGIC):
            try:
                client.stat(pattern)
            except OSError:
                return []
            return [pattern]
        directory, base = posixpath.split(pattern)
        if any(c in directory for c in _MAGIC):
            dirs = self._glob(client, directory)
        else:
            dirs = [directory]
        matches = []
        for d in dirs:
            try:
                names = client.listdir(d or ".")
            except OSError:
                continue
            matches.extend(posixpath.join(d, n) for n in names if fnmatch.fnmatchcase(n, base))
        return matches

    def ensure_file(self, fpath: str, size: int) -> None:
        if self.file_exists(fpath):
            return
        self._client()
        directory, _ = self.split(fpath)
        if directory:
            self.ensure_dir(directory)
        with self.open_file_write_only(fpath) as f:
            if size > 0:
                util.write_zeros(f, size)

    def _remove_all_dir(self, client, root: str) -> None:
        for entry in client.listdir_attr(root):
            child = posixpath.join(root, entry.filename)
            if _stat.S_ISDIR(entry.st_mode or 0):
                self._remove_all_dir(client, child)
            else:
                client.remove(child)
        client.rmdir(root)

    def join(self, *args: str) -> str:
        parts = [p for p in args if p]
        if not parts:
            return ""
        joined = posixpath.normpath("/".join(parts))
        if joined.startswith("//"):
            joined = "/" + joined.lstrip("/")
        return joined

    def move(self, old_path: str, new_path: str) -> None:
        directory, _ = self.split(new_path)
        self.ensure_dir(directory)
        self._client().rename(old_path, new_path)

    def split(self, path: str) -> tuple[str, str]:
        idx = path.rfind("/")
        return path[:idx + 1], path[idx + 1:]

    def remove(self, fpath: str) -> None:
        client = self._client()
        try:
            client.remove(fpath)
        except OSError:
            try:
                is_dir = _stat.S_ISDIR(client.stat(fpath).st_mode or 0)
            except OSError:
                is_dir = False
            if not is_dir:
                raise
            client.rmdir(fpath)

    def stat(self, path: str):
        return self._client().stat(path)

    def remove_all(self, fpath: str) -> None:
        client = self._client()
        attrs = client.stat(fpath)
        if _stat.S_ISDIR(attrs.st_mode or 0):
            self._remove_all_dir(client, fpath)
        else:
            client.remove(fpath)