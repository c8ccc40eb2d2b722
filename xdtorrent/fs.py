"""Filesystem drivers used by torrent storage."""

from __future__ import annotations

import abc
import glob as _glob
import os
import shutil
from typing import BinaryIO

from xdtorrent import util


class Driver(abc.ABC):
    """Operations storage needs from a filesystem."""

    def __enter__(self) -> "Driver":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @abc.abstractmethod
    def open(self) -> None:
        """Open any underlying connection."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release any underlying connection."""

    @abc.abstractmethod
    def open_file_read_only(self, fpath: str) -> BinaryIO:
        """Open a file for reading."""

    @abc.abstractmethod
    def open_file_write_only(self, fpath: str) -> BinaryIO:
        """Open a file for writing, creating it if needed."""

    @abc.abstractmethod
    def file_exists(self, fpath: str) -> bool:
        """Return True if the path exists."""

    @abc.abstractmethod
    def ensure_dir(self, fpath: str) -> None:
        """Create a directory and its parents."""

    @abc.abstractmethod
    def ensure_file(self, fpath: str, size: int) -> None:
        """Create a zero filled file of ``size`` bytes if it is missing."""

    @abc.abstractmethod
    def glob(self, pattern: str) -> list[str]:
        """Return the sorted paths matching a shell pattern."""

    @abc.abstractmethod
    def remove(self, fpath: str) -> None:
        """Remove a file or an empty directory."""

    @abc.abstractmethod
    def remove_all(self, fpath: str) -> None:
        """Remove a path and everything below it."""

    @abc.abstractmethod
    def join(self, *args: str) -> str:
        """Join path elements, skipping empty ones."""

    @abc.abstractmethod
    def move(self, old_path: str, new_path: str) -> None:
        """Move a file, creating the destination directory."""

    @abc.abstractmethod
    def split(self, path: str) -> tuple[str, str]:
        """Split a path into directory (with trailing separator) and name."""

    @abc.abstractmethod
    def stat(self, path: str):
        """Return stat information for a path."""


class StdFS(Driver):
    """The local filesystem."""

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def open_file_read_only(self, fpath: str) -> BinaryIO:
        return open(fpath, "rb")

    def open_file_write_only(self, fpath: str) -> BinaryIO:
        flags = os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0)
        fd = os.open(fpath, flags, 0o755)
        return os.fdopen(fd, "wb")

    def file_exists(self, fpath: str) -> bool:
        return util.check_file(fpath)

    def ensure_dir(self, fpath: str) -> None:
        util.ensure_dir(fpath)

    def ensure_file(self, fpath: str, size: int) -> None:
        util.ensure_file(fpath, size)

    def glob(self, pattern: str) -> list[str]:
        return sorted(_glob.glob(pattern))

    def remove(self, fpath: str) -> None:
        if os.path.isdir(fpath) and not os.path.islink(fpath):
            os.rmdir(fpath)
        else:
            os.remove(fpath)

    def remove_all(self, fpath: str) -> None:
        if os.path.isdir(fpath) and not os.path.islink(fpath):
            shutil.rmtree(fpath)
            return
        try:
            os.remove(fpath)
        except FileNotFoundError:
            pass

    def join(self, *args: str) -> str:
        parts = [p for p in args if p]
        if not parts:
            return ""
        return os.path.normpath(os.sep.join(parts))

    def move(self, old_path: str, new_path: str) -> None:
        directory, _ = self.split(new_path)
        if directory:
            self.ensure_dir(directory)
        os.rename(old_path, new_path)

    def split(self, path: str) -> tuple[str, str]:
        seps = os.sep + (os.altsep or "")
        idx = max(path.rfind(s) for s in seps)
        return path[:idx + 1], path[idx + 1:]

    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)


STD = StdFS()