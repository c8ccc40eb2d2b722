"""Minimal levelled logger writing coloured lines to a stream."""

from __future__ import annotations

import datetime
import enum
import os
import sys
import threading
from typing import TextIO

_WINDOWS = os.name == "nt"
_COLOR_RESET = "" if _WINDOWS else "\x1b[0;0m"


class FatalLogError(RuntimeError):
    """Raised after a fatal message has been logged."""


class LogLevel(enum.IntEnum):
    """Severity of a log message."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4

    @property
    def label(self) -> str:
        """Three letter tag printed in front of each line."""
        return _LABELS[self]

    def color(self) -> str:
        """Terminal escape sequence used for this level."""
        if _WINDOWS:
            return ""
        return _COLORS.get(self, "\x1b[31;1m")


_LABELS = {
    LogLevel.DEBUG: "DBG",
    LogLevel.INFO: "NFO",
    LogLevel.WARN: "WRN",
    LogLevel.ERROR: "ERR",
    LogLevel.FATAL: "FTL",
}

_COLORS = {
    LogLevel.DEBUG: "\x1b[37;0m",
    LogLevel.INFO: "\x1b[37;1m",
    LogLevel.WARN: "\x1b[33;1m",
}

_LEVEL_NAMES = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "warn": LogLevel.WARN,
    "err": LogLevel.ERROR,
    "fatal": LogLevel.FATAL,
}

_lock = threading.Lock()
_level = LogLevel.INFO
_out: TextIO | None = None


def set_level(level: str) -> None:
    """Set the global level by name: debug, info, warn, err or fatal."""
    global _level
    try:
        _level = _LEVEL_NAMES[level.lower()]
    except KeyError:
        raise ValueError(f"invalid log level: '{level.lower()}'") from None


def set_output(stream: TextIO | None) -> TextIO | None:
    """Send log lines to ``stream``; ``None`` means standard output.

    Returns the stream that was in use before.
    """
    global _out
    if stream is not None and not callable(getattr(stream, "write", None)):
        raise TypeError("log output must have a write method")
    with _lock:
        previous = _out
        _out = stream
    return previous


def _log(level: LogLevel, fmt: str, args: tuple) -> None:
    if level < _level:
        return
    message = fmt % args if args else fmt
    now = datetime.datetime.now().astimezone()
    with _lock:
        out = _out if _out is not None else sys.stdout
        out.write(f"{level.color()}[{level.label}] {now}\t{message}{_COLOR_RESET}\n")
    if level is LogLevel.FATAL:
        raise FatalLogError(message)


def debug(fmt: str, *args) -> None:
    """Log a debug message."""
    _log(LogLevel.DEBUG, fmt, args)


def info(fmt: str, *args) -> None:
    """Log an informational message."""
    _log(LogLevel.INFO, fmt, args)


def warn(fmt: str, *args) -> None:
    """Log a warning."""
    _log(LogLevel.WARN, fmt, args)


def error(fmt: str, *args) -> None:
    """Log an error."""
    _log(LogLevel.ERROR, fmt, args)


def fatal(fmt: str, *args) -> None:
    """Log a fatal error and raise :class:`FatalLogError`."""
    _log(LogLevel.FATAL, fmt, args)