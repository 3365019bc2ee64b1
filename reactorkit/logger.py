"""A small line logger writing through replaceable output and flush hooks."""

from __future__ import annotations

import os
import sys
from enum import IntEnum
from typing import Callable

from reactorkit.logstream import LogStream
from reactorkit.thread import current_tid
from reactorkit.timestamp import Timestamp


class LogLevel(IntEnum):
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5


class FatalError(RuntimeError):
    """Raised after a FATAL record has been written and flushed."""


class SourceFile:
    """The base name of a source path, without its directories."""

    __slots__ = ("data", "size")

    def __init__(self, filename: str) -> None:
        self.data = filename.rsplit("/", 1)[-1]
        self.size = len(self.data)


def _default_output(message: bytes) -> None:
    sys.stdout.write(message.decode("utf-8", "replace"))


def _default_flush() -> None:
    sys.stdout.flush()


_level = LogLevel.DEBUG
_output: Callable[[bytes], None] = _default_output
_flush: Callable[[], None] = _default_flush


def log_level() -> LogLevel:
    return _level


def set_log_level(level: LogLevel) -> None:
    global _level
    _level = LogLevel(level)


def set_output(func: Callable[[bytes], None]) -> None:
    """Replace the function that receives each finished record."""
    global _output
    if not callable(func):
        raise TypeError("output hook must be callable")
    _output = func


def set_flush(func: Callable[[], None]) -> None:
    """Replace the function called to flush output before a fatal error."""
    global _flush
    if not callable(func):
        raise TypeError("flush hook must be callable")
    _flush = func


def strerror(errno_value: int) -> str:
    return os.strerror(errno_value)


class Logger:
    """One log record; written out by ``finish`` or on leaving a ``with`` block."""

    def __init__(self, file, line: int, level: LogLevel = LogLevel.INFO,
                 func: str | None = None, save_errno: int = 0) -> None:
        self.time = Timestamp.now()
        self._stream = LogStream()
        self.level = LogLevel(level)
        self.line = line
        self.basename = file if isinstance(file, SourceFile) else SourceFile(file)
        self._finished = False
        current_tid()
        if save_errno:
            self._stream << strerror(save_errno) << " (errno=" << save_errno << ") "
        if func is not None:
            self._stream << func << " "

    def stream(self) -> LogStream:
        return self._stream

    def finish(self) -> None:
        """Terminate the record, emit it, and raise FatalError for FATAL records."""
        if self._finished:
            return
        self._finished = True
        self._stream << " - " << self.basename.data << ":" << self.line << "\n"
        record = self._stream.buffer().to_bytes()
        _output(record)
        if self.level is LogLevel.FATAL:
            _flush()
            raise FatalError(record.decode("utf-8", "replace").rstrip("\n"))

    def __enter__(self) -> Logger:
        return self

    def __exit__(self, *args) -> bool:
        self.finish()
        return False


def _emit(level: LogLevel, args: tuple) -> None:
    level = LogLevel(level)
    if level <= LogLevel.INFO and _level > level:
        return
    caller = sys._getframe(2)
    code = caller.f_code
    with Logger(code.co_filename, caller.f_lineno, level, code.co_name) as record:
        stream = record.stream()
        for arg in args:
            stream << arg


def log(level: LogLevel, *args) -> None:
    """Write one record at ``level`` made of ``args`` concatenated."""
    _emit(level, args)


def log_debug(*args) -> None:
    _emit(LogLevel.DEBUG, args)


def log_info(*args) -> None:
    _emit(LogLevel.INFO, args)


def log_warn(*args) -> None:
    _emit(LogLevel.WARN, args)


def log_error(*args) -> None:
    _emit(LogLevel.ERROR, args)


def log_fatal(*args) -> None:
    _emit(LogLevel.FATAL, args)