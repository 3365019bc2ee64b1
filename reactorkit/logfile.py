"""Append-only log files that roll over by size and at the start of each UTC day."""

from __future__ import annotations

import threading
import time
from contextlib import nullcontext

ROLL_PER_SECONDS = 60 * 60 * 24
_FILE_BUFFER_SIZE = 60 * 1024


def log_file_name(basename: str, now: float) -> str:
    """Return the file name used for a log started at ``now`` (seconds since epoch)."""
    stamp = time.strftime(">%Y%m%d-%H%M%S", time.gmtime(now))
    return f"{basename}{stamp}.log"


class AppendFile:
    """A buffered file opened for appending that counts the bytes written to it."""

    def __init__(self, filename: str) -> None:
        self._file = open(filename, "ab", buffering=_FILE_BUFFER_SIZE)
        self._written = 0

    def append(self, data) -> None:
        self._file.write(data)
        self._written += len(data)

    def flush(self) -> None:
        self._file.flush()

    def written_bytes(self) -> int:
        return self._written

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


class LogFile:
    """A log written to ``basename>YYYYmmdd-HHMMSS.log`` files.

    A new file is started once the current one exceeds ``roll_size`` bytes, or
    when a new UTC day has begun; the day check and the periodic flush happen
    every ``check_every_n`` appends.
    """

    def __init__(self, basename: str, roll_size: int, thread_safe: bool = True,
                 flush_interval: int = 3, check_every_n: int = 1024) -> None:
        self._basename = basename
        self._roll_size = roll_size
        self._flush_interval = flush_interval
        self._check_every_n = check_every_n
        self._count = 0
        self._lock = threading.Lock() if thread_safe else nullcontext()
        self._start_of_period = 0
        self._last_roll = 0
        self._last_flush = 0
        self._file: AppendFile | None = None
        self.roll_file()

    def append(self, data) -> None:
        with self._lock:
            self._append_unlocked(data)

    def flush(self) -> None:
        with self._lock:
            self._file.flush()

    def _append_unlocked(self, data) -> None:
        self._file.append(data)
        if self._file.written_bytes() > self._roll_size:
            self.roll_file()
            return
        self._count += 1
        if self._count >= self._check_every_n:
            self._count = 0
            now = int(time.time())
            this_period = now // ROLL_PER_SECONDS * ROLL_PER_SECONDS
            if this_period != self._start_of_period:
                self.roll_file()
            elif now - self._last_flush > self._flush_interval:
                self._last_flush = now
                self._file.flush()

    def roll_file(self) -> bool:
        """Start a new file unless one was already started within this second."""
        now = int(time.time())
        filename = log_file_name(self._basename, now)
        start = now // ROLL_PER_SECONDS * ROLL_PER_SECONDS
        if now <= self._last_roll:
            return False
        self._last_roll = now
        self._last_flush = now
        self._start_of_period = start
        old = self._file
        self._file = AppendFile(filename)
        if old is not None:
            old.close()
        return True

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()