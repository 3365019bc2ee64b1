"""A background logger that batches records in large buffers and writes them to log files."""

from __future__ import annotations

import sys
import threading

from reactorkit.logfile import LogFile
from reactorkit.logstream import LARGE_BUFFER, FixedBuffer
from reactorkit.thread import Thread
from reactorkit.timestamp import Timestamp

_MAX_PENDING_BUFFERS = 25
_KEPT_BUFFERS = 2


class AsyncLogging:
    """Front end collects records; a "Logging" thread writes them to a LogFile."""

    def __init__(self, basename: str, roll_size: int, flush_interval: float = 3) -> None:
        self._basename = basename
        self._roll_size = roll_size
        self._flush_interval = flush_interval
        self._running = False
        self._cond = threading.Condition(threading.Lock())
        self._thread = Thread(self._thread_func, "Logging")
        self._current = FixedBuffer(LARGE_BUFFER)
        self._next: FixedBuffer | None = FixedBuffer(LARGE_BUFFER)
        self._buffers: list[FixedBuffer] = []

    def start(self) -> None:
        self._running = True
        self._thread.start()

    def stop(self) -> None:
        """Stop the writer thread after it has written what is pending."""
        if not self._running:
            return
        with self._cond:
            self._running = False
            self._cond.notify_all()
        self._thread.join()

    def __enter__(self) -> AsyncLogging:
        self.start()
        return self

    def __exit__(self, *args) -> bool:
        self.stop()
        return False

    def append(self, data) -> None:
        """Queue one record; a record that fits in no buffer is dropped."""
        with self._cond:
            if self._current.avail() > len(data):
                self._current.append(data)
                return
            self._buffers.append(self._current)
            if self._next is not None:
                self._current, self._next = self._next, None
            else:
                self._current = FixedBuffer(LARGE_BUFFER)
            self._current.append(data)
            self._cond.notify_all()

    def _thread_func(self) -> None:
        output = LogFile(self._basename, self._roll_size, thread_safe=False)
        spare1: FixedBuffer | None = FixedBuffer(LARGE_BUFFER)
        spare2: FixedBuffer | None = FixedBuffer(LARGE_BUFFER)
        try:
            while True:
                with self._cond:
                    if not self._buffers:
                        self._cond.wait_for(
                            lambda: self._buffers or not self._running,
                            self._flush_interval,
                        )
                    self._buffers.append(self._current)
                    self._current, spare1 = spare1, None
                    to_write, self._buffers = self._buffers, []
                    if self._next is None:
                        self._next, spare2 = spare2, None
                    running = self._running

                if len(to_write) > _MAX_PENDING_BUFFERS:
                    sys.stderr.write(
                        f"Dropped log at {Timestamp.now().to_format_string()},"
                        f"{len(to_write) - _KEPT_BUFFERS} larger buffers \n"
                    )
                    del to_write[_KEPT_BUFFERS:]

                for buffer in to_write:
                    output.append(buffer.data())

                del to_write[_KEPT_BUFFERS:]
                if spare1 is None:
                    spare1 = to_write.pop()
                    spare1.reset()
                if spare2 is None:
                    spare2 = to_write.pop()
                    spare2.reset()
                output.flush()
                if not running:
                    break
        finally:
            output.flush()
            output.close()