"""Named threads and per-thread cached identifiers."""

from __future__ import annotations

import itertools
import threading
from typing import Callable

_local = threading.local()
_created = itertools.count(1)
_created_lock = threading.Lock()


def current_tid() -> int:
    """Return the native id of the calling thread, cached per thread."""
    tid = getattr(_local, "tid", 0)
    if not tid:
        tid = threading.get_native_id()
        _local.tid = tid
        _local.tid_string = f"{tid:5d}"
    return tid


def tid_string() -> str:
    """Return the calling thread's id right-aligned to five columns."""
    current_tid()
    return _local.tid_string


class Thread:
    """A thread that runs ``func`` once, with a name and native id."""

    def __init__(self, func: Callable[[], None], name: str = "") -> None:
        self._func = func
        with _created_lock:
            number = next(_created)
        self._name = name or f"Thread{number}"
        self._thread: threading.Thread | None = None
        self._tid = 0
        self._started = False
        self._joined = False

    def start(self) -> None:
        """Start the thread and return once it is running."""
        if self._started:
            raise RuntimeError(f"thread {self._name} already started")
        self._started = True
        running = threading.Event()

        def run() -> None:
            self._tid = current_tid()
            running.set()
            self._func()

        self._thread = threading.Thread(target=run, name=self._name, daemon=True)
        self._thread.start()
        running.wait()

    def join(self) -> None:
        if self._thread is None:
            raise RuntimeError(f"thread {self._name} was never started")
        self._joined = True
        self._thread.join()

    def started(self) -> bool:
        return self._started

    def tid(self) -> int:
        return self._tid

    def name(self) -> str:
        return self._name