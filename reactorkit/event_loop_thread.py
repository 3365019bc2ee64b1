"""Threads that each run one event loop, and a round-robin pool of them."""

from __future__ import annotations

import threading
from typing import Callable

from reactorkit.event_loop import EventLoop
from reactorkit.thread import Thread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThread:
    """Starts a thread that creates an event loop and runs it until stopped."""

    def __init__(self, init_callback: ThreadInitCallback | None = None, name: str = "") -> None:
        self._loop: EventLoop | None = None
        self._exiting = False
        self._thread = Thread(self._thread_func, name)
        self._cond = threading.Condition()
        self._callback = init_callback

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once the loop exists."""
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._loop is not None)
            return self._loop

    def _thread_func(self) -> None:
        loop = EventLoop()
        try:
            if self._callback is not None:
                self._callback(loop)
            with self._cond:
                self._loop = loop
                self._cond.notify_all()
            loop.loop()
        finally:
            with self._cond:
                self._loop = None
            loop.close()

    def stop(self) -> None:
        """Quit the loop and wait for the thread to finish."""
        self._exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            loop.quit()
        if self._thread.started():
            self._thread.join()

    def __enter__(self) -> EventLoopThread:
        return self

    def __exit__(self, *args) -> bool:
        self.stop()
        return False


class EventLoopThreadPool:
    """Hands out loops from ``num_threads`` worker threads, or the base loop if none."""

    def __init__(self, base_loop, name: str) -> None:
        self.base_loop = base_loop
        self.name = name
        self.started = False
        self.num_threads = 0
        self._next = 0
        self._threads: list[EventLoopThread] = []
        self._loops: list[EventLoop] = []

    def start(self, init_callback: ThreadInitCallback | None = None) -> None:
        self.started = True
        for i in range(self.num_threads):
            thread = EventLoopThread(init_callback, f"{self.name}{i}")
            self._threads.append(thread)
            self._loops.append(thread.start_loop())
        if self.num_threads == 0 and init_callback is not None:
            init_callback(self.base_loop)

    def get_next_loop(self):
        """Return the next worker loop in turn, or the base loop if there are none."""
        if not self._loops:
            return self.base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_loop_for_hash(self, hash_code: int):
        if not self._loops:
            return self.base_loop
        return self._loops[hash_code % len(self._loops)]

    def get_all_loops(self) -> list:
        if not self._loops:
            return [self.base_loop]
        return list(self._loops)

    def stop(self) -> None:
        """Stop every worker thread."""
        for thread in self._threads:
            thread.stop()
        self._threads.clear()
        self._loops.clear()
        self._next = 0