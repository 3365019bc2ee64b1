"""A one-loop-per-thread reactor: polls channels, runs timers and queued callbacks."""

from __future__ import annotations

import os
import threading
from typing import Callable

from reactorkit.channel import Channel
from reactorkit.logger import log_error, log_fatal
from reactorkit.poller import new_default_poller
from reactorkit.thread import current_tid
from reactorkit.timer import TimerId
from reactorkit.timer_queue import TimerQueue
from reactorkit.timestamp import Timestamp, add_time

POLL_TIME_MS = 10000

_loops_by_thread: dict[int, "EventLoop"] = {}
_loops_lock = threading.Lock()


class EventLoopError(RuntimeError):
    """Raised when an event loop is misused, such as a second loop in one thread."""


class EventLoop:
    """Event loop bound to the thread that created it."""

    def __init__(self) -> None:
        self._thread_id = current_tid()
        with _loops_lock:
            existing = _loops_by_thread.get(self._thread_id)
            if existing is not None:
                raise EventLoopError(
                    f"another EventLoop {existing!r} exists in this thread {self._thread_id}"
                )
            _loops_by_thread[self._thread_id] = self
        self._looping = False
        self._quit = False
        self._calling_pending = False
        self._closed = False
        self.event_handling = False
        self.iteration = 0
        self.poll_return_time = Timestamp.invalid()
        self._lock = threading.Lock()
        self._pending: list[Callable[[], None]] = []
        self._poller = new_default_poller(self)
        self._timer_queue = TimerQueue(self)
        try:
            self._wakeup_fd = os.eventfd(0, os.EFD_NONBLOCK | os.EFD_CLOEXEC)
        except OSError:
            self._unregister()
            log_fatal("Failed in eventfd")
        self._wakeup_channel = Channel(self, self._wakeup_fd)
        self._wakeup_channel.read_callback = self._handle_read
        self._wakeup_channel.enable_reading()

    def _unregister(self) -> None:
        with _loops_lock:
            if _loops_by_thread.get(self._thread_id) is self:
                del _loops_by_thread[self._thread_id]

    def loop(self) -> None:
        """Run until ``quit`` is called."""
        self._looping = True
        self._quit = False
        try:
            while not self._quit:
                receive_time, active = self._poller.poll(self._poll_timeout_ms())
                self.poll_return_time = receive_time
                self.iteration += 1
                self.event_handling = True
                for channel in active:
                    channel.handle_event(receive_time)
                self.event_handling = False
                self._timer_queue.process_expired(Timestamp.now())
                self._do_pending_functors()
        finally:
            self.event_handling = False
            self._looping = False

    def _poll_timeout_ms(self) -> int:
        earliest = self._timer_queue.earliest_expiration()
        if earliest is None:
            return POLL_TIME_MS
        delta = earliest.microseconds_since_epoch - Timestamp.now().microseconds_since_epoch
        return min(POLL_TIME_MS, max(0, -(-delta // 1000)))

    def quit(self) -> None:
        self._quit = True
        if not self.is_in_loop_thread():
            self.wakeup()

    def run_in_loop(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` now if called from the loop thread, else queue it."""
        if self.is_in_loop_thread():
            callback()
        else:
            self.queue_in_loop(callback)

    def queue_in_loop(self, callback: Callable[[], None]) -> None:
        """Queue ``callback`` to run after the current round of event handling."""
        with self._lock:
            self._pending.append(callback)
        if not self.is_in_loop_thread() or self._calling_pending:
            self.wakeup()

    def queue_size(self) -> int:
        with self._lock:
            return len(self._pending)

    def run_at(self, time: Timestamp, callback: Callable[[], None]) -> TimerId:
        return self._timer_queue.add_timer(callback, time, 0.0)

    def run_after(self, delay: float, callback: Callable[[], None]) -> TimerId:
        return self.run_at(add_time(Timestamp.now(), delay), callback)

    def run_every(self, interval: float, callback: Callable[[], None]) -> TimerId:
        when = add_time(Timestamp.now(), interval)
        return self._timer_queue.add_timer(callback, when, interval)

    def cancel(self, timer_id: TimerId) -> None:
        self._timer_queue.cancel(timer_id)

    def wakeup(self) -> None:
        try:
            os.eventfd_write(self._wakeup_fd, 1)
        except OSError as exc:
            log_error("EventLoop::wakeup() ", str(exc))

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            os.eventfd_read(self._wakeup_fd)
        except OSError as exc:
            log_error("EventLoop::handleRead() ", str(exc))

    def _do_pending_functors(self) -> None:
        self._calling_pending = True
        try:
            with self._lock:
                functors, self._pending = self._pending, []
            for functor in functors:
                functor()
        finally:
            self._calling_pending = False

    def update_channel(self, channel: Channel) -> None:
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def is_in_loop_thread(self) -> bool:
        return self._thread_id == current_tid()

    def close(self) -> None:
        """Release the loop's descriptors and free its thread for a new loop."""
        if self._closed:
            return
        self._closed = True
        self._wakeup_channel.disable_all()
        self._wakeup_channel.remove()
        os.close(self._wakeup_fd)
        self._timer_queue.close()
        self._poller.close()
        self._unregister()

    def __enter__(self) -> EventLoop:
        return self

    def __exit__(self, *args) -> bool:
        self.close()
        return False

    def __repr__(self) -> str:
        return f"EventLoop(thread={self._thread_id})"