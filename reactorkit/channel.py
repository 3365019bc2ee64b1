"""A file descriptor's interest set and the callbacks run when it becomes ready."""

from __future__ import annotations

import select
import weakref
from typing import Callable

from reactorkit.timestamp import Timestamp

NONE_EVENT = 0
READ_EVENT = select.POLLIN | select.POLLPRI
WRITE_EVENT = select.POLLOUT
_POLLRDHUP = getattr(select, "POLLRDHUP", 0x2000)


class Channel:
    """Binds one descriptor to an event loop; it never owns the descriptor.

    ``revents`` is filled in by the poller; ``index`` records the poller's
    bookkeeping state (-1 until the channel is first registered).
    """

    def __init__(self, loop, fd: int) -> None:
        self.loop = loop
        self._fd = fd
        self._events = NONE_EVENT
        self.revents = 0
        self.index = -1
        self._tie: weakref.ref | None = None
        self.event_handling = False
        self.added_to_loop = False
        self.read_callback: Callable[[Timestamp], None] | None = None
        self.write_callback: Callable[[], None] | None = None
        self.close_callback: Callable[[], None] | None = None
        self.error_callback: Callable[[], None] | None = None

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def events(self) -> int:
        return self._events

    def tie(self, obj) -> None:
        """Run callbacks only while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def _update(self) -> None:
        self.added_to_loop = True
        self.loop.update_channel(self)

    def remove(self) -> None:
        self.added_to_loop = False
        self.loop.remove_channel(self)

    def enable_reading(self) -> None:
        self._events |= READ_EVENT
        self._update()

    def disable_reading(self) -> None:
        self._events &= ~READ_EVENT
        self._update()

    def enable_writing(self) -> None:
        self._events |= WRITE_EVENT
        self._update()

    def disable_writing(self) -> None:
        self._events &= ~WRITE_EVENT
        self._update()

    def disable_all(self) -> None:
        self._events = NONE_EVENT
        self._update()

    def is_writing(self) -> bool:
        return bool(self._events & WRITE_EVENT)

    def is_reading(self) -> bool:
        return bool(self._events & READ_EVENT)

    def is_none_event(self) -> bool:
        return self._events == NONE_EVENT

    def handle_event(self, receive_time: Timestamp) -> None:
        """Dispatch ``revents`` to the read and write callbacks."""
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_with_guard(receive_time)
            del guard
        else:
            self._handle_event_with_guard(receive_time)

    def _handle_event_with_guard(self, receive_time: Timestamp) -> None:
        self.event_handling = True
        try:
            if self.revents & (select.POLLIN | select.POLLPRI | _POLLRDHUP):
                if self.read_callback is not None:
                    self.read_callback(receive_time)
            if self.revents & select.POLLOUT:
                if self.write_callback is not None:
                    self.write_callback()
        finally:
            self.event_handling = False

    def __repr__(self) -> str:
        return f"Channel(fd={self._fd}, events={self._events:#x})"