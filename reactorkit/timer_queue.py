"""Pending timers of one event loop, kept in expiration order."""

from __future__ import annotations

import bisect
import math
from typing import Callable

from reactorkit.timer import Timer, TimerId
from reactorkit.timestamp import Timestamp


class TimerQueue:
    """Timers ordered by expiration; the owning loop runs the due ones.

    The loop asks for ``earliest_expiration`` to bound its wait and calls
    ``process_expired`` once the wait is over. Timers are added and cancelled
    through the loop, so both are safe to call from any thread.
    """

    def __init__(self, loop) -> None:
        self._loop = loop
        self._timers: list[tuple[Timestamp, int, Timer]] = []
        self._active: set[TimerId] = set()
        self._calling_expired = False
        self._canceling: set[TimerId] = set()

    def add_timer(self, callback: Callable[[], None], when: Timestamp,
                  interval: float = 0.0) -> TimerId:
        """Schedule ``callback`` at ``when``, repeating every ``interval`` seconds if positive."""
        timer = Timer(callback, when, interval)
        self._loop.run_in_loop(lambda: self._insert(timer))
        return TimerId(timer, timer.sequence())

    def cancel(self, timer_id: TimerId) -> None:
        self._loop.run_in_loop(lambda: self._cancel_in_loop(timer_id))

    def _cancel_in_loop(self, timer_id: TimerId) -> None:
        if timer_id in self._active:
            self._active.discard(timer_id)
            timer = timer_id.timer
            key = (timer.expiration(), timer.sequence())
            index = bisect.bisect_left(self._timers, key)
            if index < len(self._timers) and self._timers[index][2] is timer:
                del self._timers[index]
        elif self._calling_expired:
            self._canceling.add(timer_id)

    def _insert(self, timer: Timer) -> None:
        bisect.insort(self._timers, (timer.expiration(), timer.sequence(), timer))
        self._active.add(TimerId(timer, timer.sequence()))

    def earliest_expiration(self) -> Timestamp | None:
        """Return when the next timer is due, or None if no timer is pending."""
        return self._timers[0][0] if self._timers else None

    def process_expired(self, now: Timestamp) -> int:
        """Run every timer due at or before ``now``; return how many ran."""
        cut = bisect.bisect_right(self._timers, (now, math.inf))
        expired = [timer for _, _, timer in self._timers[:cut]]
        del self._timers[:cut]
        for timer in expired:
            self._active.discard(TimerId(timer, timer.sequence()))

        self._calling_expired = True
        self._canceling.clear()
        try:
            for timer in expired:
                timer.run()
        finally:
            self._calling_expired = False
            self._reset(expired, now)
        return len(expired)

    def _reset(self, expired: list[Timer], now: Timestamp) -> None:
        for timer in expired:
            if timer.repeat() and TimerId(timer, timer.sequence()) not in self._canceling:
                timer.restart(now)
                self._insert(timer)

    def close(self) -> None:
        """Drop every pending timer."""
        self._timers.clear()
        self._active.clear()
        self._canceling.clear()