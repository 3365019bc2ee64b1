"""One-shot and repeating timers and the handles that identify them."""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Callable

from reactorkit.timestamp import Timestamp, add_time

_sequence = itertools.count()
_sequence_lock = threading.Lock()


class Timer:
    """A callback due at ``when``; it repeats every ``interval`` seconds if positive."""

    __slots__ = ("_callback", "_expiration", "_interval", "_repeat", "_sequence")

    def __init__(self, callback: Callable[[], None], when: Timestamp, interval: float) -> None:
        self._callback = callback
        self._expiration = when
        self._interval = interval
        self._repeat = interval > 0.0
        with _sequence_lock:
            self._sequence = next(_sequence)

    def run(self) -> None:
        self._callback()

    def restart(self, now: Timestamp) -> None:
        """Reschedule one interval after ``now``; a one-shot timer becomes invalid."""
        if self._repeat:
            self._expiration = add_time(now, self._interval)
        else:
            self._expiration = Timestamp.invalid()

    def expiration(self) -> Timestamp:
        return self._expiration

    def repeat(self) -> bool:
        return self._repeat

    def sequence(self) -> int:
        return self._sequence

    def __repr__(self) -> str:
        return (f"Timer(sequence={self._sequence}, expiration={self._expiration}, "
                f"interval={self._interval})")


@dataclass(frozen=True)
class TimerId:
    """Identifies a scheduled timer for cancellation."""

    timer: Timer
    sequence: int