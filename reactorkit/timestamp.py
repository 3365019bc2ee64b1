"""Microsecond-resolution points in time."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time counted in microseconds since the Unix epoch."""

    microseconds_since_epoch: int = 0

    MICROSECONDS_PER_SECOND: ClassVar[int] = 1_000_000

    def _split(self) -> tuple[int, int]:
        return divmod(self.microseconds_since_epoch, self.MICROSECONDS_PER_SECOND)

    def to_string(self) -> str:
        """Return ``seconds.microseconds`` with six fractional digits."""
        seconds, micros = self._split()
        return f"{seconds}.{micros:06d}"

    def to_format_string(self, show_microseconds: bool = True) -> str:
        """Return ``YYYYMMDD HH:MM:SS[.ffffff]`` in UTC."""
        seconds, micros = self._split()
        tm = time.gmtime(seconds)
        text = (
            f"{tm.tm_year:4d}{tm.tm_mon:02d}{tm.tm_mday:02d} "
            f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}"
        )
        if show_microseconds:
            text += f".{micros:06d}"
        return text

    def valid(self) -> bool:
        return self.microseconds_since_epoch > 0

    @classmethod
    def now(cls) -> Timestamp:
        return cls(time.time_ns() // 1000)

    @classmethod
    def invalid(cls) -> Timestamp:
        return cls()

    def __str__(self) -> str:
        return self.to_string()


def add_time(timestamp: Timestamp, seconds: float) -> Timestamp:
    """Return ``timestamp`` moved forward by ``seconds`` (truncated to microseconds)."""
    delta = int(seconds * Timestamp.MICROSECONDS_PER_SECOND)
    return Timestamp(timestamp.microseconds_since_epoch + delta)