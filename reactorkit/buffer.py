"""A growable byte buffer with a small prepend area, used for socket I/O."""

from __future__ import annotations

PREPEND = 8
INITIAL_SIZE = 1024
_EXTRA_READ = 65536


class Buffer:
    """Byte buffer with separate read and write positions.

    Layout: ``[prependable | readable | writable]``.
    """

    def __init__(self, initial_size: int = INITIAL_SIZE) -> None:
        self._data = bytearray(PREPEND + initial_size)
        self._reader = PREPEND
        self._writer = PREPEND

    def readable_bytes(self) -> int:
        return self._writer - self._reader

    def writable_bytes(self) -> int:
        return len(self._data) - self._writer

    def prependable_bytes(self) -> int:
        return self._reader

    def __len__(self) -> int:
        return self.readable_bytes()

    def peek(self) -> bytes:
        """Return the readable bytes without consuming them."""
        return bytes(self._data[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        if length < self.readable_bytes():
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        self._reader = PREPEND
        self._writer = PREPEND

    def retrieve_as_bytes(self, length: int) -> bytes:
        result = bytes(self._data[self._reader:self._reader + length])
        self.retrieve(length)
        return result

    def retrieve_all_as_bytes(self) -> bytes:
        return self.retrieve_as_bytes(self.readable_bytes())

    def append(self, data) -> None:
        length = len(data)
        if self.writable_bytes() < length:
            self._make_space(length)
        self._data[self._writer:self._writer + length] = data
        self._writer += length

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self.prependable_bytes() < length + PREPEND:
            self._data.extend(bytes(self._writer + length - len(self._data)))
        else:
            readable = self.readable_bytes()
            self._data[PREPEND:PREPEND + readable] = self._data[self._reader:self._writer]
            self._reader = PREPEND
            self._writer = PREPEND + readable

    def read_fd(self, sock) -> int:
        """Receive once from ``sock`` into the buffer and return the byte count.

        Up to the writable space plus a 64 KiB overflow area is read in one call;
        a return of 0 means the peer closed. Socket errors propagate as OSError.
        """
        writable = self.writable_bytes()
        limit = writable + _EXTRA_READ if writable < _EXTRA_READ else writable
        chunk = sock.recv(limit)
        self.append(chunk)
        return len(chunk)