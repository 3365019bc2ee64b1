"""Fixed-size byte buffers and a stream that formats values into them."""

from __future__ import annotations

SMALL_BUFFER = 4000
LARGE_BUFFER = 4000 * 1000
MAX_NUMERIC_SIZE = 48


def convert_integer(value: int) -> str:
    """Return the decimal text of an integer."""
    return str(int(value))


class FixedBuffer:
    """A byte area of fixed capacity; appends that do not fit are dropped."""

    def __init__(self, size: int = SMALL_BUFFER) -> None:
        self._storage = bytearray(size)
        self._cur = 0

    def append(self, data) -> None:
        if self.avail() > len(data):
            self._write(data)

    def _write(self, data) -> None:
        end = self._cur + len(data)
        self._storage[self._cur:end] = data
        self._cur = end

    def avail(self) -> int:
        return len(self._storage) - self._cur

    def length(self) -> int:
        return self._cur

    def __len__(self) -> int:
        return self._cur

    def data(self) -> memoryview:
        """Return a read-only view of the written bytes."""
        return memoryview(self._storage)[:self._cur].toreadonly()

    def reset(self) -> None:
        self._cur = 0

    def bzero(self) -> None:
        self._storage[:] = bytes(len(self._storage))

    def to_bytes(self) -> bytes:
        return bytes(self._storage[:self._cur])


class LogStream:
    """Accumulates ``<<``-formatted values into a small fixed buffer."""

    def __init__(self) -> None:
        self._buffer = FixedBuffer(SMALL_BUFFER)

    def __lshift__(self, value) -> LogStream:
        if isinstance(value, bool):
            self._buffer.append(b"1" if value else b"0")
        elif isinstance(value, int):
            self._format_integer(value)
        elif value is None:
            self._buffer.append(b"(null)")
        elif isinstance(value, str):
            self._buffer.append(value.encode("utf-8", "backslashreplace"))
        elif isinstance(value, (bytes, bytearray, memoryview)):
            self._buffer.append(bytes(value))
        else:
            self._buffer.append(str(value).encode("utf-8", "backslashreplace"))
        return self

    def _format_integer(self, value: int) -> None:
        text = convert_integer(value).encode("ascii")
        avail = self._buffer.avail()
        if avail >= MAX_NUMERIC_SIZE and len(text) <= avail:
            self._buffer._write(text)

    def append(self, data) -> None:
        self._buffer.append(data)

    def buffer(self) -> FixedBuffer:
        return self._buffer

    def reset_buffer(self) -> None:
        self._buffer.reset()