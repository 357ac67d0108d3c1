"""Output bounding: text truncation and a fixed-size byte ring."""

from __future__ import annotations

DEFAULT_TRUNCATE_AT = 1024
DEFAULT_BUFFER_CAPACITY = 10 * 1024 * 1024
ELLIPSIS = "..."


def truncate(text: str, cap: int = DEFAULT_TRUNCATE_AT) -> str:
    """Cut ``text`` to ``cap`` characters, marking the cut with ``...``."""
    if len(text) <= cap:
        return text
    return text[:cap] + ELLIPSIS


class OutputBuffer:
    """Keeps the most recent ``capacity`` bytes of subprocess output.

    Appending past capacity evicts the oldest bytes, so the buffer always
    holds the tail of everything written to it, in order.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._data = bytearray()
        self._total = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total_written(self) -> int:
        """Bytes appended over the buffer's lifetime, evicted ones included."""
        return self._total

    def __len__(self) -> int:
        return len(self._data)

    def append(self, chunk: bytes) -> None:
        if not chunk:
            return
        self._total += len(chunk)
        if len(chunk) >= self._capacity:
            self._data = bytearray(chunk[-self._capacity:])
            return
        self._data.extend(chunk)
        overflow = len(self._data) - self._capacity
        if overflow > 0:
            del self._data[:overflow]

    def getvalue(self) -> bytes:
        return bytes(self._data)

    def tail(self, size: int) -> str:
        """Decoded text of the last ``size`` bytes."""
        if size <= 0:
            return ""
        return bytes(self._data[-size:]).decode("utf-8", errors="replace")

    def clear(self) -> None:
        self._data.clear()
