from __future__ import annotations

from collections.abc import Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """
    Fixed-size ring buffer for streaming data.

    When full, the oldest entries are dropped before the new one is written.
    ``evict_fraction`` controls how many: ``0`` drops a single entry (a true
    sliding window), ``0.1`` drops the oldest ~10% at once so that a full
    buffer does not pay for an eviction on every append.
    """

    def __init__(self, capacity: int, evict_fraction: float = 0.0) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if not 0.0 <= evict_fraction <= 1.0:
            raise ValueError("evict_fraction must be within [0, 1]")
        self._capacity = capacity
        self._evict_count = max(1, int(round(capacity * evict_fraction)))
        self._data: list[T | None] = [None] * capacity
        self._start = 0
        self._size = 0
        self.evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> None:
        if self._size == self._capacity:
            self._evict(self._evict_count)
        idx = (self._start + self._size) % self._capacity
        self._data[idx] = item
        self._size += 1

    def extend(self, items: Iterator[T] | list[T]) -> None:
        for item in items:
            self.append(item)

    def _evict(self, count: int) -> None:
        count = min(count, self._size)
        for i in range(count):
            self._data[(self._start + i) % self._capacity] = None
        self._start = (self._start + count) % self._capacity
        self._size -= count
        self.evicted += count

    def clear(self) -> None:
        self._data = [None] * self._capacity
        self._start = 0
        self._size = 0

    def snapshot(self) -> list[T]:
        """Return a copy of the logical contents, oldest first."""
        return list(self)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return self._size

    def __getitem__(self, index: int) -> T:
        """Support buf[i] and buf[-1] indexing over the *logical* contents."""
        size = self._size
        if size == 0:
            raise IndexError("RingBuffer is empty")

        if index < 0:
            index += size

        if index < 0 or index >= size:
            raise IndexError("RingBuffer index out of range")

        physical = (self._start + index) % self._capacity
        item = self._data[physical]
        assert item is not None
        return item

    def __iter__(self) -> Iterator[T]:
        for i in range(self._size):
            idx = (self._start + i) % self._capacity
            item = self._data[idx]
            if item is not None:
                yield item
