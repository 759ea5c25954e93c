"""Bounded, timestamp-ordered history of reconciled samples."""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Iterable, List, Optional, Tuple

from .models import Sample

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 500

_HeapEntry = Tuple[float, int, Sample]


class OrderedSampleBuffer:
    """Min-heap of samples keyed by timestamp, capped at ``capacity`` entries.

    On overflow the *oldest* sample (minimum timestamp) is evicted so the
    buffer always holds the most recent history. Timestamps are compared after
    rounding to ``decimals`` places; a second sample landing on an occupied
    slot is rejected and the first one kept.

    The heap is only partially ordered, so callers that need ordered access
    must go through :meth:`drain` or :meth:`snapshot`.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY, *, decimals: int = 1) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._decimals = int(decimals)
        self._heap: List[_HeapEntry] = []
        self._keys: set[float] = set()
        self._counter = itertools.count()
        self.evicted = 0
        self.rejected = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def _key(self, timestamp: float) -> float:
        return round(float(timestamp), self._decimals)

    def push(self, sample: Sample) -> bool:
        """Insert ``sample``; return ``False`` when its slot is already taken."""
        key = self._key(sample.timestamp)
        if key in self._keys:
            self.rejected += 1
            logger.debug("Duplicate sample at t=%s rejected", key)
            return False
        heapq.heappush(self._heap, (key, next(self._counter), sample))
        self._keys.add(key)
        while len(self._heap) > self._capacity:
            old_key, _, _ = heapq.heappop(self._heap)
            self._keys.discard(old_key)
            self.evicted += 1
        return True

    def extend(self, samples: Iterable[Sample]) -> int:
        """Push every sample; return how many were accepted."""
        return sum(1 for sample in samples if self.push(sample))

    def pop_min(self) -> Optional[Sample]:
        if not self._heap:
            return None
        key, _, sample = heapq.heappop(self._heap)
        self._keys.discard(key)
        return sample

    def peek_min(self) -> Optional[Sample]:
        if not self._heap:
            return None
        return self._heap[0][2]

    def drain(self) -> List[Sample]:
        """Remove and return every sample in ascending timestamp order."""
        out: List[Sample] = []
        while self._heap:
            out.append(heapq.heappop(self._heap)[2])
        self._keys.clear()
        return out

    def snapshot(self) -> List[Sample]:
        """Return an ordered copy without mutating the buffer."""
        return [entry[2] for entry in sorted(self._heap)]

    def latest(self) -> Optional[Sample]:
        if not self._heap:
            return None
        return max(self._heap)[2]

    def clear(self) -> None:
        self._heap.clear()
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, timestamp: object) -> bool:
        if not isinstance(timestamp, (int, float)):
            return False
        return self._key(timestamp) in self._keys


__all__ = ["DEFAULT_HISTORY_CAPACITY", "OrderedSampleBuffer"]
