"""Second-pass repair of gaps in the ordered history buffer."""

from __future__ import annotations

import logging
import math
from typing import List, Protocol

from ..tools.debug import time_block
from .models import Sample
from .ordered_buffer import OrderedSampleBuffer

logger = logging.getLogger(__name__)


class LossSource(Protocol):
    """Anything that can report the overall fraction of lost samples."""

    def loss_ratio(self) -> float:  # pragma: no cover - protocol
        ...


def _midpoint(left: float, right: float) -> float:
    left_ok = math.isfinite(left)
    right_ok = math.isfinite(right)
    if left_ok and right_ok:
        return (left + right) / 2.0
    if left_ok:
        return left
    if right_ok:
        return right
    return math.nan


def _midpoint_values(left: Sample, right: Sample) -> tuple[float, ...]:
    width = max(len(left.values), len(right.values))
    out = []
    for ch in range(width):
        out.append(_midpoint(left.amplitude(ch), right.amplitude(ch)))
    return tuple(out)


class GapReconstructor:
    """
    Fill gaps wider than one sampling interval with interpolated samples.

    The pass runs only while the overall loss ratio exceeds
    ``loss_ratio_threshold``. Every inserted sample sits on the grid at
    ``previous + interval`` and carries the midpoint of the two *real*
    neighbours that bound the gap. Gaps wider than ``max_gap_seconds`` are
    left alone, as is any gap that ends at a sample marked with
    :meth:`mark_boundary` (the first sample after a grid realignment).
    """

    def __init__(
        self,
        interval: float,
        *,
        loss_ratio_threshold: float = 0.10,
        max_gap_seconds: float = 10.0,
        decimals: int = 1,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self.loss_ratio_threshold = float(loss_ratio_threshold)
        self.max_gap_seconds = float(max_gap_seconds)
        self.decimals = int(decimals)
        # Gaps are multiples of the resolution once normalised; half a step of
        # slack keeps float noise from turning an exact interval into a gap.
        self._tolerance = 0.5 * 10.0 ** -self.decimals
        self.passes = 0
        self.inserted = 0
        self._boundaries: set[float] = set()

    def mark_boundary(self, timestamp: float) -> None:
        """Never fill the gap that ends at ``timestamp``."""
        self._boundaries.add(round(float(timestamp), self.decimals))

    def clear(self) -> None:
        self._boundaries.clear()

    def should_run(self, monitor: LossSource) -> bool:
        return monitor.loss_ratio() > self.loss_ratio_threshold

    def maybe_reconstruct(self, buffer: OrderedSampleBuffer, monitor: LossSource) -> List[Sample]:
        """Reconstruct only when the monitor reports enough loss."""
        if not self.should_run(monitor):
            return []
        return self.reconstruct(buffer)

    def reconstruct(self, buffer: OrderedSampleBuffer) -> List[Sample]:
        """Drain, fill gaps, re-push; return the synthetic samples added."""
        if len(buffer) < 2:
            return []

        with time_block(f"gap reconstruction over {len(buffer)} samples"):
            ordered = buffer.drain()
            oldest = ordered[0].timestamp
            self._boundaries = {ts for ts in self._boundaries if ts >= oldest}
            synthetic: List[Sample] = []
            previous = ordered[0]
            for current in ordered[1:]:
                synthetic.extend(self._fill_gap(previous, current))
                previous = current
            buffer.extend(ordered)
            buffer.extend(synthetic)

        self.passes += 1
        if synthetic:
            self.inserted += len(synthetic)
            logger.debug("Gap reconstruction inserted %d synthetic samples", len(synthetic))
        return synthetic

    def _fill_gap(self, left: Sample, right: Sample) -> List[Sample]:
        gap = right.timestamp - left.timestamp
        if gap - self.interval <= self._tolerance:
            return []
        if round(right.timestamp, self.decimals) in self._boundaries:
            logger.debug("Skipping realignment gap before t=%.3f", right.timestamp)
            return []
        if gap > self.max_gap_seconds:
            logger.debug(
                "Skipping %.3f s gap at t=%.3f (limit %.3f s)",
                gap,
                left.timestamp,
                self.max_gap_seconds,
            )
            return []

        values = _midpoint_values(left, right)
        filled: List[Sample] = []
        t = left.timestamp
        while (right.timestamp - t) - self.interval > self._tolerance:
            t = round(t + self.interval, self.decimals)
            filled.append(Sample(timestamp=t, values=values, synthetic=True))
        return filled


__all__ = ["GapReconstructor", "LossSource"]
