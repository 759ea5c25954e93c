"""UI-facing ring buffers for the raw and feature series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .models import FeatureUpdate, Series
from .ringbuffer import RingBuffer

DEFAULT_LIVE_VIEW_CAPACITY = 1000
DEFAULT_EVICT_FRACTION = 0.1

TimedValue = Tuple[float, float]


@dataclass(slots=True)
class LiveViewConfig:
    capacity: int = DEFAULT_LIVE_VIEW_CAPACITY
    evict_fraction: float = DEFAULT_EVICT_FRACTION
    placeholder_count: int = 5
    interval_s: float = 0.1


def _to_series(items: list[TimedValue], *, sort: bool = False) -> Series:
    if sort:
        # Stable, so equal timestamps keep arrival order.
        items = sorted(items, key=lambda item: item[0])
    count = len(items)
    times = np.fromiter((item[0] for item in items), dtype=np.float64, count=count)
    values = np.fromiter((item[1] for item in items), dtype=np.float32, count=count)
    return times, values


class LiveView:
    """
    Ring buffers behind the live plots, separate from the recording spool.

    A full buffer drops its oldest ~10% in one go (see :class:`RingBuffer`).
    Non-finite raw values are stored as ``0.0`` so renderers never see NaN.
    """

    def __init__(self, config: LiveViewConfig | None = None) -> None:
        self.config = config or LiveViewConfig()
        cap = self.config.capacity
        frac = self.config.evict_fraction
        self.raw: RingBuffer[TimedValue] = RingBuffer(cap, frac)
        self.short_rms: RingBuffer[TimedValue] = RingBuffer(cap, frac)
        self.one_sec_rms: RingBuffer[TimedValue] = RingBuffer(cap, frac)
        self.envelope: RingBuffer[TimedValue] = RingBuffer(cap, frac)
        self.percent_mve: RingBuffer[TimedValue] = RingBuffer(cap, frac)
        self.reset()

    def _all(self) -> tuple[RingBuffer[TimedValue], ...]:
        return (self.raw, self.short_rms, self.one_sec_rms, self.envelope, self.percent_mve)

    def add(self, update: FeatureUpdate) -> None:
        ts = float(update.timestamp)
        if self._placeholders:
            self._seed(ts - self.config.placeholder_count * self.config.interval_s)
            self._placeholders = False
        raw = update.raw_value if np.isfinite(update.raw_value) else 0.0
        self.raw.append((ts, float(raw)))
        if update.short_rms is not None:
            self.short_rms.append((ts, update.short_rms))
        if update.one_sec_rms is not None:
            self.one_sec_rms.append((ts, update.one_sec_rms))
        if update.envelope is not None:
            self.envelope.append((ts, update.envelope))
        if update.percent_mve is not None:
            self.percent_mve.append((ts, update.percent_mve))

    def _seed(self, start: float) -> None:
        count = self.config.placeholder_count
        step = self.config.interval_s
        for buf in self._all():
            buf.clear()
            for i in range(count):
                buf.append((start + i * step, 0.0))

    def reset(self) -> None:
        """Clear every series and reseed it with zero placeholders.

        The placeholders start at t=0 until the first update arrives, then they
        are moved to sit just before that update on the same clock.
        """
        self._seed(0.0)
        self._placeholders = True

    def series(self) -> dict[str, Series]:
        """Copy every series into numpy arrays (raw series sorted by time)."""
        return {
            "raw_series": _to_series(self.raw.snapshot(), sort=True),
            "short_rms_series": _to_series(self.short_rms.snapshot()),
            "one_sec_rms_series": _to_series(self.one_sec_rms.snapshot()),
            "envelope_series": _to_series(self.envelope.snapshot()),
            "percent_mve_series": _to_series(self.percent_mve.snapshot()),
        }


__all__ = ["DEFAULT_LIVE_VIEW_CAPACITY", "LiveView", "LiveViewConfig"]
