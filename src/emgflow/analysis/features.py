"""Amplitude feature extraction: block RMS windows, envelope and %MVE."""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np
from numpy.typing import ArrayLike

from ..core.models import FeatureUpdate, Sample
from ..core.ringbuffer import RingBuffer
from .calibration import MveCalibration


def calculate_rms(values: ArrayLike) -> float:
    """
    Compute the root-mean-square of the finite entries of ``values``.

    Non-finite entries are excluded from the mean rather than zeroed so they
    do not bias the estimate. An empty input, or one with no finite entries,
    yields ``0.0``.

    Parameters
    ----------
    values:
        1-D array-like of samples.

    Returns
    -------
    float
        RMS of the finite samples.
    """
    arr = np.asarray(values, dtype=np.float64).reshape(-1)
    if arr.size == 0:
        return 0.0
    finite = arr[np.isfinite(arr)]
    if finite.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(finite))))


class BlockRmsWindow:
    """Accumulate ``size`` samples, emit one RMS, then start over."""

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        self.size = int(size)
        self._values: List[float] = []

    def add(self, value: float) -> Optional[float]:
        self._values.append(float(value))
        if len(self._values) < self.size:
            return None
        rms = calculate_rms(self._values)
        self._values.clear()
        return rms

    def flush(self) -> Optional[float]:
        """RMS over a partially filled window, or ``None`` when empty."""
        if not self._values:
            return None
        rms = calculate_rms(self._values)
        self._values.clear()
        return rms

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class EnvelopeWindow:
    """Sliding maximum over the most recent ``size`` one-second RMS values."""

    def __init__(self, size: int) -> None:
        self._buffer: RingBuffer[float] = RingBuffer(size)

    @property
    def size(self) -> int:
        return self._buffer.capacity

    def add(self, rms: float) -> Optional[float]:
        self._buffer.append(float(rms) if math.isfinite(rms) else 0.0)
        if len(self._buffer) < self._buffer.capacity:
            return None
        return max(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


class FeatureExtractor:
    """
    Three nested windows fed by the reconciled sample stream.

    * short window: block RMS over raw amplitudes
    * one-second window: block RMS over raw amplitudes (longer horizon)
    * envelope: sliding max over one-second RMS values

    After an MVE calibration every new one-second RMS also yields
    ``percent_mve``. Each window keeps its own copies of the scalar
    amplitudes; no reference to a consumed :class:`Sample` is retained.
    """

    def __init__(
        self,
        *,
        short_window_size: int = 10,
        one_sec_window_size: int = 10,
        envelope_window_size: int = 10,
        channel: int = 0,
        calibration: MveCalibration | None = None,
    ) -> None:
        self.channel = int(channel)
        self.short_window = BlockRmsWindow(short_window_size)
        self.one_sec_window = BlockRmsWindow(one_sec_window_size)
        self.envelope_window = EnvelopeWindow(envelope_window_size)
        self.calibration = calibration or MveCalibration()
        self.last_short_rms = 0.0
        self.last_one_sec_rms = 0.0
        self.consumed = 0
        self.synthetic_consumed = 0

    def consume(self, sample: Sample) -> FeatureUpdate:
        amplitude = sample.amplitude(self.channel)
        self.consumed += 1
        if sample.synthetic:
            self.synthetic_consumed += 1

        short_rms = self.short_window.add(amplitude)
        if short_rms is not None:
            self.last_short_rms = short_rms

        one_sec_rms = self.one_sec_window.add(amplitude)
        envelope, percent = self._on_one_sec(one_sec_rms)

        return FeatureUpdate(
            timestamp=sample.timestamp,
            raw_value=amplitude,
            synthetic=sample.synthetic,
            short_rms=short_rms,
            one_sec_rms=one_sec_rms,
            envelope=envelope,
            percent_mve=percent,
        )

    def _on_one_sec(self, one_sec_rms: Optional[float]) -> tuple[Optional[float], Optional[float]]:
        if one_sec_rms is None:
            return None, None
        self.last_one_sec_rms = one_sec_rms
        envelope = self.envelope_window.add(one_sec_rms)
        percent: Optional[float] = None
        calibration = self.calibration
        if calibration.active:
            calibration.add(one_sec_rms)
        elif calibration.calibrated:
            percent = calibration.percent(one_sec_rms)
        return envelope, percent

    def flush(self, timestamp: float) -> Optional[FeatureUpdate]:
        """Emit RMS for whatever partial data the short/one-second windows hold.

        The partial values only fill the trailing recording row: they never reach
        the envelope window, an active calibration or the ``last_*`` state.
        """
        short_rms = self.short_window.flush()
        one_sec_rms = self.one_sec_window.flush()
        if short_rms is None and one_sec_rms is None:
            return None
        return FeatureUpdate(
            timestamp=timestamp,
            raw_value=math.nan,
            short_rms=short_rms,
            one_sec_rms=one_sec_rms,
            envelope=None,
            percent_mve=None,
        )

    # ------------------------------------------------------------ calibration
    def start_calibration(self, now: float) -> None:
        self.calibration.start(now)

    def end_calibration(self) -> float:
        return self.calibration.end()

    def reset(self) -> None:
        """Clear every window and the calibration state."""
        self.short_window.clear()
        self.one_sec_window.clear()
        self.envelope_window.clear()
        self.calibration.reset()
        self.last_short_rms = 0.0
        self.last_one_sec_rms = 0.0
        self.consumed = 0
        self.synthetic_consumed = 0


__all__ = [
    "BlockRmsWindow",
    "EnvelopeWindow",
    "FeatureExtractor",
    "calculate_rms",
]
