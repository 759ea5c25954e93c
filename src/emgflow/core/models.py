"""Shared dataclasses for reconstructed samples, recording rows and snapshots."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

Series = Tuple[np.ndarray, np.ndarray]


@dataclass(frozen=True)
class Sample:
    """One reconciled notification on the sampling grid.

    ``synthetic`` marks samples inserted by reconstruction or loss filling
    rather than received from the sensor.
    """

    timestamp: float
    values: tuple[float, ...]
    synthetic: bool = False

    def amplitude(self, channel: int = 0) -> float:
        """Return the value of ``channel`` (NaN when the channel is missing)."""
        if 0 <= channel < len(self.values):
            return float(self.values[channel])
        return math.nan


@dataclass(frozen=True)
class Row:
    index: int
    timestamp: float
    raw_value: float
    short_rms: float
    one_sec_rms: float


@dataclass(frozen=True)
class FeatureUpdate:
    """What the feature extractor produced for one consumed sample."""

    timestamp: float
    raw_value: float
    synthetic: bool = False
    short_rms: Optional[float] = None
    one_sec_rms: Optional[float] = None
    envelope: Optional[float] = None
    percent_mve: Optional[float] = None


@dataclass
class PipelineStats:
    """Running counters for conditions that degrade quality without failing."""

    batches: int = 0
    decode_errors: int = 0
    clock_anomalies: int = 0
    non_finite_values: int = 0
    loss_placeholders: int = 0
    synthetic_samples: int = 0
    duplicates: int = 0
    history_evictions: int = 0
    queue_drops: int = 0
    realignments: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "batches": self.batches,
            "decode_errors": self.decode_errors,
            "clock_anomalies": self.clock_anomalies,
            "non_finite_values": self.non_finite_values,
            "loss_placeholders": self.loss_placeholders,
            "synthetic_samples": self.synthetic_samples,
            "duplicates": self.duplicates,
            "history_evictions": self.history_evictions,
            "queue_drops": self.queue_drops,
            "realignments": self.realignments,
        }


def _empty_series() -> Series:
    return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float32)


@dataclass(frozen=True)
class PipelineSnapshot:
    """Read-only copy of the live view handed to UI/export collaborators."""

    raw_series: Series = field(default_factory=_empty_series)
    short_rms_series: Series = field(default_factory=_empty_series)
    one_sec_rms_series: Series = field(default_factory=_empty_series)
    envelope_series: Series = field(default_factory=_empty_series)
    percent_mve_series: Series = field(default_factory=_empty_series)
    acquisition_ratio: float = 0.0
    arrival_rate_hz: float = 0.0
    recording: bool = False
    calibrating: bool = False
    mve_value: Optional[float] = None
    synthetic_count: int = 0

    def sar(self) -> float:
        """Signal acquisition ratio (percent) at the time of the snapshot."""
        return self.acquisition_ratio


__all__ = ["Sample", "Row", "FeatureUpdate", "PipelineStats", "PipelineSnapshot", "Series"]
