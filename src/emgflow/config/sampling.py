"""Sampling grid configuration and timestamp normalisation helpers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class SamplingConfig:
    """
    Single source of truth for the nominal sampling grid.

    device_rate_hz: the rate the EMG sensor is *supposed* to notify at.
    decimals: resolution of logical timestamps; derived from the rate when None.
    """

    device_rate_hz: float = 10.0
    decimals: int | None = None

    @property
    def interval_s(self) -> float:
        """Spacing between two grid points in seconds."""
        return 1.0 / float(self.device_rate_hz)

    @property
    def timestamp_decimals(self) -> int:
        """Decimal places kept on logical timestamps (10 Hz -> 1, 100 Hz -> 2)."""
        if self.decimals is not None:
            return max(0, int(self.decimals))
        return max(0, int(math.ceil(-math.log10(self.interval_s) - 1e-9)))

    def normalize(self, timestamp: float) -> float:
        """Round ``timestamp`` onto the addressable resolution."""
        return round(float(timestamp), self.timestamp_decimals)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Any] | None,
        *,
        default_device_rate: float = 10.0,
    ) -> "SamplingConfig":
        """
        Construct a SamplingConfig from a mapping such as a YAML config file.

        Supported shape::

            sampling:
              device_rate_hz: 10
              timestamp_decimals: 1
        """
        payload: Mapping[str, Any] = mapping or {}

        sampling_block = (
            payload.get("sampling") if isinstance(payload, Mapping) else None
        )

        device_rate: Any = default_device_rate
        decimals: Any = None
        if isinstance(sampling_block, Mapping):
            device_rate = sampling_block.get("device_rate_hz", device_rate)
            decimals = sampling_block.get("timestamp_decimals", decimals)

        # Coerce rate to float with a safe fallback
        try:
            rate = float(device_rate)
        except (TypeError, ValueError):
            rate = float(default_device_rate)
        if not math.isfinite(rate) or rate <= 0.0:
            rate = float(default_device_rate)

        if decimals is not None:
            try:
                decimals = int(decimals)
            except (TypeError, ValueError):
                decimals = None

        return cls(device_rate_hz=rate, decimals=decimals)
