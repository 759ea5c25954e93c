"""Runtime configuration helpers for the reconstruction/feature pipeline."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from .sampling import SamplingConfig


@dataclass(slots=True)
class EmgFlowConfig:
    """
    Tuning knobs for how notifications are reconciled, repaired and featurized.

    The defaults assume a ~10 Hz EMG amplitude sensor over a BLE-like link.
    """

    sample_rate_hz: float = 10.0
    timestamp_decimals: int | None = None

    # Timestamp reconciliation
    realignment_threshold_s: float = 1.0
    loss_threshold_s: float = 0.8
    max_fill_iterations: int = 100
    clock_anomaly_threshold_s: float = 86400.0
    reset_counters_on_reconnect: bool = True

    # History buffer and reconstruction
    history_capacity: int = 500
    loss_ratio_threshold: float = 0.10
    max_reconstruct_gap_s: float = 10.0

    # Acquisition monitor
    sar_refresh_s: float = 1.0
    rate_window_size: int = 50

    # Feature windows
    channel: int = 0
    short_window_size: int = 10
    one_sec_window_size: int = 10
    envelope_window_size: int = 10
    calibration_seconds: float = 10.0

    # Live view
    live_view_capacity: int = 1000
    live_view_evict_fraction: float = 0.1
    placeholder_count: int = 5

    # Payload decoding
    payload_format: str = "int16le"
    payload_scale: float = 1.0

    # Thread bridge sizing
    queue_size: int = 256
    poll_interval_s: float = 0.05

    # Export precision
    export_time_decimals: int = 3
    export_value_decimals: int = 6

    @property
    def sampling(self) -> SamplingConfig:
        """Return the sampling grid description derived from this config."""
        return SamplingConfig(
            device_rate_hz=self.sample_rate_hz,
            decimals=self.timestamp_decimals,
        )

    def sanitized(self) -> EmgFlowConfig:
        """Return a copy with derived limits applied."""
        decimals = self.timestamp_decimals
        if decimals is not None:
            decimals = max(0, min(9, int(decimals)))
        realign = max(1e-3, float(self.realignment_threshold_s))
        return EmgFlowConfig(
            sample_rate_hz=max(0.1, float(self.sample_rate_hz)),
            timestamp_decimals=decimals,
            realignment_threshold_s=realign,
            loss_threshold_s=max(0.0, min(realign, float(self.loss_threshold_s))),
            max_fill_iterations=max(1, int(self.max_fill_iterations)),
            clock_anomaly_threshold_s=max(realign, float(self.clock_anomaly_threshold_s)),
            reset_counters_on_reconnect=bool(self.reset_counters_on_reconnect),
            history_capacity=max(2, int(self.history_capacity)),
            loss_ratio_threshold=max(0.0, min(1.0, float(self.loss_ratio_threshold))),
            max_reconstruct_gap_s=max(0.0, float(self.max_reconstruct_gap_s)),
            sar_refresh_s=max(0.0, float(self.sar_refresh_s)),
            rate_window_size=max(2, int(self.rate_window_size)),
            channel=max(0, int(self.channel)),
            short_window_size=max(1, int(self.short_window_size)),
            one_sec_window_size=max(1, int(self.one_sec_window_size)),
            envelope_window_size=max(1, int(self.envelope_window_size)),
            calibration_seconds=max(0.0, float(self.calibration_seconds)),
            live_view_capacity=max(1, int(self.live_view_capacity)),
            live_view_evict_fraction=max(0.0, min(1.0, float(self.live_view_evict_fraction))),
            placeholder_count=max(0, int(self.placeholder_count)),
            payload_format=str(self.payload_format).strip().lower(),
            payload_scale=float(self.payload_scale),
            queue_size=max(1, int(self.queue_size)),
            poll_interval_s=max(0.001, float(self.poll_interval_s)),
            export_time_decimals=max(0, int(self.export_time_decimals)),
            export_value_decimals=max(0, int(self.export_value_decimals)),
        )


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`EmgFlowConfig`."""
    return {f.name for f in fields(EmgFlowConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten known nesting patterns (top-level ``pipeline`` and ``sampling`` keys)."""
    merged: MutableMapping[str, Any] = {}
    for key, value in data.items():
        if key == "pipeline" and isinstance(value, Mapping):
            merged.update(value)
        elif key != "sampling":
            merged[key] = value
    if isinstance(data.get("sampling"), Mapping):
        sampling = SamplingConfig.from_mapping(data)
        merged.setdefault("sample_rate_hz", sampling.device_rate_hz)
        if sampling.decimals is not None:
            merged.setdefault("timestamp_decimals", sampling.decimals)
    return merged


def config_from_mapping(data: Mapping[str, Any] | None) -> EmgFlowConfig:
    """Build :class:`EmgFlowConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return EmgFlowConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return EmgFlowConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> EmgFlowConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`EmgFlowConfig`.
    """
    if path is None:
        return EmgFlowConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return EmgFlowConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["EmgFlowConfig", "config_from_mapping", "load_config"]
