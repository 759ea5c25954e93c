"""Single-owner EMG pipeline: decode, reconcile, repair, featurize, record."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..analysis.acquisition import AcquisitionMonitor
from ..analysis.calibration import MveCalibration
from ..analysis.features import FeatureExtractor
from ..config import EmgFlowConfig
from ..errors import ClockAnomaly, DecodeError
from ..sensors.emg_payload import SampleDecoder
from .live_view import LiveView, LiveViewConfig
from .models import FeatureUpdate, PipelineSnapshot, PipelineStats, Row, Sample
from .ordered_buffer import OrderedSampleBuffer
from .reconciler import TimestampReconciler
from .reconstruction import GapReconstructor
from .recording import RecordingSession, RecordingSpool

__all__ = ["EmgPipeline"]

logger = logging.getLogger(__name__)


class EmgPipeline:
    """
    Turn notification payloads plus arrival times into a feature-annotated series.

    Every buffer in here is owned by this object and is meant to be mutated
    from one thread only (see :class:`~emgflow.core.worker.PipelineWorker`).
    Other threads read through :meth:`snapshot`, which copies.

    No input makes the pipeline fail: malformed payloads and clock anomalies
    are dropped and counted in :attr:`stats`, non-finite values are excluded
    from RMS and shown as zero, and full buffers evict their oldest data.
    """

    def __init__(
        self,
        config: EmgFlowConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        cfg = (config or EmgFlowConfig()).sanitized()
        self.config = cfg
        self._clock = clock
        sampling = cfg.sampling
        self.sampling = sampling
        decimals = sampling.timestamp_decimals

        self.decoder = SampleDecoder(fmt=cfg.payload_format, scale=cfg.payload_scale)
        self.reconciler = TimestampReconciler(
            sampling,
            realignment_threshold_s=cfg.realignment_threshold_s,
            loss_threshold_s=cfg.loss_threshold_s,
            max_fill_iterations=cfg.max_fill_iterations,
            clock_anomaly_threshold_s=cfg.clock_anomaly_threshold_s,
        )
        self.history = OrderedSampleBuffer(cfg.history_capacity, decimals=decimals)
        self.reconstructor = GapReconstructor(
            sampling.interval_s,
            loss_ratio_threshold=cfg.loss_ratio_threshold,
            max_gap_seconds=cfg.max_reconstruct_gap_s,
            decimals=decimals,
        )
        self.monitor = AcquisitionMonitor(
            refresh_interval_s=cfg.sar_refresh_s,
            rate_window_size=cfg.rate_window_size,
            clock=clock,
        )
        self.features = FeatureExtractor(
            short_window_size=cfg.short_window_size,
            one_sec_window_size=cfg.one_sec_window_size,
            envelope_window_size=cfg.envelope_window_size,
            channel=cfg.channel,
            calibration=MveCalibration(cfg.calibration_seconds),
        )
        self.spool = RecordingSpool(
            time_decimals=cfg.export_time_decimals,
            value_decimals=cfg.export_value_decimals,
        )
        self.live_view = LiveView(
            LiveViewConfig(
                capacity=cfg.live_view_capacity,
                evict_fraction=cfg.live_view_evict_fraction,
                placeholder_count=cfg.placeholder_count,
                interval_s=sampling.interval_s,
            )
        )
        self.stats = PipelineStats()
        self.connected = False
        self._last_timestamp: Optional[float] = None

    def now(self) -> float:
        return float(self._clock())

    # ------------------------------------------------------------------ ingest
    def on_notification(self, payload: bytes, arrival_time: float) -> List[FeatureUpdate]:
        """Decode ``payload`` and feed it through the pipeline."""
        try:
            values = self.decoder.decode(payload)
        except DecodeError as exc:
            self.stats.decode_errors += 1
            logger.warning("Dropping payload of %d bytes: %s", len(payload), exc)
            return []
        return self.handle_values(values, arrival_time)

    def handle_values(self, values: Sequence[float] | np.ndarray, arrival_time: float) -> List[FeatureUpdate]:
        """Feed an already decoded sample vector through the pipeline."""
        vals = tuple(float(v) for v in np.asarray(values, dtype=np.float64).reshape(-1))
        try:
            result = self.reconciler.reconcile(vals, arrival_time)
        except ClockAnomaly as exc:
            self.stats.clock_anomalies += 1
            logger.warning("Dropping batch: %s", exc)
            return []

        if result.reset and self.config.reset_counters_on_reconnect:
            self.monitor.reset()
        if result.realigned:
            self.stats.realignments += 1
        self.stats.batches += 1

        non_finite = sum(1 for v in vals if not math.isfinite(v))
        if non_finite:
            self.stats.non_finite_values += non_finite
            logger.debug("Batch at t=%.3f carries %d non-finite values", result.logical_timestamp, non_finite)

        updates: List[FeatureUpdate] = []
        width = max(1, len(vals))
        for loss_ts in result.loss_events:
            # NaN placeholders: excluded from RMS, rendered as 0.0
            placeholder = Sample(timestamp=loss_ts, values=(math.nan,) * width, synthetic=True)
            self.monitor.record_expected()
            self.stats.loss_placeholders += 1
            updates.append(self._accept(placeholder))

        self.monitor.record_received()
        self.monitor.record_arrival(float(arrival_time))
        sample = Sample(timestamp=result.logical_timestamp, values=vals)
        if result.realigned or result.reset:
            self.reconstructor.mark_boundary(sample.timestamp)
        self._store(sample)

        # Fills older than the last emitted sample only repair the history;
        # downstream consumers see timestamps in ascending order.
        floor = self._last_timestamp
        for synthetic in self.reconstructor.maybe_reconstruct(self.history, self.monitor):
            self.stats.synthetic_samples += 1
            if (floor is None or synthetic.timestamp > floor) and synthetic.timestamp < sample.timestamp:
                updates.append(self._consume(synthetic))
        updates.append(self._consume(sample))
        self.stats.history_evictions = self.history.evicted

        now = self.now()
        self.monitor.report(now)
        self.tick(now)
        return updates

    def _store(self, sample: Sample) -> None:
        if not self.history.push(sample):
            self.stats.duplicates += 1

    def _accept(self, sample: Sample) -> FeatureUpdate:
        self._store(sample)
        return self._consume(sample)

    def _consume(self, sample: Sample) -> FeatureUpdate:
        update = self.features.consume(sample)
        self.live_view.add(update)
        self._last_timestamp = update.timestamp
        if self.spool.active:
            self.spool.append(
                Row(
                    index=self.spool.next_index,
                    timestamp=update.timestamp,
                    raw_value=update.raw_value,
                    short_rms=self.features.last_short_rms,
                    one_sec_rms=self.features.last_one_sec_rms,
                )
            )
        return update

    # -------------------------------------------------------------- lifecycle
    def on_connected(self) -> None:
        self.connected = True
        logger.info("Sensor connected")

    def on_disconnected(self) -> None:
        """Keep history; the grid and counters reset on the next accepted batch."""
        self.connected = False
        self.reconciler.mark_disconnected()
        logger.info("Sensor disconnected; grid reset deferred to next sample")

    # ---------------------------------------------------------------- control
    def start_recording(self) -> bool:
        return self.spool.start(self.now())

    def stop_recording(self) -> str:
        """Stop recording, flush partial windows and return the export text."""
        if self.spool.active:
            trailing = None
            flushed = self.features.flush(self._last_timestamp if self._last_timestamp is not None else 0.0)
            if flushed is not None:
                trailing = (flushed.short_rms, flushed.one_sec_rms)
            self.spool.stop(self.now(), trailing)
        return self.spool.export()

    def recording_session(self) -> RecordingSession:
        return self.spool.session()

    def export(self) -> str:
        return self.spool.export()

    def start_calibration(self) -> None:
        self.features.start_calibration(self.now())

    def end_calibration(self) -> float:
        return self.features.end_calibration()

    def tick(self, now: float | None = None) -> bool:
        """Timer hook: end an expired calibration even when no samples arrive."""
        current = self.now() if now is None else float(now)
        if self.features.calibration.expired(current):
            self.end_calibration()
            return True
        return False

    def reset(self) -> None:
        """Clear every buffer and reseed the live view with placeholders."""
        self.reconciler.reset()
        self.history.clear()
        self.reconstructor.clear()
        self.monitor.reset()
        self.features.reset()
        self.spool.reset()
        self.live_view.reset()
        self.stats = PipelineStats()
        self._last_timestamp = None
        logger.info("Pipeline reset")

    # ---------------------------------------------------------------- readers
    def history_samples(self) -> List[Sample]:
        """Ordered copy of the reconstruction history."""
        return self.history.snapshot()

    def snapshot(self) -> PipelineSnapshot:
        calibration = self.features.calibration
        return PipelineSnapshot(
            **self.live_view.series(),
            acquisition_ratio=self.monitor.sar(),
            arrival_rate_hz=self.monitor.arrival_rate_hz,
            recording=self.spool.active,
            calibrating=calibration.active,
            mve_value=calibration.mve_value,
            synthetic_count=self.stats.synthetic_samples,
        )
