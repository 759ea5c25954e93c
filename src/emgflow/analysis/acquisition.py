"""Signal acquisition ratio (SAR) monitoring and quality-band classification."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Literal, Optional

logger = logging.getLogger(__name__)

QualityBand = Literal["perfect", "nominal", "recovering", "degraded"]

PERFECT_REPORT_INTERVAL_S = 10.0
NOMINAL_REPORT_INTERVAL_S = 1.0
DEGRADED_BELOW = 10.0
NOMINAL_ABOVE = 80.0


@dataclass(frozen=True)
class QualityReport:
    """One acquisition-quality observation emitted by the monitor."""

    sar: float
    band: QualityBand
    received: int
    expected: int
    timestamp: float


def quality_band(sar: float) -> QualityBand:
    """Classify a SAR percentage into its reporting band."""
    if sar >= 100.0:
        return "perfect"
    if sar < DEGRADED_BELOW:
        return "degraded"
    if sar <= NOMINAL_ABOVE:
        return "recovering"
    return "nominal"


class AcquisitionMonitor:
    """
    Track received vs. expected samples and derive the Signal Acquisition Ratio.

    Notes
    -----
    - ``sar()`` is recomputed at most once per ``refresh_interval_s``; callers
      in between get the cached value.
    - ``loss_ratio()`` is always exact and is what the gap reconstructor reads.
    - Arrival times are also kept in a short window to estimate the actual
      notification rate, which is handy when SAR alone looks fine but the
      device is running slow.
    - The monitor only observes; it never touches buffers.
    """

    def __init__(
        self,
        *,
        refresh_interval_s: float = 1.0,
        rate_window_size: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate_window_size <= 1:
            raise ValueError("rate_window_size must be > 1")
        self.refresh_interval_s = max(0.0, float(refresh_interval_s))
        self._clock = clock
        self.received = 0
        self.expected = 0
        self._arrivals: Deque[float] = deque(maxlen=rate_window_size)
        self._sar_cache: Optional[float] = None
        self._sar_computed_at: Optional[float] = None
        self._last_report: Optional[QualityReport] = None

    # ------------------------------------------------------------------ counts
    def record_received(self, count: int = 1) -> None:
        """An accepted batch counts towards both received and expected."""
        self.received += int(count)
        self.expected += int(count)

    def record_expected(self, count: int = 1) -> None:
        """A loss placeholder counts towards expected only."""
        self.expected += int(count)

    def record_arrival(self, arrival_time: float) -> None:
        self._arrivals.append(float(arrival_time))

    # ----------------------------------------------------------------- metrics
    def _compute_sar(self) -> float:
        if self.received <= 0 or self.expected <= 0:
            return 0.0
        return (self.received / self.expected) * 100.0

    def sar(self, now: float | None = None) -> float:
        """Return received/expected as a percentage (0.0 before any data)."""
        current = self._clock() if now is None else float(now)
        stale = (
            self._sar_cache is None
            or self._sar_computed_at is None
            or current - self._sar_computed_at >= self.refresh_interval_s
        )
        if stale:
            self._sar_cache = self._compute_sar()
            self._sar_computed_at = current
        assert self._sar_cache is not None
        return self._sar_cache

    def loss_ratio(self) -> float:
        """Fraction of expected samples that never arrived."""
        if self.expected <= 0:
            return 0.0
        dropped = max(0, self.expected - self.received)
        return dropped / self.expected

    @property
    def arrival_rate_hz(self) -> float:
        """Estimate the notification rate from the recent arrival window."""
        if len(self._arrivals) < 2:
            return 0.0
        span = self._arrivals[-1] - self._arrivals[0]
        if span <= 0:
            return 0.0
        return (len(self._arrivals) - 1) / span

    # --------------------------------------------------------------- reporting
    def _should_report(self, report: QualityReport) -> bool:
        last = self._last_report
        if last is None:
            return True
        elapsed = report.timestamp - last.timestamp
        if report.band == "perfect":
            return last.sar != report.sar or elapsed >= PERFECT_REPORT_INTERVAL_S
        if report.band in ("degraded", "recovering"):
            return True
        return elapsed >= NOMINAL_REPORT_INTERVAL_S

    def report(self, now: float | None = None) -> Optional[QualityReport]:
        """
        Emit a quality report if the band's rate limit allows one.

        Returns
        -------
        QualityReport or None
            ``None`` when this cycle is suppressed.
        """
        current = self._clock() if now is None else float(now)
        sar = self.sar(current)
        band = quality_band(sar)
        report = QualityReport(
            sar=sar,
            band=band,
            received=self.received,
            expected=self.expected,
            timestamp=current,
        )
        if not self._should_report(report):
            return None
        self._last_report = report
        if band == "degraded":
            logger.warning("Signal acquisition degraded: SAR %.1f%% (%d/%d)", sar, self.received, self.expected)
        elif band == "recovering":
            logger.warning("Signal acquisition recovering: SAR %.1f%% (%d/%d)", sar, self.received, self.expected)
        elif band == "nominal":
            logger.info("Signal acquisition nominal: SAR %.1f%%", sar)
        else:
            logger.debug("Signal acquisition perfect: SAR %.1f%%", sar)
        return report

    def reset(self) -> None:
        """Clear counters, cached SAR and arrival history."""
        self.received = 0
        self.expected = 0
        self._arrivals.clear()
        self._sar_cache = None
        self._sar_computed_at = None
        self._last_report = None


__all__ = ["AcquisitionMonitor", "QualityBand", "QualityReport", "quality_band"]
