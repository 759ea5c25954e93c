"""Anchor bursty, jittery arrivals onto the nominal sampling grid.

Samples arrive in bursts with jitter; RMS windows need evenly spaced input, so
each accepted batch is stamped with the *predicted* grid time rather than its
raw arrival time. Large forward jumps of the predicted time are treated as
packet loss and reported as loss events; anything beyond the realignment
threshold re-anchors the grid forward instead of back-filling. The grid never
moves backwards, so logical timestamps are strictly increasing per session.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

from ..config.sampling import SamplingConfig
from ..errors import ClockAnomaly

logger = logging.getLogger(__name__)

_GRID_EPSILON = 1e-9


@dataclass
class SamplingGrid:
    """Predicted sampling grid for one connection session.

    ``expected_next`` is ``anchor + steps * interval``; keeping the integer step
    count avoids accumulating rounding error over long sessions.
    """

    interval: float
    first_timestamp: Optional[float] = None
    anchor: Optional[float] = None
    steps: int = 0

    @property
    def initialized(self) -> bool:
        return self.anchor is not None

    @property
    def expected_next(self) -> Optional[float]:
        if self.anchor is None:
            return None
        return self.anchor + self.steps * self.interval

    def start(self, timestamp: float) -> None:
        self.first_timestamp = timestamp
        self.realign(timestamp)

    def realign(self, timestamp: float) -> None:
        self.anchor = timestamp
        self.steps = 0

    def advance(self) -> None:
        self.steps += 1

    def clear(self) -> None:
        self.first_timestamp = None
        self.anchor = None
        self.steps = 0


class ReconcileResult(NamedTuple):
    logical_timestamp: float
    loss_events: List[float]
    reset: bool = False
    realigned: bool = False


class TimestampReconciler:
    """Assign each incoming batch a position on the sampling grid."""

    def __init__(
        self,
        sampling: SamplingConfig | None = None,
        *,
        realignment_threshold_s: float = 1.0,
        loss_threshold_s: float = 0.8,
        max_fill_iterations: int = 100,
        clock_anomaly_threshold_s: float = 86400.0,
    ) -> None:
        self.sampling = sampling or SamplingConfig()
        self.grid = SamplingGrid(interval=self.sampling.interval_s)
        self.realignment_threshold_s = float(realignment_threshold_s)
        self.loss_threshold_s = float(loss_threshold_s)
        self.max_fill_iterations = max(1, int(max_fill_iterations))
        self.clock_anomaly_threshold_s = float(clock_anomaly_threshold_s)
        self._last_arrival: Optional[float] = None
        self._pending_reset = False

    @property
    def interval(self) -> float:
        return self.grid.interval

    @property
    def pending_reset(self) -> bool:
        return self._pending_reset

    def mark_disconnected(self) -> None:
        """Arm a grid reset for the next successful reconciliation.

        Resetting lazily lets a brief reconnect keep in-flight history until
        fresh data actually arrives.
        """
        self._pending_reset = True

    def reset(self) -> None:
        """Forget the grid immediately (explicit pipeline reset)."""
        self.grid.clear()
        self._last_arrival = None
        self._pending_reset = False

    def _check_clock(self, arrival_time: float) -> float:
        try:
            arrival = float(arrival_time)
        except (TypeError, ValueError):
            raise ClockAnomaly(arrival_time, "not a number") from None
        if not math.isfinite(arrival):
            raise ClockAnomaly(arrival, "non-finite arrival time")
        if arrival < 0.0:
            raise ClockAnomaly(arrival, "negative arrival time")
        last = self._last_arrival
        if (
            last is not None
            and not self._pending_reset
            and abs(arrival - last) > self.clock_anomaly_threshold_s
        ):
            raise ClockAnomaly(
                arrival, f"jump of {arrival - last:.3f} s from previous arrival {last:.3f}"
            )
        return arrival

    def reconcile(self, raw_values: Sequence[float], arrival_time: float) -> ReconcileResult:
        """Return the logical timestamp for this batch plus any loss events.

        ``raw_values`` is accepted for symmetry with the transport contract;
        reconciliation only looks at time.
        """
        arrival = self._check_clock(arrival_time)
        normalize = self.sampling.normalize
        grid = self.grid

        reset = False
        if self._pending_reset:
            logger.info("Resetting sampling grid after reconnect at t=%.3f", arrival)
            grid.clear()
            self._pending_reset = False
            reset = True
        self._last_arrival = arrival

        if not grid.initialized:
            grid.start(arrival)
            grid.advance()
            return ReconcileResult(normalize(arrival), [], reset=reset)

        expected = grid.expected_next
        assert expected is not None
        drift = arrival - expected
        loss_events: List[float] = []
        realigned = False

        if drift > self.realignment_threshold_s:
            # Desync or reconnect: snap forward to arrival, never back-fill the gap.
            logger.info(
                "Realigning sampling grid: drift %.3f s exceeds %.3f s",
                drift,
                self.realignment_threshold_s,
            )
            grid.realign(arrival)
            realigned = True
        elif drift < -self.realignment_threshold_s:
            # Arrivals lag the grid (faster device clock or a burst replay).
            # The grid never moves backwards, so stamps stay strictly increasing.
            logger.debug("Arrival t=%.3f lags sampling grid by %.3f s; keeping grid", arrival, -drift)
        elif drift > self.loss_threshold_s:
            iterations = 0
            while (
                grid.expected_next + grid.interval < arrival - _GRID_EPSILON
                and iterations < self.max_fill_iterations
            ):
                loss_events.append(normalize(grid.expected_next))
                grid.advance()
                iterations += 1
            if iterations >= self.max_fill_iterations:
                logger.warning(
                    "Loss fill stopped after %d iterations at t=%.3f",
                    iterations,
                    arrival,
                )
            logger.debug("Suspected packet loss: %d samples before t=%.3f", len(loss_events), arrival)

        logical = normalize(grid.expected_next)
        grid.advance()
        return ReconcileResult(logical, loss_events, reset=reset, realigned=realigned)


__all__ = ["ReconcileResult", "SamplingGrid", "TimestampReconciler"]
