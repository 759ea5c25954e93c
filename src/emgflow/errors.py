"""Exceptions raised inside the reconstruction pipeline.

None of these are fatal: :class:`~emgflow.core.pipeline.EmgPipeline` catches
them, logs, bumps a counter and keeps going.
"""

from __future__ import annotations


class EmgFlowError(Exception):
    """Base class for recoverable pipeline errors."""


class DecodeError(EmgFlowError, ValueError):
    """A transport payload could not be turned into a sample vector."""


class ClockAnomaly(EmgFlowError, ValueError):
    """An arrival time is non-finite or far outside sane bounds."""

    def __init__(self, arrival_time: float, reason: str) -> None:
        super().__init__(f"clock anomaly at arrival_time={arrival_time!r}: {reason}")
        self.arrival_time = arrival_time
        self.reason = reason


__all__ = ["EmgFlowError", "DecodeError", "ClockAnomaly"]
