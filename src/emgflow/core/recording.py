"""Append-only recording spool that survives stop/resume until reset."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from ..dataio.csv_writer import format_export
from .models import Row

logger = logging.getLogger(__name__)


@dataclass
class RecordingSession:
    active: bool = False
    start_time: float = 0.0
    rows: List[Row] = field(default_factory=list)
    duration_s: float = 0.0
    trailing_short_rms: Optional[float] = None
    trailing_one_sec_rms: Optional[float] = None

    def copy(self) -> "RecordingSession":
        return replace(self, rows=list(self.rows))


class RecordingSpool:
    """
    Collects one :class:`Row` per accepted sample while recording is active.

    ``start`` only wipes rows on the first activation after construction or
    :meth:`reset`; pausing with ``stop`` and starting again resumes the same
    session. Duration accumulates over every active segment.
    """

    def __init__(self, *, time_decimals: int = 3, value_decimals: int = 6) -> None:
        self.time_decimals = int(time_decimals)
        self.value_decimals = int(value_decimals)
        self._session = RecordingSession()
        self._fresh = True
        self._next_index = 0

    @property
    def active(self) -> bool:
        return self._session.active

    @property
    def next_index(self) -> int:
        return self._next_index

    def __len__(self) -> int:
        return len(self._session.rows)

    def start(self, now: float) -> bool:
        """Begin or resume recording; return ``False`` when already active."""
        session = self._session
        if session.active:
            return False
        if self._fresh:
            session.rows.clear()
            session.duration_s = 0.0
            session.trailing_short_rms = None
            session.trailing_one_sec_rms = None
            self._next_index = 0
            self._fresh = False
            logger.info("Recording started")
        else:
            logger.info("Recording resumed with %d rows", len(session.rows))
        session.active = True
        session.start_time = float(now)
        return True

    def append(self, row: Row) -> bool:
        """Add ``row`` while active; rows offered while inactive are ignored."""
        if not self._session.active:
            return False
        self._session.rows.append(row)
        self._next_index += 1
        return True

    def stop(self, now: float, trailing: Tuple[Optional[float], Optional[float]] | None = None) -> RecordingSession:
        """
        Stop recording and freeze the rows for export.

        ``trailing`` holds the RMS of whatever partial short/one-second
        windows remained; they are written into the final row.
        """
        session = self._session
        if session.active:
            session.duration_s += max(0.0, float(now) - session.start_time)
            session.active = False
            if trailing is not None:
                self._apply_trailing(*trailing)
            logger.info(
                "Recording stopped: %d rows, %.3f s",
                len(session.rows),
                session.duration_s,
            )
        return session.copy()

    def _apply_trailing(self, short_rms: Optional[float], one_sec_rms: Optional[float]) -> None:
        session = self._session
        session.trailing_short_rms = short_rms
        session.trailing_one_sec_rms = one_sec_rms
        if not session.rows:
            return
        last = session.rows[-1]
        session.rows[-1] = replace(
            last,
            short_rms=last.short_rms if short_rms is None else short_rms,
            one_sec_rms=last.one_sec_rms if one_sec_rms is None else one_sec_rms,
        )

    def session(self) -> RecordingSession:
        """Read-only copy of the current session."""
        return self._session.copy()

    def export(self) -> str:
        session = self._session
        return format_export(
            session.rows,
            session.duration_s,
            time_decimals=self.time_decimals,
            value_decimals=self.value_decimals,
        )

    def reset(self) -> None:
        self._session = RecordingSession()
        self._fresh = True
        self._next_index = 0


__all__ = ["RecordingSession", "RecordingSpool"]
