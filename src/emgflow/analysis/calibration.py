"""Maximum voluntary exertion (MVE) calibration."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

logger = logging.getLogger(__name__)


class MveCalibration:
    """
    Collect one-second RMS values for a fixed duration and reduce them to an MVE.

    The countdown is host driven: the owner passes its clock to :meth:`start`
    and polls :meth:`expired`, so the calibration ends on time even when no
    samples arrive. With no valid values collected the MVE is ``0.0`` and
    every percentage derived from it is ``0.0``.
    """

    def __init__(self, duration_s: float = 10.0) -> None:
        self.duration_s = max(0.0, float(duration_s))
        self.active = False
        self.samples: List[float] = []
        self.mve_value: Optional[float] = None
        self._deadline: Optional[float] = None

    @property
    def calibrated(self) -> bool:
        return self.mve_value is not None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def start(self, now: float) -> None:
        self.active = True
        self.samples = []
        self._deadline = float(now) + self.duration_s
        logger.info("MVE calibration started for %.1f s", self.duration_s)

    def add(self, rms: float) -> None:
        if self.active:
            self.samples.append(float(rms))

    def expired(self, now: float) -> bool:
        return self.active and self._deadline is not None and float(now) >= self._deadline

    def end(self) -> float:
        """Collapse the collected values into the MVE reference (max observed).

        Ending a calibration that is not running leaves the stored MVE untouched.
        """
        if not self.active:
            return self.mve_value if self.mve_value is not None else 0.0
        valid = [value for value in self.samples if math.isfinite(value)]
        self.mve_value = max(valid) if valid else 0.0
        self.active = False
        self.samples = []
        self._deadline = None
        if valid:
            logger.info("MVE calibration finished: mve=%.6f from %d values", self.mve_value, len(valid))
        else:
            logger.warning("MVE calibration finished without valid RMS values; mve=0")
        return self.mve_value

    def percent(self, rms: float) -> float:
        """Express ``rms`` as a percentage of the MVE (0.0 when MVE is zero)."""
        mve = self.mve_value or 0.0
        if mve == 0.0 or not math.isfinite(rms):
            return 0.0
        return 100.0 * float(rms) / mve

    def reset(self) -> None:
        self.active = False
        self.samples = []
        self.mve_value = None
        self._deadline = None


__all__ = ["MveCalibration"]
