"""Utilities for loading notification captures and recorded exports."""

from __future__ import annotations

import csv
from dataclasses import dataclass
import io
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np

from .csv_writer import DURATION_LABEL, EXPORT_HEADERS

CONNECTION_EVENTS = ("connected", "disconnected")

#: One capture entry: ``(arrival_time, payload bytes)`` or ``(arrival_time, "connected")``.
CaptureEvent = Tuple[float, Union[bytes, str]]


@dataclass(frozen=True)
class ExportedRecording:
    """A parsed export: duration plus an ``(n, 5)`` array of rows."""

    duration_s: float
    rows: np.ndarray

    @property
    def timestamps(self) -> np.ndarray:
        return self.rows[:, 1]

    @property
    def raw_values(self) -> np.ndarray:
        return self.rows[:, 2]

    def __len__(self) -> int:
        return int(self.rows.shape[0])


def parse_export(text: str) -> ExportedRecording:
    """
    Parse export text back into numbers.

    The first line must carry the duration label, the second the column
    header; every following line is numeric.
    """
    lines = text.splitlines()
    if len(lines) < 2:
        raise ValueError("export needs a duration line and a header line")

    label, _, duration = lines[0].partition(",")
    if label.strip() != DURATION_LABEL:
        raise ValueError(f"unexpected duration line: {lines[0]!r}")
    header = tuple(cell.strip() for cell in lines[1].split(","))
    if header != EXPORT_HEADERS:
        raise ValueError(f"unexpected export header: {lines[1]!r}")

    body = "\n".join(line for line in lines[2:] if line.strip())
    if body:
        rows = np.loadtxt(io.StringIO(body), delimiter=",", ndmin=2)
    else:
        rows = np.empty((0, len(EXPORT_HEADERS)))
    return ExportedRecording(duration_s=float(duration), rows=rows)


def load_export(path: Path) -> ExportedRecording:
    """Load an export file written by :func:`~emgflow.dataio.csv_writer.write_export`."""
    return parse_export(Path(path).read_text(encoding="utf-8"))


def load_capture(path: Path) -> List[CaptureEvent]:
    """
    Load a notification capture.

    Each line is ``arrival_time,payload_hex`` or ``arrival_time,connected`` /
    ``arrival_time,disconnected``. Blank lines, ``#`` comments and a header
    line whose first cell is not numeric are skipped.
    """
    events: List[CaptureEvent] = []
    with Path(path).open("r", encoding="utf-8", newline="") as fh:
        for lineno, cells in enumerate(csv.reader(fh), start=1):
            if not cells or not cells[0].strip() or cells[0].lstrip().startswith("#"):
                continue
            try:
                arrival = float(cells[0])
            except ValueError:
                if lineno == 1:
                    continue
                raise ValueError(f"{path}:{lineno}: bad arrival time {cells[0]!r}") from None
            value = cells[1].strip() if len(cells) > 1 else ""
            if value.lower() in CONNECTION_EVENTS:
                events.append((arrival, value.lower()))
                continue
            try:
                events.append((arrival, bytes.fromhex(value)))
            except ValueError:
                raise ValueError(f"{path}:{lineno}: payload is not hex: {value!r}") from None
    return events


__all__ = [
    "CaptureEvent",
    "ExportedRecording",
    "load_capture",
    "load_export",
    "parse_export",
]
