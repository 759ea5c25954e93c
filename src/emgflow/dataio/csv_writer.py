"""CSV writing helpers for recorded EMG sessions."""

from __future__ import annotations

import csv
import io
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Sequence

if TYPE_CHECKING:
    from ..core.models import Row

DURATION_LABEL = "Recording Duration (s):"
EXPORT_HEADERS = ("Index", "Timestamp", "EMG", "ShortRMS", "OneSecRMS")


def _fmt(value: float, decimals: int) -> str:
    number = float(value)
    if not math.isfinite(number):
        number = 0.0
    return f"{number:.{decimals}f}"


def format_export(
    rows: Iterable[Row],
    duration_s: float,
    *,
    time_decimals: int = 3,
    value_decimals: int = 6,
) -> str:
    """
    Render recorded rows as newline-delimited export text.

    The first line carries the total duration, the second the column header.
    Rows whose timestamp was already written (at ``time_decimals`` precision)
    are skipped so that the first occurrence wins; the index column is
    renumbered from zero over the rows actually written.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([DURATION_LABEL, _fmt(duration_s, time_decimals)])
    writer.writerow(EXPORT_HEADERS)

    seen: set[str] = set()
    index = 0
    for row in rows:
        ts = _fmt(row.timestamp, time_decimals)
        if ts in seen:
            continue
        seen.add(ts)
        writer.writerow(
            [
                index,
                ts,
                _fmt(row.raw_value, value_decimals),
                _fmt(row.short_rms, value_decimals),
                _fmt(row.one_sec_rms, value_decimals),
            ]
        )
        index += 1
    return buffer.getvalue()


def write_export(path: Path, text: str) -> Path:
    """Write export text to ``path``, creating directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(text)
    return path


def write_rows(path: Path, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    """
    Write a header row and all data rows to a CSV file.

    Directories are created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(headers)
        writer.writerows(rows)
