"""
Replay a notification capture through the EMG pipeline and write the export.

Usage
-----
    emgflow-replay capture.csv
    emgflow-replay capture.csv -o out/recording.csv --calibrate 2 12
    emgflow-replay capture.csv --config emgflow.yaml --log-level DEBUG

The capture holds one event per line: ``arrival_time,payload_hex`` for a
notification, or ``arrival_time,connected`` / ``arrival_time,disconnected``.
Arrival times drive the pipeline clock, so rate limiting and calibration
timing behave as they did live.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from ..config import load_config
from ..core.pipeline import EmgPipeline
from ..dataio.csv_writer import write_export, write_rows
from ..dataio.file_paths import export_path
from ..dataio.log_loader import CaptureEvent, load_capture

logger = logging.getLogger(__name__)


class ReplayClock:
    """Clock that reports the arrival time of the event being replayed."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now


def replay(
    pipeline: EmgPipeline,
    events: Sequence[CaptureEvent],
    clock: ReplayClock,
    *,
    calibrate: Optional[tuple[float, float]] = None,
) -> str:
    """Feed ``events`` through ``pipeline`` while recording; return the export text."""
    if events:
        clock.now = events[0][0]
    pipeline.start_recording()
    calibration_started = False
    calibration_done = False

    for arrival, item in events:
        clock.now = arrival
        if calibrate is not None and not calibration_done:
            if not calibration_started and arrival >= calibrate[0]:
                pipeline.start_calibration()
                calibration_started = True
            if calibration_started and arrival >= calibrate[1]:
                pipeline.end_calibration()
                calibration_done = True

        if item == "connected":
            pipeline.on_connected()
        elif item == "disconnected":
            pipeline.on_disconnected()
        else:
            pipeline.on_notification(item, arrival)

    if calibration_started and not calibration_done:
        pipeline.end_calibration()
    return pipeline.stop_recording()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay an EMG notification capture and write the recording export."
    )
    parser.add_argument("capture", type=str, help="Capture CSV (arrival_time,payload_hex).")
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        help="YAML configuration file (defaults are used when omitted).",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Export path. Defaults to a timestamped session directory under data/exports.",
    )
    parser.add_argument(
        "--calibrate",
        nargs=2,
        type=float,
        metavar=("START", "END"),
        help="Run MVE calibration between these arrival times (seconds).",
    )
    parser.add_argument(
        "--stats",
        type=str,
        help="Optional CSV file receiving the pipeline counters.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    capture_path = Path(args.capture).expanduser()
    if not capture_path.exists():
        parser.error(f"Capture file not found: {capture_path}")

    try:
        cfg = load_config(args.config)
        events = load_capture(capture_path)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    clock = ReplayClock()
    pipeline = EmgPipeline(cfg, clock=clock)
    calibrate = tuple(args.calibrate) if args.calibrate else None
    text = replay(pipeline, events, clock, calibrate=calibrate)

    output = Path(args.output).expanduser() if args.output else export_path(capture_path.stem)
    write_export(output, text)

    if args.stats:
        counters = pipeline.stats.as_dict()
        write_rows(Path(args.stats), ("counter", "value"), sorted(counters.items()))

    snapshot = pipeline.snapshot()
    session = pipeline.recording_session()
    print(f"[INFO] Wrote {len(session.rows)} rows to {output}")
    print(
        f"[INFO] SAR={snapshot.sar():.1f}% synthetic={snapshot.synthetic_count} "
        f"duration={session.duration_s:.3f}s"
    )
    if snapshot.mve_value is not None:
        print(f"[INFO] MVE={snapshot.mve_value:.6f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
