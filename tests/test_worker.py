from __future__ import annotations

import struct
import time

import numpy as np
import pytest

from emgflow.config import EmgFlowConfig
from emgflow.core.models import PipelineSnapshot
from emgflow.core.pipeline import EmgPipeline
from emgflow.core.pipeline_wiring import build_pipeline
from emgflow.core.worker import PipelineWorker
from emgflow.dataio.log_loader import parse_export


def _payload(value: int) -> bytes:
    return struct.pack("<h", value)


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_threaded_pipeline_records_in_order() -> None:
    handles = build_pipeline(EmgFlowConfig(poll_interval_s=0.01), threaded=True)
    worker = handles.worker
    assert worker is not None and worker.is_alive()
    try:
        assert worker.start_recording().result(timeout=2.0) is True
        for i in range(5):
            handles.feed(_payload(i + 1), 0.1 * i)
        text = worker.stop_recording().result(timeout=2.0)
    finally:
        worker.stop()

    parsed = parse_export(text)
    np.testing.assert_allclose(parsed.timestamps, [0.0, 0.1, 0.2, 0.3, 0.4])
    np.testing.assert_allclose(parsed.raw_values, [1, 2, 3, 4, 5])
    assert not worker.is_alive()


def test_full_queue_drops_oldest_notification_but_keeps_commands() -> None:
    pipeline = EmgPipeline(EmgFlowConfig())
    worker = PipelineWorker(pipeline, queue_size=2, poll_interval_s=0.01)

    started = worker.start_recording()
    for i in range(3):
        worker.on_notification(_payload(i + 1), 0.1 * i)
    assert worker.dropped == 1

    worker.start()
    try:
        assert started.result(timeout=2.0) is True
        parsed = parse_export(worker.stop_recording().result(timeout=2.0))
    finally:
        worker.stop()

    np.testing.assert_allclose(parsed.timestamps, [0.1, 0.2])
    np.testing.assert_allclose(parsed.raw_values, [2, 3])
    assert pipeline.stats.queue_drops == 1


def test_reset_clears_queue_drop_count() -> None:
    pipeline = EmgPipeline(EmgFlowConfig())
    worker = PipelineWorker(pipeline, queue_size=2, poll_interval_s=0.01)

    for i in range(3):
        worker.on_notification(_payload(i + 1), 0.1 * i)
    assert worker.dropped == 1
    done = worker.reset()

    worker.start()
    try:
        done.result(timeout=2.0)
        assert worker.dropped == 0
    finally:
        worker.stop()

    assert pipeline.stats.queue_drops == 0
    assert pipeline.stats.batches == 0


def test_calibration_ends_via_poll_tick() -> None:
    handles = build_pipeline(EmgFlowConfig(calibration_seconds=0.05, poll_interval_s=0.01), threaded=True)
    worker = handles.worker
    try:
        worker.start_calibration().result(timeout=2.0)
        assert _wait_for(lambda: worker.latest_snapshot().mve_value is not None)
        snapshot = worker.latest_snapshot()
    finally:
        worker.stop()

    assert isinstance(snapshot, PipelineSnapshot)
    assert not snapshot.calibrating
    assert snapshot.mve_value == 0.0


def test_command_errors_surface_on_the_future() -> None:
    handles = build_pipeline(threaded=True)
    worker = handles.worker

    def boom() -> None:
        raise RuntimeError("boom")

    try:
        future = worker.submit(boom)
        with pytest.raises(RuntimeError, match="boom"):
            future.result(timeout=2.0)
        assert worker.is_alive()
    finally:
        worker.stop()

    with pytest.raises(RuntimeError):
        worker.reset().result(timeout=1.0)


def test_unthreaded_handles_run_inline() -> None:
    handles = build_pipeline(EmgFlowConfig())

    assert handles.worker is None
    handles.feed(_payload(7), 0.0)
    assert handles.pipeline.stats.batches == 1
