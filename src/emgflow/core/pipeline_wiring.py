"""Factory helpers that wire an :class:`EmgPipeline` from configuration."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable, Optional

from ..config import EmgFlowConfig
from .pipeline import EmgPipeline
from .worker import PipelineWorker


@dataclass(slots=True)
class PipelineHandles:
    """Return value from :func:`build_pipeline` containing ready-to-use pieces."""

    pipeline: EmgPipeline
    worker: Optional[PipelineWorker] = None

    def feed(self, payload: bytes, arrival_time: float) -> None:
        """Route a notification to the worker when threaded, else run it inline."""
        if self.worker is not None:
            self.worker.on_notification(payload, arrival_time)
        else:
            self.pipeline.on_notification(payload, arrival_time)


def build_pipeline(
    cfg: EmgFlowConfig | None = None,
    *,
    threaded: bool = False,
    clock: Optional[Callable[[], float]] = None,
    start: bool = True,
) -> PipelineHandles:
    """
    Build an :class:`EmgPipeline` and, optionally, the worker that owns it.

    Parameters
    ----------
    cfg:
        Runtime configuration (usually loaded from YAML). Defaults are used
        when omitted.
    threaded:
        Wrap the pipeline in a :class:`PipelineWorker`. The caller must then
        only touch the pipeline through the worker.
    clock:
        Monotonic time source; replays pass a clock driven by capture times.
    start:
        Start the worker thread right away (ignored when not threaded).
    """

    normalized = (cfg or EmgFlowConfig()).sanitized()
    pipeline = EmgPipeline(normalized, clock=clock or time.monotonic)
    worker: Optional[PipelineWorker] = None
    if threaded:
        worker = PipelineWorker(
            pipeline,
            queue_size=normalized.queue_size,
            poll_interval_s=normalized.poll_interval_s,
        )
        if start:
            worker.start()
    return PipelineHandles(pipeline=pipeline, worker=worker)


__all__ = ["PipelineHandles", "build_pipeline"]
