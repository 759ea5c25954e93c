"""Core reconstruction pipeline: buffers, grid reconciliation and recording.

This package sits between the transport (BLE notifications, capture replays)
and the UI/export side. It reconciles bursty arrivals onto the sampling grid,
repairs gaps in an ordered history, and spools feature rows for export.

The threaded :mod:`~emgflow.core.worker` and the :mod:`~emgflow.core.pipeline`
owner are imported from their modules directly; they depend on
:mod:`emgflow.analysis`, which itself builds on the data structures here.
"""

# Data structures shared by the pipeline
from .models import FeatureUpdate, PipelineSnapshot, PipelineStats, Row, Sample
from .ringbuffer import RingBuffer
from .ordered_buffer import OrderedSampleBuffer

# Grid reconciliation, repair and output
from .reconciler import ReconcileResult, SamplingGrid, TimestampReconciler
from .reconstruction import GapReconstructor
from .recording import RecordingSession, RecordingSpool
from .live_view import LiveView, LiveViewConfig

__all__ = [
    "Sample",
    "Row",
    "FeatureUpdate",
    "PipelineStats",
    "PipelineSnapshot",
    "RingBuffer",
    "OrderedSampleBuffer",
    "SamplingGrid",
    "ReconcileResult",
    "TimestampReconciler",
    "GapReconstructor",
    "RecordingSession",
    "RecordingSpool",
    "LiveView",
    "LiveViewConfig",
]
