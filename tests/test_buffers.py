from __future__ import annotations

import math

import numpy as np
import pytest

from emgflow.core import FeatureUpdate, LiveView, LiveViewConfig, OrderedSampleBuffer, RingBuffer, Sample


def _sample(ts: float, value: float = 0.0) -> Sample:
    return Sample(timestamp=ts, values=(value,))


def test_ordered_buffer_drains_in_timestamp_order() -> None:
    buf = OrderedSampleBuffer(capacity=10, decimals=1)
    for ts in (0.3, 0.1, 0.2):
        assert buf.push(_sample(ts))

    assert [s.timestamp for s in buf.snapshot()] == [0.1, 0.2, 0.3]
    assert len(buf) == 3
    assert [s.timestamp for s in buf.drain()] == [0.1, 0.2, 0.3]
    assert len(buf) == 0


def test_ordered_buffer_evicts_oldest_when_full() -> None:
    buf = OrderedSampleBuffer(capacity=3, decimals=1)
    buf.extend(_sample(ts) for ts in (0.2, 0.3, 0.1))

    buf.push(_sample(0.4))

    assert len(buf) == 3
    assert buf.evicted == 1
    assert 0.1 not in buf
    assert buf.peek_min().timestamp == 0.2
    assert buf.latest().timestamp == 0.4


def test_ordered_buffer_rejects_duplicate_slots() -> None:
    buf = OrderedSampleBuffer(capacity=5, decimals=1)
    assert buf.push(_sample(0.1, 1.0))

    assert not buf.push(_sample(0.1, 2.0))
    assert not buf.push(_sample(0.1 + 1e-9, 3.0))

    assert buf.rejected == 2
    assert [s.amplitude() for s in buf.snapshot()] == [1.0]


def test_ordered_buffer_requires_positive_capacity() -> None:
    with pytest.raises(ValueError):
        OrderedSampleBuffer(capacity=0)


def test_ring_buffer_sliding_window() -> None:
    buf: RingBuffer[int] = RingBuffer(3)
    buf.extend(range(5))

    assert buf.snapshot() == [2, 3, 4]
    assert buf[0] == 2
    assert buf[-1] == 4
    assert buf.evicted == 2


def test_ring_buffer_batch_eviction() -> None:
    buf: RingBuffer[int] = RingBuffer(20, evict_fraction=0.1)
    buf.extend(range(21))

    assert len(buf) == 19
    assert buf[0] == 2
    assert buf[-1] == 20
    assert buf.evicted == 2


def test_live_view_seeds_placeholders_and_renders_nan_as_zero() -> None:
    view = LiveView(LiveViewConfig(capacity=10, placeholder_count=3, interval_s=0.1))

    times, values = view.series()["raw_series"]
    np.testing.assert_allclose(times, [0.0, 0.1, 0.2])
    np.testing.assert_array_equal(values, np.zeros(3, dtype=np.float32))

    view.add(FeatureUpdate(timestamp=1.0, raw_value=math.nan, short_rms=2.0))
    times, values = view.series()["raw_series"]
    assert times[-1] == 1.0
    assert values[-1] == 0.0
    short_times, short_values = view.series()["short_rms_series"]
    assert short_times[-1] == 1.0
    assert short_values[-1] == pytest.approx(2.0)


def test_live_view_raw_series_is_sorted() -> None:
    view = LiveView(LiveViewConfig(capacity=10, placeholder_count=0))
    for ts in (0.3, 0.1, 0.2):
        view.add(FeatureUpdate(timestamp=ts, raw_value=ts))

    times, values = view.series()["raw_series"]

    np.testing.assert_allclose(times, [0.1, 0.2, 0.3])
    np.testing.assert_allclose(values, [0.1, 0.2, 0.3], rtol=1e-6)


def test_live_view_moves_placeholders_next_to_first_update() -> None:
    view = LiveView(LiveViewConfig(capacity=20, placeholder_count=3, interval_s=0.1))

    view.add(FeatureUpdate(timestamp=1000.0, raw_value=4.0))

    times, values = view.series()["raw_series"]
    np.testing.assert_allclose(times, [999.7, 999.8, 999.9, 1000.0])
    np.testing.assert_allclose(values, [0.0, 0.0, 0.0, 4.0])
    envelope_times, _ = view.series()["envelope_series"]
    np.testing.assert_allclose(envelope_times, [999.7, 999.8, 999.9])

    view.add(FeatureUpdate(timestamp=1000.1, raw_value=5.0))
    times, _ = view.series()["raw_series"]
    assert len(times) == 5
    assert np.all(np.diff(times) > 0)

    view.reset()
    times, _ = view.series()["raw_series"]
    np.testing.assert_allclose(times, [0.0, 0.1, 0.2])
    view.add(FeatureUpdate(timestamp=50.0, raw_value=1.0))
    times, _ = view.series()["raw_series"]
    assert times[0] == pytest.approx(49.7)
    assert times[-1] == 50.0


def test_pop_min_returns_oldest_until_empty() -> None:
    buf = OrderedSampleBuffer(capacity=5, decimals=1)
    buf.extend(_sample(ts) for ts in (0.4, 0.2))

    assert buf.pop_min().timestamp == 0.2
    assert 0.2 not in buf
    assert buf.pop_min().timestamp == 0.4
    assert buf.pop_min() is None
