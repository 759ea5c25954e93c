import math
import pathlib
import sys
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from emgflow.config import SamplingConfig  # noqa: E402
from emgflow.core.reconciler import TimestampReconciler  # noqa: E402
from emgflow.errors import ClockAnomaly  # noqa: E402


class SamplingConfigTest(unittest.TestCase):
    def test_decimals_follow_rate(self):
        self.assertEqual(SamplingConfig(device_rate_hz=10.0).timestamp_decimals, 1)
        self.assertEqual(SamplingConfig(device_rate_hz=100.0).timestamp_decimals, 2)
        self.assertEqual(SamplingConfig(device_rate_hz=8.0).timestamp_decimals, 1)
        self.assertEqual(SamplingConfig(device_rate_hz=10.0, decimals=3).timestamp_decimals, 3)

    def test_normalize_rounds_to_resolution(self):
        self.assertEqual(SamplingConfig().normalize(0.1 + 0.2), 0.3)


class TimestampReconcilerTest(unittest.TestCase):
    def setUp(self):
        self.reconciler = TimestampReconciler(SamplingConfig(device_rate_hz=10.0))

    def test_first_batch_anchors_grid(self):
        result = self.reconciler.reconcile([1.0], 12.34)

        self.assertEqual(result.logical_timestamp, 12.3)
        self.assertEqual(result.loss_events, [])
        self.assertFalse(result.realigned)

    def test_jittered_arrivals_snap_to_grid(self):
        stamps = [
            self.reconciler.reconcile([0.0], arrival).logical_timestamp
            for arrival in (0.0, 0.13, 0.18, 0.33, 0.41)
        ]

        self.assertEqual(stamps, [0.0, 0.1, 0.2, 0.3, 0.4])

    def test_loss_fill_reports_missing_grid_points(self):
        self.reconciler.reconcile([0.0], 0.0)
        self.reconciler.reconcile([0.0], 0.1)

        result = self.reconciler.reconcile([0.0], 1.1)

        self.assertEqual(result.loss_events, [0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9])
        self.assertEqual(result.logical_timestamp, 1.0)
        self.assertFalse(result.realigned)

    def test_loss_fill_is_capped(self):
        reconciler = TimestampReconciler(
            SamplingConfig(device_rate_hz=10.0),
            loss_threshold_s=0.2,
            max_fill_iterations=3,
        )
        reconciler.reconcile([0.0], 0.0)

        result = reconciler.reconcile([0.0], 0.9)

        self.assertEqual(result.loss_events, [0.1, 0.2, 0.3])

    def test_large_drift_realigns_without_backfill(self):
        self.reconciler.reconcile([0.0], 0.0)
        self.reconciler.reconcile([0.0], 0.1)

        result = self.reconciler.reconcile([0.0], 5.0)

        self.assertTrue(result.realigned)
        self.assertEqual(result.loss_events, [])
        self.assertEqual(result.logical_timestamp, 5.0)
        self.assertEqual(self.reconciler.reconcile([0.0], 5.1).logical_timestamp, 5.1)

    def test_backward_jump_keeps_grid_moving_forward(self):
        self.reconciler.reconcile([0.0], 10.0)
        self.reconciler.reconcile([0.0], 10.1)

        result = self.reconciler.reconcile([0.0], 7.0)

        self.assertFalse(result.realigned)
        self.assertEqual(result.loss_events, [])
        self.assertEqual(result.logical_timestamp, 10.2)
        self.assertEqual(self.reconciler.reconcile([0.0], 7.1).logical_timestamp, 10.3)

    def test_fast_device_clock_gives_strictly_increasing_stamps(self):
        stamps = [
            self.reconciler.reconcile([0.0], i / 12.0).logical_timestamp
            for i in range(240)
        ]

        self.assertEqual(len(set(stamps)), 240)
        self.assertTrue(all(b > a for a, b in zip(stamps, stamps[1:])))

    def test_clock_anomalies_raise(self):
        self.reconciler.reconcile([0.0], 1.0)
        for bad in (math.nan, math.inf, -1.0, 1.0 + 90000.0):
            with self.assertRaises(ClockAnomaly):
                self.reconciler.reconcile([0.0], bad)
        # the grid survives rejected batches
        self.assertEqual(self.reconciler.reconcile([0.0], 1.1).logical_timestamp, 1.1)

    def test_disconnect_resets_grid_on_next_batch(self):
        self.reconciler.reconcile([0.0], 0.0)
        self.reconciler.reconcile([0.0], 0.1)
        self.reconciler.mark_disconnected()
        self.assertTrue(self.reconciler.pending_reset)

        result = self.reconciler.reconcile([0.0], 100.0)

        self.assertTrue(result.reset)
        self.assertFalse(result.realigned)
        self.assertEqual(result.loss_events, [])
        self.assertEqual(result.logical_timestamp, 100.0)
        self.assertFalse(self.reconciler.pending_reset)


if __name__ == "__main__":
    unittest.main()
