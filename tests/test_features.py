import math
import pathlib
import sys
import unittest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from emgflow.analysis import (  # noqa: E402
    BlockRmsWindow,
    EnvelopeWindow,
    FeatureExtractor,
    MveCalibration,
    calculate_rms,
)
from emgflow.core.models import Sample  # noqa: E402


def _feed(extractor, values, start=0.0, synthetic=False):
    updates = []
    for i, value in enumerate(values):
        sample = Sample(timestamp=round(start + 0.1 * i, 1), values=(value,), synthetic=synthetic)
        updates.append(extractor.consume(sample))
    return updates


class CalculateRmsTest(unittest.TestCase):
    def test_empty_and_all_nan_are_zero(self):
        self.assertEqual(calculate_rms([]), 0.0)
        self.assertEqual(calculate_rms([math.nan, math.nan]), 0.0)

    def test_rms_of_finite_values(self):
        self.assertAlmostEqual(calculate_rms([3.0, 4.0]), 3.5355339, places=6)

    def test_non_finite_entries_are_excluded(self):
        self.assertAlmostEqual(calculate_rms([3.0, math.nan, 4.0, math.inf]), 3.5355339, places=6)


class WindowTest(unittest.TestCase):
    def test_block_window_emits_once_full_then_restarts(self):
        window = BlockRmsWindow(2)
        self.assertIsNone(window.add(3.0))
        self.assertAlmostEqual(window.add(4.0), 3.5355339, places=6)
        self.assertEqual(len(window), 0)
        self.assertIsNone(window.flush())

    def test_block_window_flushes_partial_data(self):
        window = BlockRmsWindow(4)
        window.add(5.0)
        self.assertEqual(window.flush(), 5.0)
        self.assertEqual(len(window), 0)

    def test_envelope_is_sliding_max(self):
        envelope = EnvelopeWindow(3)
        emitted = [envelope.add(v) for v in (1.0, 5.0, 2.0, 1.0, 1.0, 0.5)]
        self.assertEqual(emitted, [None, None, 5.0, 5.0, 2.0, 1.0])


class CalibrationTest(unittest.TestCase):
    def test_mve_is_max_of_collected_values(self):
        calibration = MveCalibration(duration_s=1.0)
        calibration.start(now=0.0)
        for value in (2.0, math.nan, 4.0):
            calibration.add(value)

        self.assertFalse(calibration.expired(0.5))
        self.assertTrue(calibration.expired(1.0))
        self.assertEqual(calibration.end(), 4.0)
        self.assertFalse(calibration.active)
        self.assertEqual(calibration.percent(2.0), 50.0)

    def test_empty_calibration_gives_zero_percent(self):
        calibration = MveCalibration(duration_s=1.0)
        calibration.start(now=0.0)

        self.assertEqual(calibration.end(), 0.0)
        self.assertEqual(calibration.percent(3.0), 0.0)

    def test_ending_twice_keeps_the_first_result(self):
        calibration = MveCalibration(duration_s=1.0)
        calibration.start(now=0.0)
        calibration.add(4.0)
        self.assertEqual(calibration.end(), 4.0)

        self.assertEqual(calibration.end(), 4.0)
        self.assertEqual(calibration.mve_value, 4.0)
        self.assertEqual(calibration.percent(2.0), 50.0)

    def test_ending_without_start_is_zero(self):
        calibration = MveCalibration(duration_s=1.0)

        self.assertEqual(calibration.end(), 0.0)
        self.assertFalse(calibration.calibrated)


class FeatureExtractorTest(unittest.TestCase):
    def setUp(self):
        self.extractor = FeatureExtractor(
            short_window_size=2,
            one_sec_window_size=2,
            envelope_window_size=2,
        )

    def test_short_rms_emitted_every_window(self):
        updates = _feed(self.extractor, [3.0, 4.0, 3.0])

        self.assertIsNone(updates[0].short_rms)
        self.assertAlmostEqual(updates[1].short_rms, 3.5355339, places=6)
        self.assertIsNone(updates[2].short_rms)
        self.assertAlmostEqual(self.extractor.last_short_rms, 3.5355339, places=6)

    def test_envelope_after_enough_one_second_values(self):
        updates = _feed(self.extractor, [3.0, 4.0, 0.0, 0.0])

        self.assertIsNone(updates[1].envelope)
        self.assertAlmostEqual(updates[3].envelope, 3.5355339, places=6)

    def test_placeholders_do_not_bias_rms(self):
        updates = _feed(self.extractor, [math.nan, 4.0])

        self.assertEqual(updates[1].short_rms, 4.0)
        self.assertTrue(math.isnan(updates[0].raw_value))

    def test_percent_mve_after_calibration(self):
        self.extractor.start_calibration(now=0.0)
        _feed(self.extractor, [3.0, 4.0])
        self.assertAlmostEqual(self.extractor.end_calibration(), 3.5355339, places=6)

        updates = _feed(self.extractor, [3.0, 4.0], start=0.2)

        self.assertIsNone(updates[0].percent_mve)
        self.assertAlmostEqual(updates[1].percent_mve, 100.0, places=6)

    def test_flush_emits_partial_windows(self):
        _feed(self.extractor, [3.0, 4.0, 5.0])

        flushed = self.extractor.flush(timestamp=0.2)

        self.assertEqual(flushed.short_rms, 5.0)
        self.assertEqual(flushed.one_sec_rms, 5.0)
        self.assertTrue(math.isnan(flushed.raw_value))
        self.assertIsNone(self.extractor.flush(timestamp=0.2))

    def test_flush_leaves_envelope_and_calibration_alone(self):
        self.extractor.start_calibration(now=0.0)
        _feed(self.extractor, [3.0, 4.0, 5.0])
        envelope_before = len(self.extractor.envelope_window)
        collected_before = list(self.extractor.calibration.samples)
        last_one_sec = self.extractor.last_one_sec_rms

        flushed = self.extractor.flush(timestamp=0.2)

        self.assertIsNone(flushed.envelope)
        self.assertIsNone(flushed.percent_mve)
        self.assertEqual(len(self.extractor.envelope_window), envelope_before)
        self.assertEqual(self.extractor.calibration.samples, collected_before)
        self.assertEqual(self.extractor.last_one_sec_rms, last_one_sec)
        self.assertAlmostEqual(self.extractor.end_calibration(), 3.5355339, places=6)

    def test_synthetic_samples_are_counted(self):
        _feed(self.extractor, [1.0, 2.0], synthetic=True)

        self.assertEqual(self.extractor.consumed, 2)
        self.assertEqual(self.extractor.synthetic_consumed, 2)

    def test_missing_channel_reads_as_nan(self):
        extractor = FeatureExtractor(short_window_size=1, channel=3)
        update = extractor.consume(Sample(timestamp=0.0, values=(1.0,)))

        self.assertTrue(math.isnan(update.raw_value))
        self.assertEqual(update.short_rms, 0.0)


if __name__ == "__main__":
    unittest.main()
