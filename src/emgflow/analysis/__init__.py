"""Signal quality and amplitude feature helpers."""

from .acquisition import AcquisitionMonitor, QualityReport, quality_band
from .calibration import MveCalibration
from .features import BlockRmsWindow, EnvelopeWindow, FeatureExtractor, calculate_rms

__all__ = [
    "AcquisitionMonitor",
    "BlockRmsWindow",
    "EnvelopeWindow",
    "FeatureExtractor",
    "MveCalibration",
    "QualityReport",
    "calculate_rms",
    "quality_band",
]
