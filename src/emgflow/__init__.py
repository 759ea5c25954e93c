"""
emgflow: reconstruction and amplitude features for lossy EMG notification streams.

This package includes modules for:
- Decoding packed EMG notification payloads
- Reconciling bursty arrivals onto a fixed sampling grid and repairing gaps
- Multi-window RMS, envelope and %MVE features
- Recording spools with CSV-style export
"""

__version__ = "0.1.0"

submodules = [
    "analysis",
    "config",
    "core",
    "dataio",
    "sensors",
    "tools",
]

__all__ = submodules + ["__version__"]
