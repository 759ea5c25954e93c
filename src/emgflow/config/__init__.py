"""Configuration objects and helpers for emgflow.

This package knows how to load YAML descriptors that capture how a sensor
link should be reconciled and featurized:
- :mod:`runtime` holds the typed :class:`EmgFlowConfig` tuning knobs
- :mod:`sampling` describes the nominal sampling grid and its resolution
- :mod:`app_config` centralises where exports and logs are written
"""

from .app_config import AppPaths
from .runtime import EmgFlowConfig, config_from_mapping, load_config
from .sampling import SamplingConfig

__all__ = ["AppPaths", "EmgFlowConfig", "SamplingConfig", "config_from_mapping", "load_config"]
