"""Config module.

This module provides configuration management and desired-state loading.
"""

from fedfarm.config.desired_state import load_desired_state, parse_desired_state
from fedfarm.config.manager import load_config
from fedfarm.config.schema import CertificatesConfig, Config, LoggingConfig, ProviderConfig

__all__ = [
    "load_config",
    "load_desired_state",
    "parse_desired_state",
    "Config",
    "ProviderConfig",
    "CertificatesConfig",
    "LoggingConfig",
]
