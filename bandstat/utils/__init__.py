"""
Utility modules for configuration, logging, and error handling.
"""

from bandstat.utils.errors import (
    COMPUTATION_DEGRADED,
    AudioLoadError,
    BandStatError,
    ChartError,
    FileTooLargeError,
    InvalidConfigurationError,
    UnsupportedFormatError,
    UnsupportedInputError,
)
from bandstat.utils.logging import get_logger, setup_logging, JSONFormatter
from bandstat.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "COMPUTATION_DEGRADED",
    "AudioLoadError",
    "BandStatError",
    "ChartError",
    "FileTooLargeError",
    "InvalidConfigurationError",
    "UnsupportedFormatError",
    "UnsupportedInputError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
