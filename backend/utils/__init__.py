"""
Hotload Utilities Package.

Configuration and logging shared across all modules.
Requires Python 3.11+.
"""

from utils.config import HotloadSettings, LoggingSettings, Settings, get_settings
from utils.logger import configure_logging, get_logger, logger, LoggerMixin

__all__ = [
    "HotloadSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "logger",
    "LoggerMixin",
]
