"""Config module exports."""

from changeplane.config.loader import load_config
from changeplane.config.models import (
    ChangePlaneConfig,
    GitConfig,
    LoggingConfig,
    LogOutputConfig,
    TrackerConfig,
)

__all__ = [
    "load_config",
    "ChangePlaneConfig",
    "GitConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "TrackerConfig",
]
