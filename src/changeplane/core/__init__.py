"""Core module exports."""

from changeplane.core.errors import (
    ChangePlaneError,
    ConfigError,
    ErrorCode,
)
from changeplane.core.logging import configure_logging, get_logger

__all__ = [
    # Errors
    "ChangePlaneError",
    "ConfigError",
    "ErrorCode",
    # Logging
    "configure_logging",
    "get_logger",
]
