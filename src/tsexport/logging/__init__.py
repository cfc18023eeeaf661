"""
tsexport Logging Module

This module provides logging for the tsexport CLI. Log records go to a
daily rotating file in a platform-specific directory, and reach stderr
only at DEBUG level or with a lowered console level. Nothing is ever
written to stdout, which is reserved for exported data.
"""

from .logger import (
    get_logger,
    setup_logging,
    LogLevel,
    log_application_event,
)
from .config import LogConfig, get_log_directory

__all__ = [
    "get_logger",
    "setup_logging",
    "log_application_event",
    "LogLevel",
    "LogConfig",
    "get_log_directory",
]
