"""
Logging configuration for the tsexport CLI.

This module handles cross-platform log directory detection,
log file configuration, and logging setup parameters.
"""

import os
import platform
from pathlib import Path
from enum import Enum
from typing import Optional
from dataclasses import dataclass
from tsexport.constants import LOG_FILE_NAME, LOG_RETENTION_DAYS


class LogLevel(Enum):
    """Log levels for tsexport logging"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class LogConfig:
    """Configuration class for tsexport logging"""

    # Log file settings
    log_filename: str = f"{LOG_FILE_NAME}.log"
    log_retention_days: int = LOG_RETENTION_DAYS

    # Log levels
    default_level: LogLevel = LogLevel.INFO
    console_level: LogLevel = LogLevel.ERROR

    # Log format settings
    include_timestamps: bool = True
    include_thread_info: bool = False
    include_process_info: bool = False

    # Export event settings
    log_export_events: bool = True


def get_log_directory() -> Path:
    """
    Get the appropriate log directory for the current operating system.

    Returns:
        Path: Platform-specific log directory
    """
    system = platform.system().lower()

    if system == "windows":
        # Windows: %APPDATA%/tsexport/logs/
        base_dir = Path(os.environ.get("APPDATA", ""))
        if not base_dir.exists():
            base_dir = Path.home()
        log_dir = base_dir / LOG_FILE_NAME / "logs"

    elif system == "darwin":
        # macOS: ~/Library/Logs/tsexport/
        log_dir = Path.home() / "Library" / "Logs" / LOG_FILE_NAME

    else:
        # Linux and other Unix-like: ~/.local/share/tsexport/logs/
        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if xdg_data_home:
            base_dir = Path(xdg_data_home)
        else:
            base_dir = Path.home() / ".local" / "share"
        log_dir = base_dir / LOG_FILE_NAME / "logs"

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
    except OSError:
        fallback_dir = Path.cwd() / "logs"
        fallback_dir.mkdir(exist_ok=True)
        return fallback_dir


def get_log_file_path(config: Optional[LogConfig] = None) -> Path:
    """
    Get the full path to the log file.

    Args:
        config: LogConfig instance, uses default if None

    Returns:
        Path: Full path to the log file
    """
    if config is None:
        config = LogConfig()

    log_dir = get_log_directory()
    return log_dir / config.log_filename
