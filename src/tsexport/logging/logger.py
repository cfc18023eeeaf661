"""
Main logging module for the tsexport CLI.

This module provides the primary logging interface, logger setup with
daily rotation, and structured export event logging.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional, Dict, Any

from tsexport.constants import LOG_LEVEL_ENV_VAR
from .config import LogConfig, LogLevel, get_log_file_path
from .formatters import TSExportFormatter, ExportEventFormatter, MultiplexFormatter
from .utils import cleanup_old_logs


# Global logger registry
_loggers: Dict[str, logging.Logger] = {}
_logging_configured = False
_log_config: Optional[LogConfig] = None


def _level_from_environment() -> Optional[LogLevel]:
    """Return the log level requested through the environment, if valid"""
    requested = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if requested in [lev.value for lev in LogLevel]:
        return LogLevel(requested)
    return None


def setup_logging(config: Optional[LogConfig] = None, force_reconfigure: bool = False) -> None:
    """
    Set up the tsexport logging system.

    Args:
        config: LogConfig instance, uses default if None
        force_reconfigure: Force reconfiguration even if already set up
    """
    global _logging_configured, _log_config

    if _logging_configured and not force_reconfigure:
        return

    if config is None:
        config = LogConfig()
        env_level = _level_from_environment()
        if env_level:
            config.default_level = env_level

    _log_config = config

    log_file_path = get_log_file_path(config)

    root_logger = logging.getLogger("tsexport")
    root_logger.setLevel(getattr(logging, config.default_level.value))
    root_logger.handlers.clear()
    # Never leak into the root logger; stdout may be carrying export data
    root_logger.propagate = False

    # Daily rotating file handler
    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_file_path,
        when="midnight",
        interval=1,
        backupCount=config.log_retention_days,
        encoding="utf-8",
        utc=False,
    )
    file_handler.setLevel(getattr(logging, config.default_level.value))
    file_handler.suffix = "%Y-%m-%d"

    file_formatter = TSExportFormatter(
        include_timestamps=config.include_timestamps,
        include_thread_info=config.include_thread_info,
        include_process_info=config.include_process_info,
    )
    if config.log_export_events:
        file_handler.setFormatter(
            MultiplexFormatter(file_formatter, ExportEventFormatter())
        )
    else:
        file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    # Console handler only when asked for; the CLI prints its own one-line errors
    if config.console_level != LogLevel.ERROR or config.default_level == LogLevel.DEBUG:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, config.console_level.value))
        console_handler.setFormatter(TSExportFormatter(include_timestamps=False))
        root_logger.addHandler(console_handler)

    try:
        cleanup_old_logs(log_file_path.parent, config.log_retention_days)
    except OSError:
        pass

    _logging_configured = True

    setup_logger = get_logger("tsexport.setup")
    setup_logger.info(f"Logging initialized - File: {log_file_path}, "
                      f"Level: {config.default_level.value}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified name.

    Args:
        name: Logger name (e.g., 'tsexport.commands.export')

    Returns:
        logging.Logger: Logger instance
    """
    if not _logging_configured:
        setup_logging()

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return _loggers[name]


def log_application_event(
    event: str,
    level: str = "info",
    details: Optional[Dict[str, Any]] = None,
    logger_name: str = "tsexport.export",
) -> None:
    """
    Log an export lifecycle event at the requested level.

    Args:
        event: Event name (e.g. 'export.started')
        level: Log level (debug, info, warning, error)
        details: Additional event details
        logger_name: Logger name to use
    """
    logger = get_logger(logger_name)
    extra = {"export_event": event, "export_details": dict(details or {})}

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(f"Export: {event}", extra=extra)
