"""
Custom formatters for tsexport logging.

This module provides the standard formatter for application logs and a
specialized one for export lifecycle events.
"""

import logging
from datetime import datetime


class TSExportFormatter(logging.Formatter):
    """
    Custom formatter for tsexport log entries.

    Provides structured formatting with optional timestamp, thread
    and process components.
    """

    def __init__(
        self,
        include_timestamps: bool = True,
        include_thread_info: bool = False,
        include_process_info: bool = False,
    ):
        self.include_timestamps = include_timestamps
        self.include_thread_info = include_thread_info
        self.include_process_info = include_process_info
        # Build format string
        fmt_parts = []
        if include_timestamps:
            fmt_parts.append("%(asctime)s")
        fmt_parts.extend(["%(levelname)s", "[%(name)s]", "%(message)s"])
        if include_thread_info:
            fmt_parts.insert(-1, "[Thread:%(thread)d]")
        if include_process_info:
            fmt_parts.insert(-1, "[PID:%(process)d]")
        fmt_string = " ".join(fmt_parts)
        super().__init__(fmt=fmt_string, datefmt="%Y-%m-%d %H:%M:%S")


class ExportEventFormatter(logging.Formatter):
    """
    Formatter for export lifecycle events.

    Renders the event name followed by its ``export_*`` details as
    ``key=value`` pairs on a single line.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        event = getattr(record, "export_event", record.getMessage())
        details = getattr(record, "export_details", None) or {}

        # Example: 2026-02-02 17:27:34 INFO [tsexport.export] export.started database=db0 format=line
        line = f"{timestamp} {record.levelname} [{record.name}] {event}"
        if details:
            pairs = " ".join(f"{key}={value}" for key, value in details.items())
            line = f"{line} {pairs}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class MultiplexFormatter(logging.Formatter):
    """
    Formatter that delegates to different formatters based on the log record.

    Uses ExportEventFormatter for export events and TSExportFormatter for
    everything else.
    """

    def __init__(
        self, default_formatter: logging.Formatter, event_formatter: logging.Formatter
    ):
        self.default_formatter = default_formatter
        self.event_formatter = event_formatter
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if hasattr(record, "export_event"):
            return self.event_formatter.format(record)
        return self.default_formatter.format(record)
