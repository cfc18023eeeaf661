"""
Export command module.

This module provides the export command: flag resolution, the export
session, profiling and the orchestration that ties them together.
"""

from .command import ExportCommand
from .config import (
    ConfigError,
    ExportConfig,
    FlagSyntaxError,
    InvalidFormat,
    MissingRequiredField,
    resolve_config,
)
from .exporter import Exporter, ExporterConfig, ExportError

__all__ = [
    "ExportCommand",
    "ConfigError",
    "ExportConfig",
    "FlagSyntaxError",
    "InvalidFormat",
    "MissingRequiredField",
    "resolve_config",
    "Exporter",
    "ExporterConfig",
    "ExportError",
]
