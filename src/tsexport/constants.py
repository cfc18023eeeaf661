"""
Global constants for the tsexport CLI.
"""

from datetime import timedelta

# Export defaults
DEFAULT_FORMAT = "line"
SUPPORTED_FORMATS = ("line", "binary")
DEFAULT_SHARD_DURATION = timedelta(days=7)

# Store defaults
DATA_DIR_ENV_VAR = "TSEXPORT_DATA_DIR"
DEFAULT_DATA_DIR = "~/.tsexport/data"
META_FILE_NAME = "meta.json"
SHARD_FILE_SUFFIX = ".jsonl"

# Profiling
MEM_PROFILE_FRAMES = 25

# Binary container
BINARY_MAGIC = b"TSXB"
BINARY_VERSION = 1

# Logging constants
LOG_FILE_NAME = "tsexport"
LOG_RETENTION_DAYS = 7
LOG_LEVEL_ENV_VAR = "TSEXPORT_LOG_LEVEL"
