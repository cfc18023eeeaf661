"""
Output formats for exported records.

The set of formats is fixed: ``line`` writes line protocol text and
``binary`` writes a tagged binary container.
"""

import sys
from typing import BinaryIO, Optional, TextIO, Union

from .base import Writer, WriterError
from .line import LineWriter
from .binary import BinaryWriter


def binary_stream(stream: Union[TextIO, BinaryIO]) -> BinaryIO:
    """Return the byte stream underlying a text stream such as sys.stdout"""
    return getattr(stream, "buffer", stream)


def select_writer(config, stream: Optional[TextIO] = None) -> Writer:
    """
    Build the writer for ``config.format``.

    Args:
        config: Resolved export configuration
        stream: Output stream, defaults to standard output

    Returns:
        Writer: LineWriter or BinaryWriter bound to the stream
    """
    if stream is None:
        stream = sys.stdout

    if config.format == "line":
        return LineWriter(stream)
    if config.format == "binary":
        return BinaryWriter(
            binary_stream(stream),
            config.database,
            config.retention_policy,
            config.shard_duration,
        )
    raise ValueError(f"invalid format '{config.format}'")


__all__ = [
    "Writer",
    "WriterError",
    "LineWriter",
    "BinaryWriter",
    "binary_stream",
    "select_writer",
]
