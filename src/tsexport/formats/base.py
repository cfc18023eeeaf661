"""
Writer interface shared by the output formats.
"""

from abc import ABC, abstractmethod

from tsexport.models import Record


class WriterError(Exception):
    """Raised when a writer cannot accept records or flush its output"""


class Writer(ABC):
    """Write-once, close-once destination for exported records"""

    def __init__(self):
        self.records_written = 0
        self.bytes_written = 0
        self.closed = False

    def begin_bucket(self, start: int, end: int) -> None:
        """Mark the start of a target shard group covering [start, end)"""

    @abstractmethod
    def write(self, record: Record) -> None:
        """Encode and write a single record"""

    @abstractmethod
    def close(self) -> None:
        """Flush buffered output. The underlying stream stays open."""

    def _check_open(self) -> None:
        if self.closed:
            raise WriterError(f"{self.__class__.__name__} is closed")
