"""
Binary container writer.

The container is self-describing::

    magic "TSXB" | version (1 byte) | uint32 header length | JSON header
    frames...

Every frame is a 1-byte tag, a big-endian uint32 payload length and the
payload. ``B`` frames open a bucket (JSON ``{"start", "end"}``), ``R``
frames carry one JSON record and a single ``E`` frame with an empty
payload terminates the stream.
"""

import json
import struct
from datetime import timedelta
from typing import BinaryIO, Dict, Any

from tsexport.constants import BINARY_MAGIC, BINARY_VERSION
from tsexport.models import Record
from tsexport.utils.duration import to_nanoseconds
from .base import Writer

BUCKET_FRAME = b"B"
RECORD_FRAME = b"R"
END_FRAME = b"E"

_LENGTH = struct.Struct(">I")


def _encode(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")


class BinaryWriter(Writer):
    """Writes records into a tagged binary container on a byte stream"""

    def __init__(
        self,
        stream: BinaryIO,
        database: str,
        retention_policy: str,
        shard_duration: timedelta,
    ):
        super().__init__()
        self.stream = stream
        self.database = database
        self.retention_policy = retention_policy
        self.shard_duration = shard_duration
        self._header_written = False

    def begin_bucket(self, start: int, end: int) -> None:
        self._check_open()
        self._write_frame(BUCKET_FRAME, _encode({"start": start, "end": end}))

    def write(self, record: Record) -> None:
        self._check_open()
        self._write_frame(RECORD_FRAME, _encode(record.to_dict()))
        self.records_written += 1

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._write_frame(END_FRAME, b"")
        self.stream.flush()

    def _write_header(self) -> None:
        header = _encode(
            {
                "database": self.database,
                "retention_policy": self.retention_policy,
                "shard_duration_ns": to_nanoseconds(self.shard_duration),
            }
        )
        self._write(
            BINARY_MAGIC + bytes([BINARY_VERSION]) + _LENGTH.pack(len(header)) + header
        )
        self._header_written = True

    def _write_frame(self, tag: bytes, payload: bytes) -> None:
        if not self._header_written:
            self._write_header()
        self._write(tag + _LENGTH.pack(len(payload)) + payload)

    def _write(self, data: bytes) -> None:
        self.stream.write(data)
        self.bytes_written += len(data)
