"""
Line protocol writer.

Each record becomes one line of text::

    measurement,tag=value field=1i,other="text" 1700000000000000000
"""

import math
from typing import TextIO

from tsexport.models import FieldValue, Record
from .base import Writer, WriterError


def _escape(value: str, chars: str) -> str:
    for ch in chars:
        value = value.replace(ch, "\\" + ch)
    return value


def escape_measurement(name: str) -> str:
    return _escape(name, "\\, ")


def escape_key(key: str) -> str:
    """Escape a tag key, tag value or field key"""
    return _escape(key, "\\,= ")


def format_field_value(value: FieldValue) -> str:
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise WriterError(f"unsupported float field value: {value}")
        return repr(value)
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    raise WriterError(f"unsupported field type: {type(value).__name__}")


def format_record(record: Record) -> str:
    """Render a record as a single line of line protocol (without newline)"""
    if not record.fields:
        raise WriterError(f"record for {record.series_key} has no fields")

    key = escape_measurement(record.measurement)
    if record.tags:
        key += "," + ",".join(
            f"{escape_key(k)}={escape_key(v)}" for k, v in record.tags
        )
    fields = ",".join(
        f"{escape_key(name)}={format_field_value(value)}"
        for name, value in sorted(record.fields.items())
    )
    return f"{key} {fields} {record.time}"


class LineWriter(Writer):
    """Writes records as line protocol to a text stream"""

    def __init__(self, stream: TextIO):
        super().__init__()
        self.stream = stream

    def write(self, record: Record) -> None:
        self._check_open()
        line = format_record(record) + "\n"
        self.stream.write(line)
        self.records_written += 1
        self.bytes_written += len(line.encode("utf-8"))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.stream.flush()
