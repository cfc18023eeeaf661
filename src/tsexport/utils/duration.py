"""
Duration parsing and formatting.

Durations follow the familiar ``1h30m`` / ``168h`` / ``250ms`` syntax:
a sequence of decimal numbers, each with an optional fraction and a
unit suffix.
"""

import re
from datetime import timedelta

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

# Durations are bounded to a signed 64-bit count of nanoseconds
MAX_DURATION_NS = (1 << 63) - 1

UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,
    "μs": MICROSECOND,
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration_ns(value: str) -> int:
    """
    Parse a duration string into integer nanoseconds.

    Args:
        value: Duration string such as ``168h`` or ``-1h30m``

    Returns:
        int: Duration in nanoseconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ValueError("invalid duration ''")

    sign = 1
    body = text
    if body[0] in "+-":
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    if body == "0":
        return 0
    if not body:
        raise ValueError(f"invalid duration '{value}'")

    total = 0
    pos = 0
    while pos < len(body):
        match = _COMPONENT.match(body, pos)
        if not match:
            if re.match(r"(\d+(?:\.\d*)?|\.\d+)", body[pos:]):
                raise ValueError(f"missing unit in duration '{value}'")
            raise ValueError(f"invalid duration '{value}'")
        number, unit = match.groups()
        whole, _, frac = number.partition(".")
        scale = UNITS[unit]
        total += int(whole or "0") * scale
        if frac:
            total += int(frac) * scale // (10 ** len(frac))
        pos = match.end()
        if total > MAX_DURATION_NS + (sign < 0):
            raise ValueError(f"duration out of range '{value}'")

    return sign * total


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    timedelta stops at microseconds, so finer durations are rejected
    rather than truncated.
    """
    ns = parse_duration_ns(value)
    if ns % MICROSECOND:
        raise ValueError(
            f"duration '{value}' is not a whole number of microseconds"
        )
    return timedelta(microseconds=ns // MICROSECOND)


def to_nanoseconds(duration: timedelta) -> int:
    """Convert a timedelta to integer nanoseconds without float rounding"""
    return (
        (duration.days * 86400 + duration.seconds) * SECOND
        + duration.microseconds * MICROSECOND
    )


def format_duration(duration: timedelta) -> str:
    """Format a timedelta in the same syntax parse_duration accepts"""
    ns = to_nanoseconds(duration)
    if ns == 0:
        return "0s"

    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    parts = []
    for unit, scale in (("h", HOUR), ("m", MINUTE), ("s", SECOND)):
        if ns >= scale:
            parts.append(f"{ns // scale}{unit}")
            ns %= scale
    if ns:
        if ns % MILLISECOND == 0:
            parts.append(f"{ns // MILLISECOND}ms")
        elif ns % MICROSECOND == 0:
            parts.append(f"{ns // MICROSECOND}us")
        else:
            parts.append(f"{ns}ns")
    return sign + "".join(parts)
