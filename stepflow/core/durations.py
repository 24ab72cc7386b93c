#!/usr/bin/env python3
"""
Duration parsing.

Every delay in stepflow is a float number of seconds. Call sites may pass
a friendlier "duration input" instead:

    to_seconds(2)               # 2.0
    to_seconds(timedelta(milliseconds=5)) # 0.005
    to_seconds("500 millis")    # 0.5
    to_seconds("2 minutes")     # 120.0
"""

import re
from datetime import timedelta
from typing import Union

DurationInput = Union[int, float, timedelta, str]

_UNITS = {
    "nanos": 1e-9, "nano": 1e-9, "ns": 1e-9,
    "micros": 1e-6, "micro": 1e-6, "us": 1e-6,
    "millis": 1e-3, "milli": 1e-3, "ms": 1e-3,
    "seconds": 1.0, "second": 1.0, "secs": 1.0, "sec": 1.0, "s": 1.0,
    "minutes": 60.0, "minute": 60.0, "mins": 60.0, "min": 60.0, "m": 60.0,
    "hours": 3600.0, "hour": 3600.0, "h": 3600.0,
    "days": 86400.0, "day": 86400.0, "d": 86400.0,
    "weeks": 604800.0, "week": 604800.0, "w": 604800.0,
}

_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)\s*$")


def to_seconds(value: DurationInput) -> float:
    """
    Convert a duration input to seconds.

    Raises:
        ValueError: unparseable string, unknown unit or negative duration
        TypeError: unsupported type
    """
    if isinstance(value, bool):
        raise TypeError(f"Not a duration: {value!r}")

    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = _PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        factor = _UNITS.get(unit.lower())
        if factor is None:
            raise ValueError(f"Unknown duration unit {unit!r} in {value!r}")
        seconds = float(amount) * factor
    else:
        raise TypeError(f"Not a duration: {value!r}")

    if seconds < 0:
        raise ValueError(f"Duration must not be negative: {value!r}")
    return seconds


def is_duration(value) -> bool:
    """Check whether value would be accepted by to_seconds."""
    try:
        to_seconds(value)
    except (TypeError, ValueError):
        return False
    return True
