"""
Window calculation.

A run covers one absolute window [start, end). The end is either the
supplied calendar date at midnight UTC or the current time, and the
start is always end - duration.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Callable

from meshstats.errors import InvalidArgument
from meshstats.models import TimeWindow

# unit suffix -> seconds per unit
_UNITS: "dict[str, float]" = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# longer suffixes first so "ms" never matches as "m"
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")

_END_DATE_FORMAT = "%Y-%m-%d"

# periods store their duration as int64 nanoseconds
MAX_DURATION_SECONDS = (2**63 - 1) / 1e9


def utcnow() -> "datetime":
    return datetime.now(timezone.utc)


def parse_duration(value: "str") -> "timedelta":
    """
    parses a duration such as '168h', '1h30m' or '1.5h'. Every
    number needs a unit and the result must be positive.
    """
    text = value.strip()
    if not text:
        raise InvalidArgument("duration must not be empty")

    seconds = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise InvalidArgument(f"invalid duration {value!r}")
        number, unit = match.groups()
        seconds += float(number) * _UNITS[unit]
        pos = match.end()

    if seconds > MAX_DURATION_SECONDS:
        raise InvalidArgument(f"duration {value!r} is out of range")
    if seconds <= 0:
        raise InvalidArgument(f"duration must be positive, got {value!r}")

    total = timedelta(seconds=seconds)
    if total <= timedelta(0):
        raise InvalidArgument(
            f"duration {value!r} is shorter than the 1us resolution"
        )
    return total


def parse_end_date(value: "str") -> "datetime":
    """
    parses a YYYY-MM-DD date into midnight UTC of that day.
    """
    try:
        day = datetime.strptime(value.strip(), _END_DATE_FORMAT)
    except ValueError as exc:
        raise InvalidArgument(
            f"invalid end date {value!r}, expected YYYY-MM-DD"
        ) from exc
    return day.replace(tzinfo=timezone.utc)


def window_ending_at(end: "datetime", duration: "timedelta") -> "TimeWindow":
    try:
        start = end - duration
    except OverflowError as exc:
        raise InvalidArgument(
            f"window of {duration} before {end:%Y-%m-%d} is out of range"
        ) from exc
    return TimeWindow(start=start, end=end, duration=duration)


def compute_window(
    duration: "str",
    end_date: "str | None" = None,
    now: "Callable[[], datetime]" = utcnow,
) -> "TimeWindow":
    """
    derives the run window from the raw duration and optional
    end-date arguments. `now` is only consulted when no end date
    is given.
    """
    length = parse_duration(duration)
    end = parse_end_date(end_date) if end_date is not None else now()
    return window_ending_at(end, length)
