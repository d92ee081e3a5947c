from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


@dataclass(frozen=True, slots=True)
class Present:
    """
    Present wraps a quantity that the log service actually
    reported, including an exact zero.
    """

    value: "float"


@dataclass(frozen=True, slots=True)
class Absent:
    """
    Absent means no log entries matched the query. It is
    never the same thing as zero.
    """


ABSENT = Absent()

# a byte (or GB) quantity that may not have been reported
MaybeAmount = Present | Absent


def to_optional(amount: "MaybeAmount") -> "float | None":
    """
    unwraps an amount into a plain value, or None when absent.
    """
    if isinstance(amount, Present):
        return amount.value
    return None


class Direction(Enum):
    # the value is the phrase the mesh exit writes into its log lines
    UP = "uploaded to exit"
    DOWN = "downloaded from exit"


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """
    TimeWindow is the absolute [start, end) range shared by
    every query of a single run.
    """

    start: "datetime"
    end: "datetime"
    duration: "timedelta"

    def __post_init__(self) -> "None":
        if self.duration <= timedelta(0):
            raise ValueError("window duration must be positive")
        if self.end - self.start != self.duration:
            raise ValueError("window end must equal start + duration")


@dataclass(frozen=True, slots=True)
class Member:
    """
    Member is one row of the mesh roster.
    """

    id: "str"
    name: "str"
    # wireguard public key, used to correlate log entries
    network_key: "str"
    upstreams: "tuple[str, ...]" = ()


@dataclass(frozen=True, slots=True)
class UsagePeriod:
    """
    UsagePeriod is the persisted record of one member's
    bandwidth over a window. Amounts are decimal GB.
    """

    name: "str"
    start: "datetime"
    end: "datetime"
    duration: "timedelta"
    up: "MaybeAmount"
    down: "MaybeAmount"
    total: "MaybeAmount"

    @property
    def active(self) -> "bool":
        return isinstance(self.total, Present)

    def to_document(self) -> "dict[str, object]":
        """
        serializes the period using the field names already
        present in the usage collection. Duration is stored
        as integer nanoseconds.
        """
        return {
            "name": self.name,
            "from": self.start,
            "to": self.end,
            "duration": self.duration // timedelta(microseconds=1) * 1000,
            "up": to_optional(self.up),
            "down": to_optional(self.down),
            "total": to_optional(self.total),
        }
