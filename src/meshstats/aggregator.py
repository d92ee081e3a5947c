from meshstats.models import (
    ABSENT,
    MaybeAmount,
    Member,
    Present,
    TimeWindow,
    UsagePeriod,
)

# decimal gigabyte
BYTES_PER_GB = 1_000_000_000


def bytes_to_gb(value: "float") -> "float":
    return value / BYTES_PER_GB


def _as_gb(amount: "MaybeAmount") -> "MaybeAmount":
    if isinstance(amount, Present):
        return Present(bytes_to_gb(amount.value))
    return ABSENT


def aggregate(
    up: "MaybeAmount",
    down: "MaybeAmount",
) -> "tuple[MaybeAmount, MaybeAmount, MaybeAmount]":
    """
    combines the two directional byte counts of a member into
    (up, down, total) in GB.

    A member counts as active as soon as either direction was
    reported, even when the reported value is zero. The total of
    an inactive member stays absent, and an absent direction is
    never turned into zero.
    """
    active = False
    total_bytes = 0.0

    if isinstance(down, Present):
        active = True
        total_bytes += down.value

    if isinstance(up, Present):
        active = True
        total_bytes += up.value

    total: "MaybeAmount" = Present(total_bytes) if active else ABSENT
    return _as_gb(up), _as_gb(down), _as_gb(total)


def build_period(
    member: "Member",
    window: "TimeWindow",
    up: "MaybeAmount",
    down: "MaybeAmount",
) -> "UsagePeriod":
    """
    builds the usage period for a member from its raw byte counts.
    Callers persist it only when `period.active` is true.
    """
    up_gb, down_gb, total_gb = aggregate(up, down)
    return UsagePeriod(
        name=member.name.strip(),
        start=window.start,
        end=window.end,
        duration=window.duration,
        up=up_gb,
        down=down_gb,
        total=total_gb,
    )
