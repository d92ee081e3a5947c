from typing import Protocol, Sequence

from meshstats.models import Direction, MaybeAmount, Member, TimeWindow, UsagePeriod


class MemberSource(Protocol):
    """
    MemberSource supplies the roster of mesh members for a run.
    Failures surface as RosterFetchError.
    """

    async def list_members(self) -> "Sequence[Member]": ...

    async def close(self) -> "None": ...


class UsageFetcher(Protocol):
    """
    UsageFetcher returns the bytes one member moved in one
    direction over the window, or Absent when the log service
    had no matching entries. Failures surface as UsageFetchError.
    """

    async def fetch_bytes(
        self,
        network_key: "str",
        window: "TimeWindow",
        direction: "Direction",
    ) -> "MaybeAmount": ...

    async def close(self) -> "None": ...


class UsageSink(Protocol):
    """
    UsageSink stores one usage period. Failures surface as
    PersistenceError.
    """

    async def insert(self, period: "UsagePeriod") -> "None": ...

    async def close(self) -> "None": ...
