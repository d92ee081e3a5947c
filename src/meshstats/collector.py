import asyncio
import time
from dataclasses import dataclass
from typing import Any, Coroutine, TypeVar

import structlog

from meshstats.aggregator import build_period
from meshstats.config import ErrorPolicy
from meshstats.errors import PersistenceError, RosterFetchError, UsageFetchError
from meshstats.metrics import RunMetrics
from meshstats.models import (
    ABSENT,
    Direction,
    MaybeAmount,
    Member,
    TimeWindow,
    UsagePeriod,
    to_optional,
)
from meshstats.source.base import MemberSource, UsageFetcher, UsageSink

logger = structlog.get_logger()

T = TypeVar("T")


async def _gather_or_cancel(*coros: "Coroutine[Any, Any, T]") -> "list[T]":
    """
    awaits every coroutine as a task. When one fails the others are
    cancelled and awaited before the error propagates, so no task
    outlives the call.
    """
    tasks = [asyncio.create_task(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class RunSummary:
    members: "int" = 0
    persisted: "int" = 0
    inactive: "int" = 0
    # members without a network key are never queried
    skipped: "int" = 0
    # queries degraded to absent under the continue policy
    degraded: "int" = 0
    # inserts that failed under the continue policy
    failed: "int" = 0


class Collector:
    """
    Collector runs one collection pass: it loads the roster, then
    for every member fetches both traffic directions, aggregates
    them into a usage period and persists the period when the
    member was active.

    With ErrorPolicy.ABORT any failed query or insert stops the
    run. With ErrorPolicy.CONTINUE a failed query counts as absent
    and a failed insert only loses that member's period.
    """

    def __init__(
        self,
        source: "MemberSource",
        fetcher: "UsageFetcher",
        sink: "UsageSink",
        metrics: "RunMetrics",
        error_policy: "ErrorPolicy" = ErrorPolicy.ABORT,
        concurrency: "int" = 1,
        dry_run: "bool" = False,
    ) -> "None":
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._source = source
        self._fetcher = fetcher
        self._sink = sink
        self._metrics = metrics
        self._policy = error_policy
        self._concurrency = concurrency
        self._dry_run = dry_run

    async def close(self) -> "None":
        """
        closes every collaborator, even when one of them fails to close.
        """
        results = await asyncio.gather(
            self._source.close(),
            self._fetcher.close(),
            self._sink.close(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning("close_failed", error=str(result))

    async def run(self, window: "TimeWindow") -> "RunSummary":
        run_start = time.monotonic()
        logger.info(
            "run_start",
            start=window.start.isoformat(),
            end=window.end.isoformat(),
            duration=str(window.duration),
            policy=self._policy.value,
            concurrency=self._concurrency,
            dry_run=self._dry_run,
        )

        try:
            members = await self._source.list_members()
        except RosterFetchError:
            self._metrics.inc_error("roster")
            raise
        logger.info("roster_loaded", member_count=len(members))

        summary = RunSummary()
        if self._concurrency == 1:
            for member in members:
                await self._process_member(member, window, summary)
        else:
            await self._process_concurrently(members, window, summary)

        self._metrics.observe_run_duration(time.monotonic() - run_start)
        self._metrics.set_last_success(time.time())
        logger.info(
            "run_complete",
            members=summary.members,
            persisted=summary.persisted,
            inactive=summary.inactive,
            skipped=summary.skipped,
            degraded=summary.degraded,
            failed=summary.failed,
        )
        return summary

    async def _process_concurrently(
        self,
        members: "list[Member]",
        window: "TimeWindow",
        summary: "RunSummary",
    ) -> "None":
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _bounded(member: "Member") -> "None":
            async with semaphore:
                await self._process_member(member, window, summary)

        # under the abort policy the first error ends the run,
        # so nothing else may be written after it
        await _gather_or_cancel(*(_bounded(m) for m in members))

    async def _process_member(
        self,
        member: "Member",
        window: "TimeWindow",
        summary: "RunSummary",
    ) -> "None":
        summary.members += 1
        log = logger.bind(member_id=member.id, name=member.name.strip())

        if not member.network_key:
            log.warning("member_without_network_key")
            summary.skipped += 1
            return

        # the two directions are independent queries
        up, down = await _gather_or_cancel(
            self._fetch(member, window, Direction.UP, summary),
            self._fetch(member, window, Direction.DOWN, summary),
        )

        period = build_period(member, window, up, down)
        self._metrics.observe_period(period)

        if not period.active:
            log.debug("member_inactive")
            summary.inactive += 1
            return

        log.info(
            "usage_period",
            up=to_optional(period.up),
            down=to_optional(period.down),
            total=to_optional(period.total),
        )
        if self._dry_run:
            return

        await self._persist(period, summary)

    async def _fetch(
        self,
        member: "Member",
        window: "TimeWindow",
        direction: "Direction",
        summary: "RunSummary",
    ) -> "MaybeAmount":
        try:
            return await self._fetcher.fetch_bytes(
                member.network_key, window, direction
            )
        except UsageFetchError as exc:
            self._metrics.inc_error("usage")
            if self._policy is ErrorPolicy.ABORT:
                raise
            logger.warning(
                "usage_fetch_degraded",
                member_id=member.id,
                direction=direction.name.lower(),
                error=str(exc),
            )
            summary.degraded += 1
            return ABSENT

    async def _persist(self, period: "UsagePeriod", summary: "RunSummary") -> "None":
        try:
            await self._sink.insert(period)
        except PersistenceError as exc:
            self._metrics.inc_error("persist")
            if self._policy is ErrorPolicy.ABORT:
                raise
            logger.error("persist_failed", name=period.name, error=str(exc))
            summary.failed += 1
            return

        self._metrics.inc_persisted()
        summary.persisted += 1
        logger.debug("usage_period_persisted", name=period.name)
