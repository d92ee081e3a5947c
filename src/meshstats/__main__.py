import asyncio

import structlog
from dotenv import find_dotenv, load_dotenv

from meshstats.cli import parse_args
from meshstats.collector import Collector
from meshstats.config import Config
from meshstats.errors import MeshStatsError
from meshstats.logging import setup_logging
from meshstats.metrics import RunMetrics
from meshstats.models import TimeWindow
from meshstats.source.airtable import AirtableMemberSource
from meshstats.source.graylog import GraylogUsageFetcher
from meshstats.source.mongo import MongoUsageSink

logger = structlog.get_logger()


def build_collector(config: "Config", metrics: "RunMetrics") -> "Collector":
    source = AirtableMemberSource(
        api_key=config.airtable_api_key,
        base_id=config.airtable_base_id,
        table_name=config.airtable_table_name,
    )
    fetcher = GraylogUsageFetcher(
        base_url=config.graylog_url,
        username=config.graylog_user,
        password=config.graylog_pass,
    )
    sink = MongoUsageSink.from_url(
        config.mongo_url, config.mongo_database, config.mongo_collection
    )
    return Collector(
        source,
        fetcher,
        sink,
        metrics,
        error_policy=config.error_policy,
        concurrency=config.concurrency,
        dry_run=config.dry_run,
    )


async def _run(collector: "Collector", window: "TimeWindow") -> "None":
    try:
        await collector.run(window)
    finally:
        await collector.close()


def main() -> "None":
    # .env must be loaded before the config reads the environment
    dotenv_path = find_dotenv(usecwd=True)
    loaded = load_dotenv(dotenv_path) if dotenv_path else False

    config, window = parse_args()
    setup_logging(config.log_level, config.log_format)
    if not loaded:
        logger.debug("dotenv_not_found")

    metrics = RunMetrics()
    try:
        config.validate()
        logger.info("settings", **config.masked())
        logger.info(
            "window_computed",
            start=window.start.isoformat(),
            end=window.end.isoformat(),
        )
        asyncio.run(_run(build_collector(config, metrics), window))
    except MeshStatsError as exc:
        logger.error("run_failed", error=str(exc), error_type=type(exc).__name__)
        raise SystemExit(1) from exc
    finally:
        if config.metrics_push_enabled:
            _push_metrics(metrics, config.pushgateway_url)


def _push_metrics(metrics: "RunMetrics", gateway: "str") -> "None":
    try:
        metrics.push(gateway)
    except OSError as exc:
        # a missing pushgateway must not change the run's exit status
        logger.warning("metrics_push_failed", gateway=gateway, error=str(exc))
    else:
        logger.debug("metrics_pushed", gateway=gateway)


if __name__ == "__main__":
    main()
