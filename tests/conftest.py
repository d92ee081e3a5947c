from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import CollectorRegistry

from meshstats.models import TimeWindow


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def window() -> "TimeWindow":
    """
    one day ending at 2024-01-02 00:00 UTC.
    """
    end = datetime(2024, 1, 2, tzinfo=timezone.utc)
    return TimeWindow(start=end - timedelta(hours=24), end=end, duration=timedelta(hours=24))
