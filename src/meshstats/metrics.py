from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

from meshstats.models import UsagePeriod, to_optional

PUSH_JOB_NAME = "stat_collector"


class RunMetrics:
    """
    records the outcome of a collection run. The collector is a
    one-shot job, so the registry is pushed to a Pushgateway at the
    end of the run instead of being scraped.
    """

    def __init__(self, registry: "CollectorRegistry | None" = None) -> "None":
        # own registry so default process collectors are not pushed
        self._registry: "CollectorRegistry" = registry or CollectorRegistry()
        self._members: "Counter" = Counter(
            "meshstats_members_processed_total",
            "Mesh members processed",
            registry=self._registry,
        )
        self._persisted: "Counter" = Counter(
            "meshstats_periods_persisted_total",
            "Usage periods written to the usage store",
            registry=self._registry,
        )
        self._inactive: "Counter" = Counter(
            "meshstats_members_inactive_total",
            "Members without any reported traffic in the window",
            registry=self._registry,
        )
        self._errors: "Counter" = Counter(
            "meshstats_errors_total",
            "Errors by stage",
            ["stage"],
            registry=self._registry,
        )
        self._traffic: "Counter" = Counter(
            "meshstats_traffic_gigabytes_total",
            "Reported traffic of active members in decimal GB",
            ["direction"],
            registry=self._registry,
        )
        self._run_duration: "Histogram" = Histogram(
            "meshstats_run_duration_seconds",
            "Duration of a collection run",
            registry=self._registry,
        )
        self._last_success: "Gauge" = Gauge(
            "meshstats_last_success_timestamp_seconds",
            "Unix timestamp of the last run that completed",
            registry=self._registry,
        )

    @property
    def registry(self) -> "CollectorRegistry":
        return self._registry

    def observe_period(self, period: "UsagePeriod") -> "None":
        """
        counts a member and, when it was active, its traffic.
        """
        self._members.inc()
        if not period.active:
            self._inactive.inc()
            return

        for direction, amount in (("up", period.up), ("down", period.down)):
            value = to_optional(amount)
            if value is not None:
                self._traffic.labels(direction=direction).inc(value)

    def inc_persisted(self) -> "None":
        self._persisted.inc()

    def inc_error(self, stage: "str") -> "None":
        self._errors.labels(stage=stage).inc()

    def observe_run_duration(self, seconds: "float") -> "None":
        self._run_duration.observe(seconds)

    def set_last_success(self, timestamp: "float") -> "None":
        self._last_success.set(timestamp)

    def push(self, gateway: "str") -> "None":
        push_to_gateway(gateway, job=PUSH_JOB_NAME, registry=self._registry)
