import time

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

logger = structlog.get_logger()

PUSH_JOB_NAME = "billing_notifier"


class MetricsUpdater:
    """
    records what one report run observed. Each invocation gets its own
    registry since a warm function container reuses module state.
    """

    def __init__(self, registry: "CollectorRegistry | None" = None) -> "None":
        self.registry: "CollectorRegistry" = registry or CollectorRegistry()
        self._estimated_charges: "Gauge" = Gauge(
            "billing_notifier_estimated_charges_usd",
            "Estimated charges reported by the metrics API, before conversion",
            ["label"],
            registry=self.registry,
        )
        self._fetch_errors: "Counter" = Counter(
            "billing_notifier_fetch_errors_total",
            "Total number of failed metrics API calls by stage",
            ["stage"],
            registry=self.registry,
        )
        self._fetch_duration: "Histogram" = Histogram(
            "billing_notifier_fetch_duration_seconds",
            "Duration of metrics API calls",
            ["stage"],
            registry=self.registry,
        )
        self._last_success: "Gauge" = Gauge(
            "billing_notifier_last_success_timestamp_seconds",
            "Unix timestamp of the last delivered report",
            registry=self.registry,
        )

    def set_estimated_charges(self, label: "str", amount: "float") -> "None":
        self._estimated_charges.labels(label=label).set(amount)

    def observe_fetch_duration(self, stage: "str", duration_seconds: "float") -> "None":
        self._fetch_duration.labels(stage=stage).observe(duration_seconds)

    def inc_fetch_error(self, stage: "str") -> "None":
        self._fetch_errors.labels(stage=stage).inc()

    def set_last_success(self, timestamp: "float | None" = None) -> "None":
        self._last_success.set(time.time() if timestamp is None else timestamp)

    def push(self, gateway: "str") -> "bool":
        """
        pushes the registry to a Prometheus Pushgateway. A failed push is
        logged and reported as False, it never fails the run.
        """
        try:
            push_to_gateway(gateway, job=PUSH_JOB_NAME, registry=self.registry)
        except Exception:
            logger.exception("metrics_push_error", gateway=gateway)
            return False

        logger.debug("metrics_pushed", gateway=gateway)
        return True
