from datetime import datetime, timezone

import pytest
from prometheus_client import CollectorRegistry

from billing_notifier.errors import MetricsFetchError
from billing_notifier.models import TimeWindow

ENV_VARS = (
    "SLACK_WEBHOOK_URL",
    "SLACK_CHANNEL",
    "BILLING_SERVICE_NAMES",
    "BILLING_CONVERSION_RATE",
    "AWS_REGION",
    "CLOUDWATCH_ENDPOINT_URL",
    "BILLING_CURRENCY",
    "BILLING_CURRENCY_SUFFIX",
    "REPORT_TIMEZONE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "HTTP_TIMEOUT",
    "PUSHGATEWAY_URL",
)


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def clean_env(monkeypatch: "pytest.MonkeyPatch") -> "pytest.MonkeyPatch":
    """
    removes every variable Config.from_env reads.
    """
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture()
def window() -> "TimeWindow":
    return TimeWindow(
        start=datetime(2024, 3, 14, 0, 0, 0, tzinfo=timezone.utc),
        end=datetime(2024, 3, 14, 23, 59, 59, tzinfo=timezone.utc),
    )


class FakeSource:
    """
    A BillingSource returning pre-configured amounts. Labels listed in
    fail_on raise MetricsFetchError. Every call is recorded in order.
    """

    def __init__(
        self,
        amounts: "dict[str | None, float] | None" = None,
        fail_on: "set[str | None] | None" = None,
    ) -> "None":
        self._amounts = amounts or {}
        self._fail_on = fail_on or set()
        self.calls: "list[str | None]" = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_estimated_charges(
        self,
        window: "TimeWindow",
        service_name: "str | None" = None,
    ) -> "float":
        self.calls.append(service_name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if service_name in self._fail_on:
                raise MetricsFetchError(service_name or "Total", RuntimeError("boom"))
            return self._amounts.get(service_name, 0.0)
        finally:
            self.in_flight -= 1


@pytest.fixture()
def fake_source_cls() -> "type[FakeSource]":
    return FakeSource
