import json
import time
from datetime import datetime, timedelta
from datetime import time as dtime
from typing import Sequence

import structlog

from billing_notifier.errors import MetricsFetchError
from billing_notifier.formatter import format_record
from billing_notifier.metrics import MetricsUpdater
from billing_notifier.models import (
    TOTAL_LABEL,
    BillingRecord,
    ChatMessage,
    ReportResult,
    TimeWindow,
)
from billing_notifier.source.base import BillingSource
from billing_notifier.webhook import SlackWebhook

logger = structlog.get_logger()

_DAY_START = dtime(0, 0, 0)
_DAY_END = dtime(23, 59, 59)


def compute_window(now: "datetime") -> "TimeWindow":
    """
    returns the calendar day before now, 00:00:00 to 23:59:59 inclusive,
    in now's time zone. A naive now is read as process local time.
    """
    if now.tzinfo is None:
        now = now.astimezone()

    day = now.date() - timedelta(days=1)
    return TimeWindow(
        start=datetime.combine(day, _DAY_START, tzinfo=now.tzinfo),
        end=datetime.combine(day, _DAY_END, tzinfo=now.tzinfo),
    )


class BillingReporter:
    """
    BillingReporter runs one report: it fetches the total and then each
    configured service strictly one after another, formats the amounts
    into a chat message and posts it. Any failure stops the run and is
    raised to the caller, nothing after the failing step is attempted.
    """

    def __init__(
        self,
        source: "BillingSource",
        webhook: "SlackWebhook | None",
        metrics: "MetricsUpdater",
        channel_name: "str",
        service_names: "Sequence[str]",
        conversion_rate: "float",
        currency_suffix: "str",
    ) -> "None":
        self._source = source
        # None means dry run: the message is logged and not posted
        self._webhook = webhook
        self._metrics = metrics
        self._channel = channel_name
        self._service_names: "tuple[str, ...]" = tuple(service_names)
        self._rate = conversion_rate
        self._suffix = currency_suffix

    async def run(self, now: "datetime | None" = None) -> "ReportResult":
        window = compute_window(now or datetime.now().astimezone())
        logger.info(
            "report_start",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            services=len(self._service_names),
        )

        record = BillingRecord()
        record.add(TOTAL_LABEL, await self.fetch_aggregate(window))
        for label, amount in await self.fetch_per_service(window, self._service_names):
            record.add(label, amount)

        message = self.format_record(record)
        status_code = await self.deliver(message)

        self._metrics.set_last_success()
        logger.info("report_done", fields=len(message.fields), status_code=status_code)
        return ReportResult(
            window=window,
            record=record,
            message=message,
            status_code=status_code,
        )

    async def fetch_aggregate(self, window: "TimeWindow") -> "float":
        return await self._fetch(window, None, stage="aggregate")

    async def fetch_per_service(
        self,
        window: "TimeWindow",
        service_names: "Sequence[str]",
    ) -> "list[tuple[str, float]]":
        """
        fetches each service in list order. A fetch only starts after the
        previous one returned, and the first failure ends the loop.
        """
        entries: "list[tuple[str, float]]" = []
        for service_name in service_names:
            amount = await self._fetch(window, service_name, stage="service")
            entries.append((service_name, amount))
        return entries

    def format_record(self, record: "BillingRecord") -> "ChatMessage":
        return format_record(record, self._channel, self._rate, self._suffix)

    async def deliver(self, message: "ChatMessage") -> "int | None":
        if self._webhook is None:
            logger.info(
                "dry_run_message",
                payload=json.dumps(message.to_payload(), ensure_ascii=False),
            )
            return None

        status_code = await self._webhook.deliver(message)
        logger.info("webhook_delivered", status_code=status_code)
        return status_code

    async def _fetch(
        self,
        window: "TimeWindow",
        service_name: "str | None",
        stage: "str",
    ) -> "float":
        label = service_name or TOTAL_LABEL
        started = time.monotonic()
        try:
            amount = await self._source.fetch_estimated_charges(window, service_name)
        except MetricsFetchError:
            self._metrics.inc_fetch_error(stage)
            logger.exception("metrics_fetch_error", label=label, stage=stage)
            raise
        finally:
            self._metrics.observe_fetch_duration(stage, time.monotonic() - started)

        self._metrics.set_estimated_charges(label, amount)
        logger.debug("metrics_fetched", label=label, amount=amount)
        return amount
