import asyncio
import json
from datetime import date, datetime
from datetime import time as dtime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from billing_notifier.config import Config
from billing_notifier.errors import ConfigError, DeliveryFailed, MetricsFetchError
from billing_notifier.logging import setup_logging
from billing_notifier.metrics import MetricsUpdater
from billing_notifier.models import ReportResult
from billing_notifier.reporter import BillingReporter
from billing_notifier.source.base import BillingSource
from billing_notifier.source.cloudwatch import CloudWatchBillingSource
from billing_notifier.webhook import SlackWebhook

logger = structlog.get_logger()


def reference_now(config: "Config", on: "date | None" = None) -> "datetime":
    """
    returns the current time in the reporting time zone, or noon of the
    given date when reporting for a fixed day.
    """
    if config.timezone:
        try:
            tz = ZoneInfo(config.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(f"unknown time zone {config.timezone!r}") from None
    else:
        tz = datetime.now().astimezone().tzinfo

    if on is not None:
        return datetime.combine(on, dtime(12, 0), tzinfo=tz)
    return datetime.now(tz)


async def execute(
    config: "Config",
    now: "datetime | None" = None,
    source: "BillingSource | None" = None,
    metrics: "MetricsUpdater | None" = None,
) -> "ReportResult":
    """
    wires one reporter from config and runs it. Metrics are pushed
    whether the run succeeded or not.
    """
    metrics = metrics or MetricsUpdater()
    if source is None:
        source = CloudWatchBillingSource(
            region=config.region,
            endpoint_url=config.endpoint_url,
            currency=config.currency,
        )
    webhook = (
        None
        if config.dry_run
        else SlackWebhook(config.webhook_url, timeout=config.http_timeout)
    )
    reporter = BillingReporter(
        source=source,
        webhook=webhook,
        metrics=metrics,
        channel_name=config.channel_name,
        service_names=config.service_names,
        conversion_rate=config.conversion_rate,
        currency_suffix=config.currency_suffix,
    )

    try:
        return await reporter.run(now)
    finally:
        if webhook is not None:
            await webhook.close()
        if config.pushgateway_enabled:
            metrics.push(config.pushgateway_url)


def _response(status_code: "int", body: "dict[str, Any]") -> "dict[str, Any]":
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def lambda_handler(event: "Any", context: "Any") -> "dict[str, Any]":
    """
    function entry point. The event is ignored; the returned dict is the
    completion signal, with a non-200 statusCode for every failure.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=getattr(context, "aws_request_id", None),
    )

    try:
        config = Config.from_env()
        setup_logging(config.log_level, config.log_format)
        config.validate()
        result = asyncio.run(execute(config, reference_now(config)))
    except ConfigError as e:
        logger.error("config_error", error=str(e))
        return _response(500, {"error": "config", "message": str(e)})
    except MetricsFetchError as e:
        return _response(
            500, {"error": "metrics_fetch", "label": e.label, "message": str(e)}
        )
    except DeliveryFailed as e:
        logger.error("delivery_failed", status_code=e.status_code, reason=e.reason)
        return _response(
            502,
            {"error": "delivery", "status_code": e.status_code, "message": str(e)},
        )

    return _response(
        200,
        {
            "date": result.window.start.date().isoformat(),
            "fields": len(result.message.fields),
            "status_code": result.status_code,
        },
    )
