import asyncio
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from billing_notifier.errors import MetricsFetchError
from billing_notifier.models import TOTAL_LABEL, TimeWindow

logger = structlog.get_logger()

BILLING_NAMESPACE = "AWS/Billing"
ESTIMATED_CHARGES_METRIC = "EstimatedCharges"
# one datapoint per day
BILLING_PERIOD_SECONDS = 86400
BILLING_STATISTIC = "Average"


class CloudWatchBillingSource:
    """
    CloudWatchBillingSource implements the BillingSource protocol on top
    of CloudWatch's EstimatedCharges metric. Billing metrics are only
    published in us-east-1, which is why the region is configurable
    rather than taken from the function's own region.
    """

    def __init__(
        self,
        region: "str" = "us-east-1",
        endpoint_url: "str" = "",
        currency: "str" = "USD",
        client: "Any" = None,
    ) -> "None":
        self._currency = currency
        if client is None:
            client = boto3.client(
                "cloudwatch",
                region_name=region,
                endpoint_url=endpoint_url or None,
            )
        self._client = client

    def build_params(
        self,
        window: "TimeWindow",
        service_name: "str | None" = None,
    ) -> "dict[str, Any]":
        dimensions = [{"Name": "Currency", "Value": self._currency}]
        if service_name is not None:
            dimensions.append({"Name": "ServiceName", "Value": service_name})

        return {
            "Namespace": BILLING_NAMESPACE,
            "MetricName": ESTIMATED_CHARGES_METRIC,
            "Dimensions": dimensions,
            "StartTime": window.start,
            "EndTime": window.end,
            "Period": BILLING_PERIOD_SECONDS,
            "Statistics": [BILLING_STATISTIC],
        }

    async def fetch_estimated_charges(
        self,
        window: "TimeWindow",
        service_name: "str | None" = None,
    ) -> "float":
        """
        fetches the estimated charges for the window. boto3 blocks, so
        the call runs in a worker thread and the caller awaits it.
        """
        label = service_name or TOTAL_LABEL
        params = self.build_params(window, service_name)
        logger.debug("cloudwatch_get_metric_statistics", label=label)

        try:
            resp = await asyncio.to_thread(self._client.get_metric_statistics, **params)
        except (BotoCoreError, ClientError) as e:
            raise MetricsFetchError(label, e) from e

        return last_average(resp.get("Datapoints", []))


def last_average(datapoints: "list[dict[str, Any]]") -> "float":
    """
    returns the Average of the last datapoint, or 0 when the window has
    no data. Datapoints are taken in the order the API returned them.
    """
    if not datapoints:
        return 0.0
    return float(datapoints[-1][BILLING_STATISTIC])
