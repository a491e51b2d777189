from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from billing_notifier.errors import MetricsFetchError
from billing_notifier.models import TimeWindow
from billing_notifier.source.cloudwatch import (
    BILLING_NAMESPACE,
    ESTIMATED_CHARGES_METRIC,
    CloudWatchBillingSource,
    last_average,
)


def _client() -> "object":
    return boto3.client(
        "cloudwatch",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _datapoint(day: "int", average: "float") -> "dict[str, object]":
    return {
        "Timestamp": datetime(2024, 3, day, tzinfo=timezone.utc),
        "Average": average,
        "Unit": "None",
    }


def _expected_params(
    window: "TimeWindow",
    service_name: "str | None" = None,
) -> "dict[str, object]":
    dimensions = [{"Name": "Currency", "Value": "USD"}]
    if service_name is not None:
        dimensions.append({"Name": "ServiceName", "Value": service_name})
    return {
        "Namespace": BILLING_NAMESPACE,
        "MetricName": ESTIMATED_CHARGES_METRIC,
        "Dimensions": dimensions,
        "StartTime": window.start,
        "EndTime": window.end,
        "Period": 86400,
        "Statistics": ["Average"],
    }


class TestLastAverage:
    def test_empty_is_zero(self) -> "None":
        assert last_average([]) == 0.0

    def test_takes_last_point(self) -> "None":
        points = [_datapoint(13, 1.5), _datapoint(14, 9.25), _datapoint(12, 4.0)]
        assert last_average(points) == 4.0


class TestCloudWatchBillingSource:
    @pytest.mark.asyncio
    async def test_total_query(self, window: "TimeWindow") -> "None":
        client = _client()
        source = CloudWatchBillingSource(client=client)
        with Stubber(client) as stubber:
            stubber.add_response(
                "get_metric_statistics",
                {"Label": ESTIMATED_CHARGES_METRIC, "Datapoints": [_datapoint(14, 12.3456)]},
                _expected_params(window),
            )
            amount = await source.fetch_estimated_charges(window)
            stubber.assert_no_pending_responses()

        assert amount == 12.3456

    @pytest.mark.asyncio
    async def test_service_query_adds_dimension(self, window: "TimeWindow") -> "None":
        client = _client()
        source = CloudWatchBillingSource(client=client)
        with Stubber(client) as stubber:
            stubber.add_response(
                "get_metric_statistics",
                {
                    "Label": ESTIMATED_CHARGES_METRIC,
                    "Datapoints": [_datapoint(14, 1.0), _datapoint(14, 2.5)],
                },
                _expected_params(window, "AmazonEC2"),
            )
            amount = await source.fetch_estimated_charges(window, "AmazonEC2")

        assert amount == 2.5

    @pytest.mark.asyncio
    async def test_no_datapoints_is_zero(self, window: "TimeWindow") -> "None":
        client = _client()
        source = CloudWatchBillingSource(client=client)
        with Stubber(client) as stubber:
            stubber.add_response(
                "get_metric_statistics",
                {"Label": ESTIMATED_CHARGES_METRIC, "Datapoints": []},
                _expected_params(window, "AmazonSNS"),
            )
            amount = await source.fetch_estimated_charges(window, "AmazonSNS")

        assert amount == 0.0

    @pytest.mark.asyncio
    async def test_api_error_becomes_fetch_error(self, window: "TimeWindow") -> "None":
        client = _client()
        source = CloudWatchBillingSource(client=client)
        with Stubber(client) as stubber:
            stubber.add_client_error(
                "get_metric_statistics",
                service_error_code="Throttling",
                service_message="Rate exceeded",
                http_status_code=400,
            )
            with pytest.raises(MetricsFetchError) as exc_info:
                await source.fetch_estimated_charges(window, "AmazonRDS")

        assert exc_info.value.label == "AmazonRDS"
        assert "Throttling" in str(exc_info.value)

    def test_custom_currency(self, window: "TimeWindow") -> "None":
        source = CloudWatchBillingSource(client=_client(), currency="JPY")
        params = source.build_params(window)
        assert params["Dimensions"] == [{"Name": "Currency", "Value": "JPY"}]
