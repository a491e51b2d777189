import os
from dataclasses import dataclass

from billing_notifier.errors import ConfigError
from billing_notifier.models import TOTAL_LABEL

DEFAULT_SERVICE_NAMES: "tuple[str, ...]" = (
    "AmazonEC2",
    "AmazonRDS",
    "AmazonRoute53",
    "AmazonS3",
    "AmazonSNS",
    "AWSDataTransfer",
    "AWSLambda",
    "AWSQueueService",
)


def _parse_service_names(raw: "str") -> "tuple[str, ...]":
    """
    splits a comma-separated list, dropping blanks while keeping order.
    """
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def _parse_float(name: "str", raw: "str") -> "float":
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


@dataclass
class Config:
    webhook_url: "str" = ""
    channel_name: "str" = "robots"
    service_names: "tuple[str, ...]" = DEFAULT_SERVICE_NAMES
    # multiplier applied to the USD amount before display
    conversion_rate: "float" = 110.0
    region: "str" = "us-east-1"
    # empty means the regional default endpoint
    endpoint_url: "str" = ""
    currency: "str" = "USD"
    currency_suffix: "str" = "円"
    # IANA zone name for the reporting calendar, empty means process local
    timezone: "str" = ""
    log_level: "str" = "info"
    # "console" for local runs, "json" for the function runtime
    log_format: "str" = "console"
    http_timeout: "float" = 10.0
    pushgateway_url: "str" = ""
    dry_run: "bool" = False

    @classmethod
    def from_env(cls) -> "Config":
        defaults = cls()
        services = os.environ.get("BILLING_SERVICE_NAMES")
        return cls(
            webhook_url=os.environ.get("SLACK_WEBHOOK_URL", ""),
            channel_name=os.environ.get("SLACK_CHANNEL", defaults.channel_name),
            service_names=(
                _parse_service_names(services)
                if services is not None
                else defaults.service_names
            ),
            conversion_rate=_parse_float(
                "BILLING_CONVERSION_RATE",
                os.environ.get("BILLING_CONVERSION_RATE", str(defaults.conversion_rate)),
            ),
            region=os.environ.get("AWS_REGION", defaults.region),
            endpoint_url=os.environ.get("CLOUDWATCH_ENDPOINT_URL", ""),
            currency=os.environ.get("BILLING_CURRENCY", defaults.currency),
            currency_suffix=os.environ.get(
                "BILLING_CURRENCY_SUFFIX", defaults.currency_suffix
            ),
            timezone=os.environ.get("REPORT_TIMEZONE", ""),
            log_level=os.environ.get("LOG_LEVEL", defaults.log_level).lower(),
            log_format=os.environ.get("LOG_FORMAT", defaults.log_format).lower(),
            http_timeout=_parse_float(
                "HTTP_TIMEOUT",
                os.environ.get("HTTP_TIMEOUT", str(defaults.http_timeout)),
            ),
            pushgateway_url=os.environ.get("PUSHGATEWAY_URL", ""),
        )

    def validate(self) -> "None":
        """
        checks the options that cannot be defaulted. A dry run never
        posts, so it is allowed to run without a webhook URL.
        """
        if not self.dry_run and not self.webhook_url:
            raise ConfigError("SLACK_WEBHOOK_URL is not set")
        if self.log_format not in ("console", "json"):
            raise ConfigError(f"unknown log format {self.log_format!r}")
        if self.http_timeout <= 0:
            raise ConfigError("HTTP_TIMEOUT must be positive")
        seen: "set[str]" = set()
        for name in self.service_names:
            if name == TOTAL_LABEL:
                raise ConfigError(f"service name {name!r} is reserved for the total")
            if name in seen:
                raise ConfigError(f"service name {name!r} is listed more than once")
            seen.add(name)

    @property
    def pushgateway_enabled(self) -> "bool":
        return bool(self.pushgateway_url)
