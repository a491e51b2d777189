import argparse
from dataclasses import dataclass
from datetime import date

from billing_notifier.config import Config


@dataclass
class Invocation:
    config: "Config"
    # report the day before this date instead of the day before today
    on: "date | None" = None


def _parse_date(raw: "str") -> "date":
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {raw!r}, expected YYYY-MM-DD") from None


def parse_args(argv: "list[str] | None" = None) -> "Invocation":
    parser = argparse.ArgumentParser(
        prog="billing-notifier",
        description="Post the previous day's estimated AWS charges to Slack",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default=None,
        choices=["console", "json"],
        help="Log output format (default: LOG_FORMAT or console)",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Log the Slack payload instead of posting it",
    )
    parser.add_argument(
        "--date",
        dest="on",
        type=_parse_date,
        default=None,
        help="Report the day before this date (YYYY-MM-DD)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    config.dry_run = args.dry_run
    return Invocation(config=config, on=args.on)
