import asyncio

import structlog

from billing_notifier.cli import parse_args
from billing_notifier.errors import BillingNotifierError
from billing_notifier.handler import execute, reference_now
from billing_notifier.logging import setup_logging

logger = structlog.get_logger()


def main(argv: "list[str] | None" = None) -> "int":
    invocation = parse_args(argv)
    config = invocation.config
    setup_logging(config.log_level, config.log_format)

    try:
        config.validate()
        now = reference_now(config, invocation.on)
        result = asyncio.run(execute(config, now))
    except BillingNotifierError as e:
        logger.error("report_failed", error=str(e))
        return 1

    logger.info(
        "report_complete",
        date=result.window.start.date().isoformat(),
        fields=len(result.message.fields),
        dry_run=config.dry_run,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
