import logging

import structlog


def setup_logging(level: "str", fmt: "str" = "console") -> "None":
    """
    maps string log level to logging module levels and configures
    structlog with timestamping. The console renderer suits local
    runs, the JSON renderer keeps one event per line in the function
    runtime's log stream.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    # the function runtime installs its own root handler, so replace it
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        force=True,
    )
    processors: "list[structlog.typing.Processor]" = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
