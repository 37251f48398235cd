"""Structured logging for the search service.

Every event carries ``service=podsearch`` so API and CLI logs can be told
apart from uvicorn's own output once shipped to a log store.
"""

import logging
import sys

import structlog

SERVICE_NAME = "podsearch"

# Third-party loggers that are only useful when debugging a query
NOISY_LOGGERS = ("httpx", "httpcore", "psycopg")


def add_service_name(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor tagging each event with the service name."""
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
) -> None:
    """Configure structlog for the API server and CLI commands.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Render JSON lines (production) instead of colored console output.
    """
    level = getattr(logging, log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level == logging.DEBUG else logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_format:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=False,
    )
