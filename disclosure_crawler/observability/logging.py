"""
Structured logging configuration using structlog.

Crawl diagnostics are emitted as key/value events (fetcher, market,
period, status code, record counts) so a failed upstream source can be
traced from a single line. Production renders JSON; development renders
a colored console view. Both keep CJK security names readable.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from disclosure_crawler.config.settings import get_settings

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def _processors(json_logs: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_logs:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the standard library logging root.

    Args:
        level: Log level name; defaults to ``settings.log_level``.
        json_logs: Force JSON output on or off; defaults to JSON in production.

    Usage:
        setup_logging()
        logger = get_logger(__name__)
        logger.info("Crawl complete", entity="daily_price", records=1812)
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_logs is None:
        json_logs = settings.is_production

    structlog.configure(
        processors=_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger (defaults to the caller's module name)."""
    return structlog.get_logger(name)
