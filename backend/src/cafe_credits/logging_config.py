"""Structured logging for the CLI and library code.

Events go to stderr; stdout belongs to the rich tables and progress bars.
"""

import logging
import sys

import structlog

from cafe_credits.settings import settings

# Chatty at INFO; only their warnings are interesting here
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "asyncio")


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(log_level: str | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        log_level: Level name overriding ``settings.log_level``
    """
    level_name = (log_level or settings.log_level).upper()
    level = logging.getLevelName(level_name)
    timestamp_fmt = "iso" if settings.log_format == "json" else "%H:%M:%S"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt=timestamp_fmt),
            _renderer(settings.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger bound to a module name."""
    return structlog.get_logger(name)
