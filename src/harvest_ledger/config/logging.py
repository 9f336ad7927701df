"""Structured logging configuration for Harvest Ledger.

Command output is written to stdout; log lines always go to stderr so the
two never mix when output is piped.
"""

import logging
import sys
from typing import Literal

import structlog

from harvest_ledger.config.settings import get_settings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Chatty third-party loggers kept at WARNING even when we run at DEBUG.
QUIET_LOGGERS = ("PIL",)


def configure_logging(
    level: LogLevel | None = None,
    format: Literal["json", "console"] | None = None,
    verbose: bool = False,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Log level. Defaults to settings.
        format: Output format (json or console). Defaults to settings.
        verbose: Force DEBUG, as for the CLI's ``--verbose`` flag.
    """
    settings = get_settings()
    log_level = "DEBUG" if verbose else level or settings.log_level
    log_format = format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
    )
    logging.getLogger("harvest_ledger").setLevel(getattr(logging, log_level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
