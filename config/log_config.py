"""
Structured logging setup shared by the API and the CLI.

structlog renders through the standard library, which writes to stderr,
so script output on stdout stays machine-readable.
"""

import logging

import structlog

from config.settings import settings


def configure_logging() -> None:
    """Configure stdlib logging and structlog from settings."""
    logging.basicConfig(format="%(message)s", level=settings.log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.is_production
                else structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
