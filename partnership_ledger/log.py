"""
Structured Logging

Every backend decision (which store was read, which store took a write,
why a fallback happened) is logged as a structured event so a degraded
ledger is visible in the logs even though callers never see the error.
"""

import logging
from typing import Optional

import structlog

from partnership_ledger.config import get_settings


_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; only the first call has an effect.
    """
    global _configured
    if _configured:
        return

    level_name = (level or get_settings().app.log_level).upper()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str):
    """Get a structured logger, configuring logging on first use."""
    configure_logging()
    return structlog.get_logger(name)
