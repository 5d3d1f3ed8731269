"""Logging configuration.

All modules log through ``structlog.get_logger(__name__)`` with key-value
context (``logger.info("msg", key=value)``). ``setup_logging`` routes structlog
through the standard library so the level applies to both.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import structlog


def setup_logging(level: Optional[str] = None) -> None:
    """Configure logging for the notification engine.

    Args:
        level: Optional override for ``PORTFOLIO_EVENTS_LOG_LEVEL`` (default INFO).
    """
    level_name = (level or os.getenv("PORTFOLIO_EVENTS_LOG_LEVEL") or "INFO").upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format="%(message)s", level=numeric_level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
