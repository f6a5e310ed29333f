"""Loguru sink configuration driven by settings."""

import sys

from loguru import logger

from procurement_engine.config import settings


def configure_logging(level: str = None, fmt: str = None) -> None:
    """Replace the default loguru sink with one honouring LOG_LEVEL / LOG_FORMAT."""
    level = (level or settings.LOG_LEVEL).upper()
    fmt = (fmt or settings.LOG_FORMAT).lower()

    logger.remove()
    logger.add(sys.stderr, level=level, serialize=(fmt == "json"))
    logger.debug(f"Logging configured: level={level}, format={fmt}")
