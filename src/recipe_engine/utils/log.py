"""Loguru sink configuration."""

from __future__ import annotations

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level> {extra}"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with one that renders bound context."""

    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT, backtrace=False, diagnose=False)
