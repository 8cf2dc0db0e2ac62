"""Logging setup."""

import sys

from loguru import logger


def configure_logging(level: str = "WARNING") -> None:
    """Route loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:HH:mm:ss} | {level:<7} | {message}")
