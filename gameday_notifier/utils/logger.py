"""Logging configuration"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def resolve_level(value: Optional[str]) -> int:
    """
    Translate a level name such as "debug" or "WARNING" to a logging level

    Raises:
        ValueError: If the name is not a known logging level
    """
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Set up and return a logger instance writing to stdout"""
    logger = logging.getLogger(name)

    if level is None:
        try:
            level = resolve_level(os.getenv("LOG_LEVEL"))
        except ValueError:
            level = logging.INFO

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def set_package_level(level: int, prefix: str = "gameday_notifier"):
    """Apply a level to every logger already created under the package"""
    for name, existing in logging.root.manager.loggerDict.items():
        if name.startswith(prefix) and isinstance(existing, logging.Logger):
            existing.setLevel(level)
