"""Logging configuration for the rosterdesk package loggers."""

import logging
import sys
from typing import Union


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Configure the ``rosterdesk`` logger with a console handler.

    Library modules log through ``logging.getLogger(__name__)``; request
    handlers use the Flask app logger.

    Args:
        level: Logging level or its name (e.g. "INFO")

    Returns:
        Configured logger instance
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger('rosterdesk')
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    ))
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
