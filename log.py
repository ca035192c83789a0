"""
Logging configuration for AgriAid.
"""

import logging
import sys

from config import LOG_LEVEL

LOGGER_NAME = "agriaid"


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Attach a single stdout handler to the root logger.

    Module loggers are created with logging.getLogger(__name__) and
    propagate here.
    """
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logger = logging.getLogger(LOGGER_NAME)
    logger.info("Logging initialized at level %s", level)
    return logger
