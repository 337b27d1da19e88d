"""
Logging setup — one place that configures the grainmirror logger tree

Modules log through logging.getLogger(__name__); nothing is printed until
the CLI calls configure_logging(). Diagnostics go to stderr so that stdout
stays clean for results and --format json.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "grainmirror"


def configure_logging(level: str = "WARNING", stream=None) -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.

    Calling it again replaces the handler instead of stacking a second one.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: sys.stderr)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
