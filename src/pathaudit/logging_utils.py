"""Logging setup for the command line tool."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOGGER_NAME = "pathaudit"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False, stream: TextIO | None = None) -> logging.Logger:
    """Send package logs to stderr so stdout carries only the report.

    Calling this again replaces the previous handler instead of stacking a
    second one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_pathaudit_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._pathaudit_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.ERROR)
    return logger
