"""Logging setup for the toolkit.

Engine modules log through ``logging.getLogger(__name__)``; only the CLI
calls :func:`setup_logging` to attach a handler.
"""

from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "src.transform"
LEVEL_ENV = "IMAGE_TRANSFORM_LOG_LEVEL"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def setup_logging(level: int = logging.INFO, name: str = LOGGER_NAME) -> logging.Logger:
    """Create or update the package logger.

    - ``IMAGE_TRANSFORM_LOG_LEVEL`` overrides ``level`` on every call.
    - Exactly one stderr handler is kept, so repeated calls only refresh
      its stream, level and formatter.
    """

    logger = logging.getLogger(name)

    env_level = (os.getenv(LEVEL_ENV) or "").strip().lower()
    if env_level:
        level = _LEVELS.get(env_level, level)
    logger.setLevel(level)

    handler = None
    for h in logger.handlers:
        if getattr(h, "_transform_handler", False):
            handler = h
            break
    if handler is None:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler._transform_handler = True
        logger.addHandler(handler)
    else:
        # sys.stderr may have been swapped (test runners, redirection)
        handler.stream = sys.stderr

    handler.setFormatter(
        logging.Formatter(fmt="[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S")
    )
    return logger
