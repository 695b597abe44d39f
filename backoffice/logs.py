"""Module logger setup shared by the engine, planners and store adapters."""
from __future__ import annotations

import logging
import os

_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger with its own stream handler and env-driven level.

    Every module gets the same treatment: one ``StreamHandler`` with the
    ``[LEVEL] name: message`` format, level taken from
    ``BACKOFFICE_LOG_LEVEL`` (default ``INFO``) and propagation disabled so
    host applications do not print each record twice.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
    level = os.getenv("BACKOFFICE_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False
    return logger
