"""Logging configuration helpers for the game."""

from __future__ import annotations

import logging
import os
from logging import Logger

LOG_LEVEL_ENV = "ENDOCRINE_ER_LOG_LEVEL"


def configure_logging() -> Logger:
    """Configure basic logging for the application and return the package logger."""
    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("endocrine_er")
