"""Pipe-delimited logging shared by every spot planner module."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from spotplanner.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler once; later calls only adjust the level."""

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        if level:
            logging.getLogger().setLevel(level.upper())
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, stream=sys.stdout)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
