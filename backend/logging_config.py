"""
Logging setup for the route guide server.
"""
from __future__ import annotations

import logging
import sys

from settings.types import LoggingSettings


def setup_logging(settings: LoggingSettings | None = None) -> None:
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level.strip().upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(settings.format))

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
