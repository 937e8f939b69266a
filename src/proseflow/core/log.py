"""Process-wide logging configuration."""

from __future__ import annotations

import logging

from proseflow.core.config import AppSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: AppSettings | None = None) -> None:
    settings = settings or AppSettings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("proseflow").setLevel(level)
