"""Notifier that routes user notifications to the log (headless / API use)."""

from __future__ import annotations

import logging

from proseflow.core.types import NotificationType

logger = logging.getLogger(__name__)

_LEVELS = {
    NotificationType.INFO: logging.INFO,
    NotificationType.SUCCESS: logging.INFO,
    NotificationType.WARNING: logging.WARNING,
    NotificationType.ERROR: logging.ERROR,
}


class LoggingNotifier:
    """INotifier that logs each notification and keeps the most recent ones."""

    def __init__(self, keep: int = 50) -> None:
        self._keep = keep
        self.recent: list[tuple[NotificationType, str]] = []

    def notify(self, message: str, severity: NotificationType = NotificationType.INFO) -> None:
        logger.log(_LEVELS.get(severity, logging.INFO), "[%s] %s", severity, message)
        self.recent.append((severity, message))
        del self.recent[: -self._keep]
