"""Monthly cloud token usage tracking."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from proseflow.core.protocols import IUsageStore
from proseflow.models.history import UsageStatistic

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageTracker:
    """Keeps the current month's usage in memory and mirrors it to a store.

    Store failures are logged; the in-memory counters stay authoritative until
    the next successful save.
    """

    def __init__(self, store: IUsageStore, *, now: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._now = now
        self._lock = asyncio.Lock()
        current = now()
        self._current = UsageStatistic(year=current.year, month=current.month)
        self._initialized = False

    async def initialize(self) -> None:
        async with self._lock:
            self._current = await self._get_or_create_current()
            self._initialized = True

    def current_usage(self) -> UsageStatistic:
        return self._current.model_copy()

    async def add_usage(self, prompt_tokens: int, completion_tokens: int) -> None:
        async with self._lock:
            now = self._now()
            if not self._initialized or (now.year, now.month) != (self._current.year, self._current.month):
                self._current = await self._get_or_create_current()
                self._initialized = True

            self._current.prompt_tokens += prompt_tokens
            self._current.completion_tokens += completion_tokens
            try:
                await asyncio.to_thread(self._store.save, self._current.model_copy())
            except Exception:
                logger.warning(
                    "Failed to save usage data. In-memory values were updated but may be out of sync.",
                    exc_info=True,
                )

    async def reset_usage(self) -> None:
        async with self._lock:
            self._current.prompt_tokens = 0
            self._current.completion_tokens = 0
            await asyncio.to_thread(self._store.save, self._current.model_copy())
            logger.info("Usage for %d/%d reset", self._current.month, self._current.year)

    async def _get_or_create_current(self) -> UsageStatistic:
        now = self._now()
        try:
            usage = await asyncio.to_thread(self._store.get, now.year, now.month)
        except Exception:
            logger.warning("Failed to load usage for %d/%d; starting from zero.", now.month, now.year, exc_info=True)
            return UsageStatistic(year=now.year, month=now.month)
        if usage is not None:
            return usage

        logger.info("No usage record for %d/%d. Creating a new one.", now.month, now.year)
        usage = UsageStatistic(year=now.year, month=now.month)
        try:
            await asyncio.to_thread(self._store.save, usage.model_copy())
        except Exception:
            logger.warning("Failed to create usage record for %d/%d.", now.month, now.year, exc_info=True)
        return usage
