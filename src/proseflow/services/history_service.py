"""History port implementation over an IHistoryStore."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from proseflow.core.protocols import IHistoryStore
from proseflow.models.history import HistoryEntry

logger = logging.getLogger(__name__)


class HistoryService:
    """Creates and queries history entries. Store calls run off the event loop."""

    def __init__(self, store: IHistoryStore) -> None:
        self._store = store

    async def record_exchange(
        self,
        action_name: str,
        provider_family: str,
        model_label: str,
        input_text: str,
        output_text: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: float,
        tokens_per_second: float,
    ) -> None:
        entry = HistoryEntry(
            action_name=action_name,
            provider_used=provider_family,
            model_used=model_label,
            input_text=input_text,
            output_text=output_text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=latency_ms,
            tokens_per_second=tokens_per_second,
        )
        await asyncio.to_thread(self._store.add, entry)
        logger.debug("Recorded history entry %s for action '%s'", entry.id, action_name)

    async def recent(self, count: int = 10) -> list[HistoryEntry]:
        return await asyncio.to_thread(self._store.recent, count)

    async def search(self, term: Optional[str] = None, field: Optional[str] = None) -> list[HistoryEntry]:
        """Newest first; ``field`` is one of action/input/output/provider/model."""
        return await asyncio.to_thread(self._store.search, term, field)

    async def delete(self, entry_id: str) -> None:
        await asyncio.to_thread(self._store.delete, entry_id)

    async def clear(self) -> None:
        await asyncio.to_thread(self._store.clear)
        logger.info("History cleared")
