"""In-memory backends for unit tests and local development."""

from __future__ import annotations

from typing import Optional

from proseflow.models.history import HistoryEntry, UsageStatistic, matches
from proseflow.models.settings import CloudProviderConfiguration


class MemoryHistoryStore:
    """Dict-backed IHistoryStore."""

    def __init__(self) -> None:
        self._entries: dict[str, HistoryEntry] = {}

    def add(self, entry: HistoryEntry) -> None:
        self._entries[entry.id] = entry

    def recent(self, count: int = 10) -> list[HistoryEntry]:
        return self._ordered()[:count]

    def search(self, term: Optional[str] = None, field: Optional[str] = None) -> list[HistoryEntry]:
        return [e for e in self._ordered() if matches(e, term, field)]

    def delete(self, entry_id: str) -> None:
        self._entries.pop(entry_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def _ordered(self) -> list[HistoryEntry]:
        return sorted(self._entries.values(), key=lambda e: e.timestamp, reverse=True)


class MemoryUsageStore:
    """Dict-backed IUsageStore."""

    def __init__(self) -> None:
        self._stats: dict[tuple[int, int], UsageStatistic] = {}

    def get(self, year: int, month: int) -> Optional[UsageStatistic]:
        stat = self._stats.get((year, month))
        return stat.model_copy() if stat is not None else None

    def save(self, statistic: UsageStatistic) -> None:
        self._stats[(statistic.year, statistic.month)] = statistic.model_copy()


class MemoryCloudConfigStore:
    """List-backed ICloudConfigStore."""

    def __init__(self, configurations: list[CloudProviderConfiguration] | None = None) -> None:
        self._configurations = list(configurations or [])

    def add(self, configuration: CloudProviderConfiguration) -> None:
        self._configurations.append(configuration)

    def list_configurations(self) -> list[CloudProviderConfiguration]:
        return list(self._configurations)
