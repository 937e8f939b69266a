"""Shared test doubles: memory backends and port fakes."""

from __future__ import annotations

from typing import Optional

from proseflow.core.types import NotificationType
from proseflow.models.results import DiffDecision, DiffViewData, RefinementRequest
from proseflow.models.settings import ProviderSettings
from proseflow.persistence.memory_backend import (
    MemoryCloudConfigStore,
    MemoryHistoryStore,
    MemoryUsageStore,
)


class StaticSettingsProvider:
    """ISettingsProvider returning a mutable snapshot."""

    def __init__(self, settings: ProviderSettings | None = None) -> None:
        self.settings = settings or ProviderSettings()
        self.calls = 0

    def get_provider_settings(self) -> ProviderSettings:
        self.calls += 1
        return self.settings


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, NotificationType]] = []

    def notify(self, message: str, severity: NotificationType = NotificationType.INFO) -> None:
        self.messages.append((message, severity))

    def with_severity(self, severity: NotificationType) -> list[str]:
        return [m for m, s in self.messages if s == severity]


class FakeTextPort:
    def __init__(self, selected: Optional[str] = None) -> None:
        self.selected = selected
        self.pasted: list[str] = []

    async def get_selected_text(self) -> Optional[str]:
        return self.selected

    async def paste_text(self, text: str) -> None:
        self.pasted.append(text)


class ScriptedResultSurface:
    """Returns queued refinement instructions, then closes (``None``)."""

    def __init__(self, refinements: list[str] | None = None) -> None:
        self._refinements = list(refinements or [])
        self.shown: list[tuple[str, str, Optional[str]]] = []

    async def present_result(
        self, action_name: str, main_output: str, explanation: Optional[str] = None
    ) -> Optional[RefinementRequest]:
        self.shown.append((action_name, main_output, explanation))
        if not self._refinements:
            return None
        return RefinementRequest(new_instruction=self._refinements.pop(0))


class ScriptedDiffSurface:
    def __init__(self, decisions: list[Optional[DiffDecision]] | None = None) -> None:
        self._decisions = list(decisions or [])
        self.shown: list[DiffViewData] = []

    async def present_diff(self, data: DiffViewData) -> Optional[DiffDecision]:
        self.shown.append(data)
        return self._decisions.pop(0) if self._decisions else None


class RecordingHistory:
    """IHistoryRecorder capturing every exchange; can be told to fail."""

    def __init__(self, error: Exception | None = None) -> None:
        self.records: list[dict] = []
        self.error = error

    async def record_exchange(self, **kwargs) -> None:
        if self.error is not None:
            raise self.error
        self.records.append(kwargs)


class RecordingUsage:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    async def add_usage(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.calls.append((prompt_tokens, completion_tokens))


__all__ = [
    "FakeTextPort",
    "MemoryCloudConfigStore",
    "MemoryHistoryStore",
    "MemoryUsageStore",
    "RecordingHistory",
    "RecordingNotifier",
    "RecordingUsage",
    "ScriptedDiffSurface",
    "ScriptedResultSurface",
    "StaticSettingsProvider",
]
