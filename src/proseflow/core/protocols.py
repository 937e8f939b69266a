"""Protocol interfaces for all ProseFlow ports.

The orchestrator and the providers only ever talk to these Protocols;
structural typing keeps the UI shell, OS integration and storage swappable
and lets unit tests pass plain fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from proseflow.core.types import NotificationType, SessionId

if TYPE_CHECKING:
    from proseflow.core.cancellation import CancellationToken
    from proseflow.models.chat import AiResponse, ChatMessage, ProviderType
    from proseflow.models.history import HistoryEntry, UsageStatistic
    from proseflow.models.results import DiffDecision, DiffViewData, RefinementRequest
    from proseflow.models.settings import CloudProviderConfiguration, ProviderSettings


# ---------------------------------------------------------------------------
# Provider capability
# ---------------------------------------------------------------------------

@runtime_checkable
class IAiProvider(Protocol):
    """Uniform generation contract implemented by the cloud and local adapters."""

    name: str
    provider_type: ProviderType

    async def generate(
        self,
        messages: list[ChatMessage],
        cancellation: Optional[CancellationToken] = None,
        session_id: Optional[SessionId] = None,
    ) -> AiResponse: ...


# ---------------------------------------------------------------------------
# Local sessions
# ---------------------------------------------------------------------------

@runtime_checkable
class ISessionManager(Protocol):
    """Owns the mapping from session id to a live local conversation."""

    async def start(self) -> Optional[SessionId]: ...

    def get(self, session_id: SessionId) -> object | None: ...

    def end(self, session_id: SessionId) -> None: ...


# ---------------------------------------------------------------------------
# OS text capture / paste
# ---------------------------------------------------------------------------

@runtime_checkable
class ITextPort(Protocol):
    async def get_selected_text(self) -> Optional[str]: ...

    async def paste_text(self, text: str) -> None: ...


# ---------------------------------------------------------------------------
# Notifications and result surfaces
# ---------------------------------------------------------------------------

@runtime_checkable
class INotifier(Protocol):
    """Fire-and-forget user notifications."""

    def notify(self, message: str, severity: NotificationType = NotificationType.INFO) -> None: ...


@runtime_checkable
class IResultSurface(Protocol):
    """Windowed-mode result display; suspends until refinement or close (``None``)."""

    async def present_result(
        self, action_name: str, main_output: str, explanation: Optional[str] = None
    ) -> Optional[RefinementRequest]: ...


@runtime_checkable
class IDiffSurface(Protocol):
    """Diff-mode comparison display; suspends until the user decides."""

    async def present_diff(self, data: DiffViewData) -> Optional[DiffDecision]: ...


# ---------------------------------------------------------------------------
# History and usage
# ---------------------------------------------------------------------------

@runtime_checkable
class IHistoryRecorder(Protocol):
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
    ) -> None: ...


@runtime_checkable
class IUsageRecorder(Protocol):
    async def add_usage(self, prompt_tokens: int, completion_tokens: int) -> None: ...


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@runtime_checkable
class IHistoryStore(Protocol):
    def add(self, entry: HistoryEntry) -> None: ...

    def recent(self, count: int = 10) -> list[HistoryEntry]: ...

    def search(self, term: Optional[str] = None, field: Optional[str] = None) -> list[HistoryEntry]: ...

    def delete(self, entry_id: str) -> None: ...

    def clear(self) -> None: ...


@runtime_checkable
class IUsageStore(Protocol):
    def get(self, year: int, month: int) -> Optional[UsageStatistic]: ...

    def save(self, statistic: UsageStatistic) -> None: ...


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@runtime_checkable
class ISettingsProvider(Protocol):
    """Read-only settings snapshot, re-read on every execution."""

    def get_provider_settings(self) -> ProviderSettings: ...


@runtime_checkable
class ICloudConfigStore(Protocol):
    def list_configurations(self) -> list[CloudProviderConfiguration]: ...
