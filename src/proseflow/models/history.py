"""History and usage records."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    """One logged provider exchange."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = Field(default_factory=_utcnow)
    action_name: str
    provider_used: str  # provider family, e.g. "Cloud" / "Local"
    model_used: str  # concrete model label
    input_text: str
    output_text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0
    tokens_per_second: float = 0.0


class UsageStatistic(BaseModel):
    """Aggregated cloud token usage for one calendar month."""

    year: int
    month: int
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


# search field name -> HistoryEntry attribute
SEARCH_FIELDS: dict[str, str] = {
    "action": "action_name",
    "input": "input_text",
    "output": "output_text",
    "provider": "provider_used",
    "model": "model_used",
}
DEFAULT_SEARCH_FIELDS = ("action", "input", "output")


def matches(entry: HistoryEntry, term: str | None, field: str | None = None) -> bool:
    """Case-insensitive substring match of ``term`` against one field, or the default fields."""
    if not term:
        return True
    if field is not None and field.lower() not in SEARCH_FIELDS:
        raise ValueError(f"Unknown history search field: {field!r}")
    fields = (field.lower(),) if field else DEFAULT_SEARCH_FIELDS
    needle = term.lower()
    return any(needle in str(getattr(entry, SEARCH_FIELDS[f])).lower() for f in fields)
