"""Tracked in-flight action executions."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from proseflow.core.cancellation import CancellationToken


class ActionStatus(StrEnum):
    QUEUED = "Queued"
    PROCESSING = "Processing"
    SUCCESS = "Success"
    ERROR = "Error"


class TrackedAction(BaseModel):
    """A single background action shown to the user while it runs."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ActionStatus = ActionStatus.QUEUED
    cancellation: CancellationToken = Field(default_factory=CancellationToken, exclude=True)
