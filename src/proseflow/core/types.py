"""Type aliases and small enums used across ProseFlow."""

from __future__ import annotations

from enum import StrEnum
from typing import Any
from uuid import UUID

JsonDict = dict[str, Any]
SessionId = UUID
ProviderName = str


class NotificationType(StrEnum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    SUCCESS = "Success"
