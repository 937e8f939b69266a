"""Actions (instruction templates) and execution requests."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict

EXPLANATION_MARKER = "---EXPLANATION---"

EXPLANATION_SUFFIX = (
    "\n\nIMPORTANT: After your main response, add a section that starts with "
    f"'{EXPLANATION_MARKER}' and explain the changes you made."
)


class OutputMode(StrEnum):
    DEFAULT = "Default"
    IN_PLACE = "InPlace"
    WINDOWED = "Windowed"
    DIFF = "Diff"


class Action(BaseModel):
    """A user-defined AI task. Read-only for the duration of one execution."""

    model_config = ConfigDict(frozen=True)

    name: str
    prefix: str = ""
    instruction: str = ""
    explain_changes: bool = False
    open_in_window: bool = False
    output_mode: OutputMode = OutputMode.DEFAULT
    provider_override: Optional[str] = None

    @property
    def system_instruction(self) -> str:
        if self.explain_changes:
            return f"{self.instruction}{EXPLANATION_SUFFIX}"
        return self.instruction

    @property
    def preferred_mode(self) -> OutputMode:
        if self.output_mode != OutputMode.DEFAULT:
            return self.output_mode
        return OutputMode.WINDOWED if self.open_in_window else OutputMode.IN_PLACE


class ExecutionRequest(BaseModel):
    """Created once per user trigger and consumed by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    action: Action
    force_open_in_window: bool = False
    mode: OutputMode = OutputMode.DEFAULT
    provider_override: Optional[str] = None

    @property
    def effective_provider_override(self) -> Optional[str]:
        return self.provider_override or self.action.provider_override

    def resolve_output_mode(self) -> OutputMode:
        """Explicit request mode, then the force flag, then the action's own preference."""
        if self.mode != OutputMode.DEFAULT:
            return self.mode
        if self.force_open_in_window:
            return OutputMode.WINDOWED
        return self.action.preferred_mode
