"""Payloads exchanged with the result and diff surfaces."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class ResultWindowData(BaseModel):
    model_config = ConfigDict(frozen=True)

    action_name: str
    main_content: str
    explanation: Optional[str] = None


class RefinementRequest(BaseModel):
    """A follow-up instruction submitted from the result surface."""

    model_config = ConfigDict(frozen=True)

    new_instruction: str


class DiffViewData(BaseModel):
    model_config = ConfigDict(frozen=True)

    action_name: str
    original_text: str
    generated_text: str


# ---------------------------------------------------------------------------
# Diff surface decisions
# ---------------------------------------------------------------------------

class Accepted(BaseModel):
    """Paste ``new_text`` (possibly edited by the user)."""

    new_text: str


class Refined(BaseModel):
    refinement_instruction: str


class Regenerated(BaseModel):
    """Re-run the same conversation for a new suggestion."""


class Cancelled(BaseModel):
    pass


DiffDecision = Union[Accepted, Refined, Regenerated, Cancelled]
