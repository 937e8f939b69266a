"""Splitting assistant output into the main text and an optional explanation."""

from __future__ import annotations

from typing import Optional

from proseflow.models.action import EXPLANATION_MARKER


def parse_output(raw_output: str, expect_explanation: bool) -> tuple[str, Optional[str]]:
    """Return ``(main_output, explanation)``.

    The explanation is only split off when it was requested and the marker is
    present; everything after the first marker belongs to the explanation.
    """
    if not expect_explanation or EXPLANATION_MARKER not in raw_output:
        return raw_output.strip(), None
    main, explanation = raw_output.split(EXPLANATION_MARKER, 1)
    return main.strip(), explanation.strip()
