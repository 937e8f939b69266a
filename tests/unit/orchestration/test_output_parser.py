"""Tests for splitting the explanation off assistant output."""

from __future__ import annotations

from proseflow.orchestration.output_parser import parse_output


class TestParseOutput:
    def test_splits_and_trims_both_halves(self):
        assert parse_output("  Fixed.  \n---EXPLANATION---\n  Because.  ", True) == ("Fixed.", "Because.")

    def test_marker_absent_returns_whole_text(self):
        assert parse_output("  Fixed.  ", True) == ("Fixed.", None)

    def test_not_requested_ignores_marker(self):
        raw = "Fixed.---EXPLANATION---Because."
        assert parse_output(raw, False) == (raw, None)

    def test_only_first_marker_splits(self):
        assert parse_output("a---EXPLANATION---b---EXPLANATION---c", True) == ("a", "b---EXPLANATION---c")
