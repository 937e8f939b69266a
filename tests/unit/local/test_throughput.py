"""Tests for interval-sampled throughput measurement."""

from __future__ import annotations

import pytest

from proseflow.local.throughput import ThroughputMeter


def _clock(*values: float):
    return iter(values).__next__


class TestThroughputMeter:
    def test_mean_of_interval_samples(self):
        meter = ThroughputMeter(1.0, _clock(0.0, 1.0, 1.5, 2.0, 2.2))
        meter.start()
        meter.record(5)
        meter.record(7)
        meter.record(12)
        meter.stop(12)

        assert meter.samples == [5.0, 7.0]
        assert meter.tokens_per_second == pytest.approx(6.0)

    def test_short_generation_uses_overall_rate(self):
        meter = ThroughputMeter(1.0, _clock(0.0, 0.2, 0.5))
        meter.start()
        meter.record(3)
        meter.stop(3)

        assert meter.samples == []
        assert meter.tokens_per_second == pytest.approx(6.0)

    def test_no_tokens_reports_zero(self):
        meter = ThroughputMeter(1.0, _clock(0.0, 0.5))
        meter.start()
        meter.stop(0)

        assert meter.tokens_per_second == 0.0

    def test_record_before_start_raises(self):
        with pytest.raises(RuntimeError):
            ThroughputMeter().record(1)
