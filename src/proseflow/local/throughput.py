"""Interval-sampled tokens/second measurement for the decode loop."""

from __future__ import annotations

import statistics
import time
from typing import Callable


class ThroughputMeter:
    """Records one tokens/second sample per elapsed ``interval`` of wall-clock time.

    The reported rate is the mean of the interval samples, or the overall
    rate when generation finished before the first interval completed.
    """

    def __init__(self, interval: float = 1.0, clock: Callable[[], float] = time.perf_counter) -> None:
        self.interval = interval
        self._clock = clock
        self._started: float | None = None
        self._stopped: float | None = None
        self._last_time = 0.0
        self._last_tokens = 0
        self._total_tokens = 0
        self.samples: list[float] = []

    def start(self) -> None:
        self._started = self._clock()
        self._stopped = None
        self._last_time = 0.0
        self._last_tokens = 0
        self._total_tokens = 0
        self.samples = []

    def record(self, total_tokens: int) -> None:
        if self._started is None:
            raise RuntimeError("ThroughputMeter.record() called before start()")
        self._total_tokens = total_tokens
        elapsed = self._clock() - self._started
        delta = elapsed - self._last_time
        if delta < self.interval:
            return
        if delta > 0:
            self.samples.append((total_tokens - self._last_tokens) / delta)
        self._last_time = elapsed
        self._last_tokens = total_tokens

    def stop(self, total_tokens: int | None = None) -> None:
        if total_tokens is not None:
            self._total_tokens = total_tokens
        self._stopped = self._clock()

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else self._clock()
        return end - self._started

    @property
    def tokens_per_second(self) -> float:
        if self.samples:
            return statistics.fmean(self.samples)
        elapsed = self.elapsed
        if self._total_tokens > 0 and elapsed > 0:
            return self._total_tokens / elapsed
        return 0.0
