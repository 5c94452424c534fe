from __future__ import annotations

import time
from dataclasses import dataclass


class Stopwatch:
    """Context manager measuring wall-clock time with ``perf_counter``."""

    def __init__(self) -> None:
        self._started: float | None = None
        self._stopped: float | None = None

    def __enter__(self) -> Stopwatch:
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._stopped = time.perf_counter()
        return False

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started


@dataclass(frozen=True, slots=True)
class SpeedupReport:
    sequential: float
    parallel: float
    workers: int

    @property
    def speedup(self) -> float:
        if self.parallel <= 0:
            return float("inf")
        return self.sequential / self.parallel

    @property
    def efficiency(self) -> float:
        """Speedup as a fraction of the ideal ``workers``-fold speedup."""

        return self.speedup / self.workers


__all__ = ["SpeedupReport", "Stopwatch"]
