"""Shared counters used to contrast synchronised and racy updates.

The synchronised counter is the default everywhere. The unsynchronised one
exists only to show lost updates and has to be asked for explicitly via
``make_counter(synchronized=False)``; the worker pool never uses either.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Protocol


class Counter(Protocol):
    def increment(self) -> None: ...

    @property
    def value(self) -> int: ...


class SynchronizedCounter:
    """Counter whose read-modify-write happens under a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    def increment(self) -> None:
        with self._lock:
            self._count += 1

    @property
    def value(self) -> int:
        with self._lock:
            return self._count


class UnsynchronizedCounter:
    """Counter with a deliberately unguarded read-modify-write.

    ``time.sleep(0)`` between the read and the write yields the GIL so other
    threads can interleave, the same window ``count++`` leaves open on
    runtimes without one.
    """

    def __init__(self) -> None:
        self._count = 0

    def increment(self) -> None:
        current = self._count
        time.sleep(0)
        self._count = current + 1

    @property
    def value(self) -> int:
        return self._count


def make_counter(*, synchronized: bool = True) -> Counter:
    if synchronized:
        return SynchronizedCounter()
    return UnsynchronizedCounter()


@dataclass(frozen=True, slots=True)
class RaceReport:
    threads: int
    iterations: int
    expected: int
    actual: int

    @property
    def lost_updates(self) -> int:
        return self.expected - self.actual

    @property
    def consistent(self) -> bool:
        return self.expected == self.actual


def hammer(counter: Counter, *, threads: int = 2, iterations: int = 10_000) -> RaceReport:
    """Increment *counter* from *threads* raw threads, *iterations* times each."""

    if threads < 1:
        raise ValueError(f"threads must be at least 1, got {threads}")
    start = threading.Barrier(threads)

    def _spin() -> None:
        start.wait()
        for _ in range(iterations):
            counter.increment()

    workers = [
        threading.Thread(target=_spin, name=f"threadlab-hammer-{index}")
        for index in range(threads)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    return RaceReport(
        threads=threads,
        iterations=iterations,
        expected=threads * iterations,
        actual=counter.value,
    )


__all__ = [
    "Counter",
    "RaceReport",
    "SynchronizedCounter",
    "UnsynchronizedCounter",
    "hammer",
    "make_counter",
]
