"""Runnable lab scenarios built on the threadlab primitives.

Each lab exercises one concurrency idea and returns a :class:`LabResult`
describing what happened instead of printing along the way; presentation is
left to :mod:`threadlab.cli`. Durations are multiplied by ``scale`` so tests
can run the same scenarios in milliseconds.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .background import BackgroundTask
from .capabilities import detect_capabilities
from .config import PoolConfig
from .cancellation import sleep
from .counters import hammer, make_counter
from .events import LifecycleRecorder
from .parallel import parallel_map
from .pool import WorkerPool
from .timing import SpeedupReport, Stopwatch
from .workloads import (
    fetch_flight,
    fetch_hotel,
    prepare_dish,
    simulate_blocking_io,
    sin_sqrt,
)


@dataclass(frozen=True)
class LabResult:
    """Outcome of a single lab run.

    Attributes:
        name: Lab identifier as accepted by the CLI.
        output: Plain-data payload describing what the lab observed.
        elapsed: Wall-clock seconds spent in the lab.
        tags: Topic labels such as ``("pool", "shutdown")``.
    """

    name: str
    output: Mapping[str, Any]
    elapsed: float
    tags: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "output": dict(self.output),
            "elapsed": self.elapsed,
            "tags": list(self.tags),
        }


def _lab_config() -> PoolConfig:
    # Labs submit their whole workload up front.
    return replace(PoolConfig.from_env(), queue_size=0)


class _GreeterThread(threading.Thread):
    def __init__(self, seen: dict[str, str]) -> None:
        super().__init__(name="threadlab-subclass")
        self._seen = seen

    def run(self) -> None:
        self._seen["subclass"] = threading.current_thread().name


def threads_lab() -> LabResult:
    """Start a ``Thread`` subclass and a ``Thread(target=...)``, then join both."""

    seen: dict[str, str] = {}

    def _target() -> None:
        seen["target"] = threading.current_thread().name

    with Stopwatch() as watch:
        started = [
            _GreeterThread(seen),
            threading.Thread(target=_target, name="threadlab-target"),
        ]
        for thread in started:
            thread.start()
        for thread in started:
            thread.join()
    return LabResult(
        name="threads",
        output={
            "main": threading.current_thread().name,
            "subclass": seen["subclass"],
            "target": seen["target"],
            "alive": sum(1 for thread in started if thread.is_alive()),
        },
        elapsed=watch.elapsed,
        tags=("threads", "basics"),
    )


def executor_lab(*, scale: float = 1.0, workers: int = 3, tasks: int = 10) -> LabResult:
    """Run *tasks* half-second jobs on a fixed pool and drain it gracefully."""

    seen: set[str] = set()
    seen_lock = threading.Lock()

    def _job(task_id: int) -> int:
        with seen_lock:
            seen.add(threading.current_thread().name)
        simulate_blocking_io(0.5 * scale)
        return task_id

    with Stopwatch() as watch:
        pool = WorkerPool(workers, config=_lab_config(), name="executor-lab")
        handles = pool.map(_job, range(1, tasks + 1))
        terminated = pool.shutdown(graceful=True, timeout=20 * scale + 1)
        if not terminated:
            pool.shutdown_now()
    return LabResult(
        name="executor",
        output={
            "tasks": len(handles),
            "completed": sum(1 for handle in handles if handle.done()),
            "workers_used": len(seen),
            "terminated": terminated,
        },
        elapsed=watch.elapsed,
        tags=("pool", "shutdown"),
    )


def futures_lab(*, scale: float = 1.0) -> LabResult:
    """Order two dishes, keep working meanwhile, then collect both tickets."""

    with Stopwatch() as watch:
        with WorkerPool(2, config=_lab_config(), name="kitchen") as pool:
            pizza = pool.submit(prepare_dish, "Pizza", 2 * scale)
            pasta = pool.submit(prepare_dish, "Pasta", 2 * scale)
            side_work = 0
            for _ in range(3):
                sleep(0.5 * scale)
                side_work += 1
            dishes = [pizza.result(), pasta.result()]
    return LabResult(
        name="futures",
        output={"dishes": dishes, "side_work": side_work},
        elapsed=watch.elapsed,
        tags=("handle",),
    )


def composition_lab(*, scale: float = 1.0, destination: str = "Paris") -> LabResult:
    """Fetch a flight and a hotel concurrently and combine them into a trip."""

    duration = 2 * scale
    with Stopwatch() as watch:
        with WorkerPool(2, config=_lab_config(), name="travel") as pool:
            flight = pool.submit(fetch_flight, destination, duration)
            hotel = pool.submit(fetch_hotel, destination, duration)
            trip = flight.combine(hotel, lambda f, h: f"Trip: {f} + {h}")
            summary = trip.result()
    report = SpeedupReport(sequential=2 * duration, parallel=watch.elapsed, workers=2)
    return LabResult(
        name="composition",
        output={"trip": summary, "speedup": round(report.speedup, 2)},
        elapsed=watch.elapsed,
        tags=("handle", "composition"),
    )


def race_lab(*, threads: int = 2, iterations: int = 10_000) -> LabResult:
    """Hammer a racy and a locked counter with the same workload."""

    with Stopwatch() as watch:
        racy = hammer(make_counter(synchronized=False), threads=threads, iterations=iterations)
        safe = hammer(make_counter(synchronized=True), threads=threads, iterations=iterations)
    return LabResult(
        name="race",
        output={
            "expected": safe.expected,
            "unsynchronized": racy.actual,
            "lost_updates": racy.lost_updates,
            "synchronized": safe.actual,
        },
        elapsed=watch.elapsed,
        tags=("threads", "safety"),
    )


def background_lab(*, scale: float = 1.0, lines: int = 5) -> LabResult:
    """Auto-save a growing document from a background task."""

    document: list[str] = []
    document_lock = threading.Lock()
    saves: list[str] = []

    def _save() -> None:
        with document_lock:
            snapshot = "".join(document).strip()
        saves.append(snapshot or "<empty>")

    with Stopwatch() as watch:
        with BackgroundTask(_save, interval=1.0 * scale, name="autosave") as saver:
            for index in range(1, lines + 1):
                with document_lock:
                    document.append(f"Line {index}\n")
                sleep(0.6 * scale)
        stopped = not saver.running
    return LabResult(
        name="background",
        output={"lines": len(document), "saves": len(saves), "stopped": stopped},
        elapsed=watch.elapsed,
        tags=("threads", "background"),
    )


def performance_lab(*, scale: float = 1.0) -> LabResult:
    """Compare two blocking calls run back to back against two threads."""

    duration = 2 * scale
    with Stopwatch() as sequential:
        simulate_blocking_io(duration)
        simulate_blocking_io(duration)

    threads = [
        threading.Thread(target=simulate_blocking_io, args=(duration,), name=f"io-{index}")
        for index in range(2)
    ]
    with Stopwatch() as parallel:
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    report = SpeedupReport(
        sequential=sequential.elapsed, parallel=parallel.elapsed, workers=2
    )
    return LabResult(
        name="performance",
        output={
            "sequential": round(report.sequential, 3),
            "parallel": round(report.parallel, 3),
            "speedup": round(report.speedup, 2),
        },
        elapsed=sequential.elapsed + parallel.elapsed,
        tags=("threads", "timing"),
    )


def parallel_lab(*, size: int = 200_000, seed: int = 42, chunksize: int = 10_000) -> LabResult:
    """Transform a list sequentially and on the pool, then compare."""

    rng = random.Random(seed)
    numbers = [rng.randrange(1000) for _ in range(size)]
    capabilities = detect_capabilities()

    with Stopwatch() as sequential:
        expected = [sin_sqrt(number) for number in numbers]
    with Stopwatch() as parallel:
        actual = parallel_map(
            sin_sqrt,
            numbers,
            workers=capabilities.suggested_cpu_workers,
            chunksize=chunksize,
        )

    report = SpeedupReport(
        sequential=sequential.elapsed,
        parallel=parallel.elapsed,
        workers=capabilities.cpu_count,
    )
    return LabResult(
        name="parallel",
        output={
            "items": size,
            "results_match": expected == actual,
            "speedup": round(report.speedup, 2),
            "efficiency": round(report.efficiency, 3),
            "gil_enabled": capabilities.gil_enabled,
        },
        elapsed=sequential.elapsed + parallel.elapsed,
        tags=("pool", "data"),
    )


def lifecycle_lab(*, scale: float = 1.0) -> LabResult:
    """Record the states a single worker passes through for one task."""

    recorder = LifecycleRecorder()
    with Stopwatch() as watch:
        pool = WorkerPool(1, config=_lab_config(), name="lifecycle")
        pool.add_listener(recorder)
        pool.submit(simulate_blocking_io, 2 * scale).result()
        pool.shutdown(graceful=True)
    return LabResult(
        name="lifecycle",
        output={"transitions": recorder.transitions(0)},
        elapsed=watch.elapsed,
        tags=("worker", "lifecycle"),
    )


@dataclass(frozen=True)
class Lab:
    name: str
    summary: str
    entrypoint: Callable[..., LabResult]
    scaled: bool = True
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    def execute(self, *, scale: float = 1.0) -> LabResult:
        if self.scaled:
            return self.entrypoint(scale=scale, **self.kwargs)
        return self.entrypoint(**self.kwargs)


LABS: dict[str, Lab] = {
    lab.name: lab
    for lab in (
        Lab("threads", "Thread subclass and Thread target", threads_lab, scaled=False),
        Lab("executor", "fixed pool draining ten jobs", executor_lab),
        Lab("futures", "handles collected after side work", futures_lab),
        Lab("composition", "two handles combined into one", composition_lab),
        Lab("race", "lost updates on an unguarded counter", race_lab, scaled=False),
        Lab("background", "periodic auto-save cancelled at teardown", background_lab),
        Lab("performance", "sequential versus threaded blocking calls", performance_lab),
        Lab("parallel", "order-preserving parallel map", parallel_lab, scaled=False),
        Lab("lifecycle", "worker state transitions", lifecycle_lab),
    )
}


def format_result(result: LabResult) -> str:
    """Render a result as a single human-readable line."""

    tag_suffix = f" [{' '.join(result.tags)}]" if result.tags else ""
    details = ", ".join(f"{key}={value}" for key, value in result.output.items())
    return f"{result.name}{tag_suffix} ({result.elapsed:.2f}s): {details}"


__all__ = [
    "LABS",
    "Lab",
    "LabResult",
    "background_lab",
    "composition_lab",
    "executor_lab",
    "format_result",
    "futures_lab",
    "lifecycle_lab",
    "parallel_lab",
    "performance_lab",
    "race_lab",
    "threads_lab",
]
