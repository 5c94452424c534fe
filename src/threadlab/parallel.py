"""Order-preserving parallel map over a worker pool.

>>> parallel_map(abs, [-3, 1, -2], workers=2)
[3, 1, 2]
>>> parallel_map(str.upper, ["a", "b", "c"], workers=2, chunksize=2)
['A', 'B', 'C']
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from typing import TypeVar

from .capabilities import detect_capabilities
from .config import PoolConfig
from .errors import RejectedSubmission
from .handle import TaskHandle
from .pool import WorkerPool
from .run import current_pool

T = TypeVar("T")
InputT = TypeVar("InputT")


def parallel_map(
    func: Callable[[InputT], T],
    items: Iterable[InputT],
    *,
    pool: WorkerPool | None = None,
    workers: int | None = None,
    chunksize: int = 1,
    timeout: float | None = None,
) -> list[T]:
    """Apply *func* to every item on pool workers; results keep input order.

    Uses *pool* if given, else the pool of the innermost active
    :class:`~threadlab.run.Run`, else a temporary pool of *workers* threads
    (default: the runtime's suggested CPU worker count). Items are shipped in
    chunks of *chunksize* to amortise per-task overhead. The first failing
    chunk raises :class:`~threadlab.errors.TaskFailed`. A pool with a bounded
    queue gets chunks only as fast as it frees room for them.
    """

    if chunksize < 1:
        raise ValueError(f"chunksize must be at least 1, got {chunksize}")
    chunks = _chunked(list(items), chunksize)
    if not chunks:
        return []

    target = pool or current_pool()
    if target is not None:
        return _collect(target, func, chunks, timeout)

    size = workers or detect_capabilities().suggested_cpu_workers
    config = replace(PoolConfig.from_env(), queue_size=0)
    with WorkerPool(
        min(size, len(chunks)), config=config, name="threadlab-parallel"
    ) as scoped:
        return _collect(scoped, func, chunks, timeout)


def _collect(
    pool: WorkerPool,
    func: Callable[[InputT], T],
    chunks: list[Sequence[InputT]],
    timeout: float | None,
) -> list[T]:
    window: int | None = None
    if pool.config.queue_size:
        window = pool.max_workers + pool.config.queue_size
    in_flight: deque[TaskHandle[list[T]]] = deque()
    results: list[T] = []
    for chunk in chunks:
        if window is not None and len(in_flight) >= window:
            results.extend(in_flight.popleft().result(timeout))
        while True:
            try:
                in_flight.append(pool.submit(_apply_chunk, func, chunk))
                break
            except RejectedSubmission:
                # Workers may not have claimed queued chunks yet.
                if not in_flight or pool.state != "accepting":
                    raise
                results.extend(in_flight.popleft().result(timeout))
    while in_flight:
        results.extend(in_flight.popleft().result(timeout))
    return results


def _apply_chunk(func: Callable[[InputT], T], chunk: Sequence[InputT]) -> list[T]:
    return [func(item) for item in chunk]


def _chunked(items: list[InputT], size: int) -> list[Sequence[InputT]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


__all__ = ["parallel_map"]
