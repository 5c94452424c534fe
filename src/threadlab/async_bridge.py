from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar

from .errors import TaskCancelled, TaskFailed
from .handle import TaskHandle
from .pool import WorkerPool

T = TypeVar("T")
P = ParamSpec("P")


def wrap_handle(
    handle: TaskHandle[T], *, loop: asyncio.AbstractEventLoop | None = None
) -> asyncio.Future[T]:
    """Expose a :class:`TaskHandle` as an awaitable :class:`asyncio.Future`.

    Failures surface as the same :class:`TaskFailed` / :class:`TaskCancelled`
    errors ``handle.result()`` raises. Cancelling the asyncio future only stops
    the waiting; the task keeps running on its worker.
    """

    target_loop = loop or asyncio.get_running_loop()
    future: asyncio.Future[T] = target_loop.create_future()

    def _copy(source: TaskHandle[T]) -> None:
        if future.done():
            return
        try:
            value = source.result(timeout=0)
        except (TaskFailed, TaskCancelled) as exc:
            future.set_exception(exc)
        else:
            future.set_result(value)

    def _on_done(source: TaskHandle[T]) -> None:
        target_loop.call_soon_threadsafe(_copy, source)

    handle.add_done_callback(_on_done)
    return future


async def run_in_pool(
    pool: WorkerPool, func: Callable[P, T], /, *args: P.args, **kwargs: P.kwargs
) -> T:
    """Submit *func* to *pool* and await its result without blocking the loop."""

    return await wrap_handle(pool.submit(func, *args, **kwargs))


async def gather_handles(*handles: TaskHandle[Any]) -> list[Any]:
    """Await several handles concurrently; results keep argument order."""

    if not handles:
        return []
    return list(await asyncio.gather(*(wrap_handle(handle) for handle in handles)))


__all__ = ["gather_handles", "run_in_pool", "wrap_handle"]
