from __future__ import annotations

import asyncio

import pytest

from threadlab import TaskCancelled, TaskFailed, TaskHandle, gather_handles, run_in_pool, wrap_handle
from threadlab.workloads import fetch_flight, fetch_hotel


def test_run_in_pool_awaits_result(make_pool) -> None:
    pool = make_pool(2)

    async def main() -> int:
        return await run_in_pool(pool, pow, 3, 4)

    assert asyncio.run(main()) == 81


def test_wrap_handle_surfaces_task_failures(make_pool) -> None:
    pool = make_pool(1)

    def _explode() -> None:
        raise LookupError("missing")

    async def main() -> None:
        await wrap_handle(pool.submit(_explode))

    with pytest.raises(TaskFailed) as excinfo:
        asyncio.run(main())
    assert isinstance(excinfo.value.cause, LookupError)


def test_wrap_handle_of_resolved_and_cancelled_handles() -> None:
    done: TaskHandle[str] = TaskHandle()
    done.set_result("value")
    discarded: TaskHandle[str] = TaskHandle()
    discarded.cancel()

    async def main() -> str:
        with pytest.raises(TaskCancelled):
            await wrap_handle(discarded)
        return await wrap_handle(done)

    assert asyncio.run(main()) == "value"


def test_gather_handles_keeps_argument_order(make_pool) -> None:
    pool = make_pool(2)

    async def main() -> list[str]:
        flight = pool.submit(fetch_flight, "Paris", 0.02)
        hotel = pool.submit(fetch_hotel, "Paris", 0.01)
        return await gather_handles(flight, hotel)

    assert asyncio.run(main()) == ["Flight to Paris", "Hotel in Paris"]


def test_gather_handles_without_arguments() -> None:
    assert asyncio.run(gather_handles()) == []
