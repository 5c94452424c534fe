from __future__ import annotations

import os
from collections.abc import Callable, Iterator

import pytest

from threadlab import PoolConfig, WorkerPool


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("THREADLAB_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_pool() -> Iterator[Callable[..., WorkerPool]]:
    pools: list[WorkerPool] = []

    def _make(max_workers: int = 2, **config_overrides: object) -> WorkerPool:
        config = PoolConfig(**config_overrides)  # type: ignore[arg-type]
        pool = WorkerPool(max_workers, config=config, name=f"test-pool-{len(pools)}")
        pools.append(pool)
        return pool

    yield _make
    for pool in pools:
        pool.shutdown_now(timeout=5)
