"""Property-based coverage guarding the pool's execution invariants.

- Every accepted submission yields a handle that resolves, absent forced shutdown.
- No task executes twice and no two workers run the same task.
- A forced shutdown accounts for every submission as either run or discarded.
"""

from __future__ import annotations

import threading
from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from threadlab import PoolConfig, WorkerPool

WORKERS = st.integers(min_value=1, max_value=4)
TASKS = st.integers(min_value=0, max_value=40)


@given(workers=WORKERS, tasks=TASKS)
@settings(max_examples=30, deadline=None)
def test_every_task_runs_exactly_once(workers: int, tasks: int) -> None:
    runs: Counter[int] = Counter()
    lock = threading.Lock()

    def _record(index: int) -> int:
        with lock:
            runs[index] += 1
        return index

    pool = WorkerPool(workers, config=PoolConfig())
    try:
        handles = [pool.submit(_record, index) for index in range(tasks)]
        assert len(handles) == tasks
        assert [handle.result(timeout=10) for handle in handles] == list(range(tasks))
        assert pool.shutdown(timeout=10) is True
    finally:
        pool.shutdown_now(timeout=10)

    assert runs == Counter(range(tasks))
    assert pool.stats().completed == tasks


@given(workers=WORKERS, tasks=TASKS)
@settings(max_examples=30, deadline=None)
def test_forced_shutdown_accounts_for_every_submission(workers: int, tasks: int) -> None:
    release = threading.Event()
    pool = WorkerPool(workers, config=PoolConfig())
    try:
        handles = [pool.submit(release.wait, 5) for _ in range(tasks)]
        discarded = pool.shutdown_now()
        release.set()
        assert pool.await_termination(10) is True
    finally:
        release.set()
        pool.shutdown_now(timeout=10)

    stats = pool.stats()
    ran = sum(1 for handle in handles if not handle.cancelled())
    assert len(discarded) + ran == tasks
    assert stats.discarded + stats.completed == stats.submitted == tasks
