"""Small, explicit concurrency primitives for learning how thread pools work.

`threadlab` centres on :class:`WorkerPool`, a fixed-size pool of worker
threads fed by a FIFO queue that hands out write-once :class:`TaskHandle`
objects and shuts down either gracefully or by force. The surrounding modules
cover cooperative cancellation, background tasks, racy versus locked counters,
parallel maps and an asyncio bridge; see individual modules for details.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from .async_bridge import gather_handles, run_in_pool, wrap_handle
from .background import BackgroundTask
from .cancellation import CancellationToken, checkpoint, current_token, sleep
from .capabilities import RuntimeCapabilities, detect_capabilities
from .config import PoolConfig
from .counters import (
    RaceReport,
    SynchronizedCounter,
    UnsynchronizedCounter,
    hammer,
    make_counter,
)
from .errors import (
    AwaitTimeout,
    PoolError,
    RejectedSubmission,
    ShutdownTimeout,
    TaskCancelled,
    TaskFailed,
    TaskInterrupted,
)
from .events import LifecycleRecorder, PoolEvent, observe_pool
from .handle import TaskHandle
from .parallel import parallel_map
from .pool import PoolStats, Task, WorkerPool, WorkerSnapshot
from .run import Run, current_pool
from .timing import SpeedupReport, Stopwatch

__all__ = [
    "AwaitTimeout",
    "BackgroundTask",
    "CancellationToken",
    "LifecycleRecorder",
    "PoolConfig",
    "PoolError",
    "PoolEvent",
    "PoolStats",
    "RaceReport",
    "RejectedSubmission",
    "Run",
    "RuntimeCapabilities",
    "ShutdownTimeout",
    "SpeedupReport",
    "Stopwatch",
    "SynchronizedCounter",
    "Task",
    "TaskCancelled",
    "TaskFailed",
    "TaskHandle",
    "TaskInterrupted",
    "UnsynchronizedCounter",
    "WorkerPool",
    "WorkerSnapshot",
    "checkpoint",
    "current_pool",
    "current_token",
    "detect_capabilities",
    "gather_handles",
    "hammer",
    "make_counter",
    "observe_pool",
    "parallel_map",
    "run_in_pool",
    "sleep",
    "wrap_handle",
]

try:
    __version__ = version("threadlab")
except PackageNotFoundError:  # pragma: no cover - during local dev
    __version__ = "0.0.0"
