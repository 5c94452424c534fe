from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_THREAD_NAME_PREFIX = "threadlab-worker"
DEFAULT_SHUTDOWN_TIMEOUT = 10.0


@dataclass(slots=True)
class PoolConfig:
    """User-tunable settings applied when a :class:`WorkerPool` is built.

    ``max_workers`` left as ``None`` lets the runtime capabilities pick a size;
    ``queue_size`` of ``0`` keeps the task queue unbounded.
    """

    max_workers: int | None = None
    queue_size: int = 0
    thread_name_prefix: str = DEFAULT_THREAD_NAME_PREFIX
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @classmethod
    def from_env(cls) -> PoolConfig:
        """Load overrides from environment variables.

        Supported variables (all optional):

        ``THREADLAB_MAX_WORKERS``
            Positive integer fixing the worker count of new pools.
        ``THREADLAB_QUEUE_SIZE``
            Non-negative integer bounding the task queue (``0`` = unbounded).
        ``THREADLAB_THREAD_NAME_PREFIX``
            Prefix used when naming worker threads.
        ``THREADLAB_SHUTDOWN_TIMEOUT``
            Seconds ``close()`` waits for a graceful drain before escalating.
        """

        def _parse_int(value: str | None, *, minimum: int) -> int | None:
            if value is None:
                return None
            try:
                parsed = int(value)
            except ValueError:
                return None
            return parsed if parsed >= minimum else None

        def _parse_float(value: str | None) -> float | None:
            if value is None:
                return None
            try:
                parsed = float(value)
            except ValueError:
                return None
            return parsed if parsed >= 0 else None

        env = os.environ

        max_workers = _parse_int(env.get("THREADLAB_MAX_WORKERS"), minimum=1)
        queue_size = _parse_int(env.get("THREADLAB_QUEUE_SIZE"), minimum=0)
        prefix = env.get("THREADLAB_THREAD_NAME_PREFIX", "").strip()
        shutdown_timeout = _parse_float(env.get("THREADLAB_SHUTDOWN_TIMEOUT"))

        return cls(
            max_workers=max_workers,
            queue_size=queue_size if queue_size is not None else 0,
            thread_name_prefix=prefix or DEFAULT_THREAD_NAME_PREFIX,
            shutdown_timeout=(
                shutdown_timeout
                if shutdown_timeout is not None
                else DEFAULT_SHUTDOWN_TIMEOUT
            ),
        )
