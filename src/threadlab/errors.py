from __future__ import annotations


class PoolError(RuntimeError):
    """Base class for every error raised by :mod:`threadlab`."""


class RejectedSubmission(PoolError):
    """Raised by ``submit`` once the pool stopped accepting work.

    A bounded queue that is full also rejects; ``submit`` never blocks.
    """


class TaskFailed(PoolError):
    """Wrap the exception a task raised while executing."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"task failed: {cause!r}")
        self.cause = cause


class TaskCancelled(PoolError):
    """Raised when reading the handle of a task discarded by a forced shutdown."""


class TaskInterrupted(PoolError):
    """Raised inside a task that reached a checkpoint after being cancelled."""


class AwaitTimeout(PoolError, TimeoutError):
    """The caller stopped waiting; the handle stays awaitable."""


class ShutdownTimeout(PoolError, TimeoutError):
    """Graceful shutdown did not finish within the requested bound."""

    def __init__(self, outstanding: int, timeout: float | None) -> None:
        super().__init__(
            f"{outstanding} task(s) still outstanding after {timeout}s shutdown"
        )
        self.outstanding = outstanding
        self.timeout = timeout


__all__ = [
    "PoolError",
    "RejectedSubmission",
    "TaskFailed",
    "TaskCancelled",
    "TaskInterrupted",
    "AwaitTimeout",
    "ShutdownTimeout",
]
