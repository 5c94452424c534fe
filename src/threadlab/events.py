from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from .pool import WorkerPool

EventKind = Literal[
    "submitted",
    "rejected",
    "started",
    "succeeded",
    "failed",
    "discarded",
    "worker_state",
    "shutdown",
]

EventListener = Callable[["PoolEvent"], None]


@dataclass(frozen=True, slots=True)
class PoolEvent:
    kind: EventKind
    pool: str
    task_id: int | None = None
    worker: int | None = None
    state: str | None = None
    detail: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Represent the event as plain data for logging or testing."""

        return {
            "kind": self.kind,
            "pool": self.pool,
            "task_id": self.task_id,
            "worker": self.worker,
            "state": self.state,
            "detail": self.detail,
        }


class LifecycleRecorder:
    """Listener collecting every state each worker passes through.

    Workers start ``idle``, so each recorded history begins there.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history: dict[int, list[str]] = {}

    def __call__(self, event: PoolEvent) -> None:
        if event.kind != "worker_state" or event.worker is None:
            return
        with self._lock:
            history = self._history.setdefault(event.worker, ["idle"])
            if history[-1] != event.state:
                history.append(str(event.state))

    def transitions(self, worker: int) -> list[str]:
        with self._lock:
            return list(self._history.get(worker, ["idle"]))

    def workers(self) -> list[int]:
        with self._lock:
            return sorted(self._history)


@contextmanager
def observe_pool(
    pool: WorkerPool,
    *,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
) -> Iterator[None]:
    """Context manager that logs pool events during its scope."""

    active_logger = logger or logging.getLogger("threadlab.pool")

    def _listener(event: PoolEvent) -> None:
        active_logger.log(
            level,
            "pool=%s event=%s task=%s worker=%s state=%s detail=%s",
            event.pool,
            event.kind,
            event.task_id,
            event.worker,
            event.state,
            event.detail,
        )

    pool.add_listener(_listener)
    try:
        yield
    finally:
        pool.remove_listener(_listener)


__all__ = [
    "EventKind",
    "EventListener",
    "LifecycleRecorder",
    "PoolEvent",
    "observe_pool",
]
