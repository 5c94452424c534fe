"""Fixed-size worker pool with handle-based task submission.

``WorkerPool`` owns a FIFO task queue and ``N`` worker threads that compete to
dequeue from it. All access to the queue and to worker states goes through a
single lock; workers park on a condition variable while the queue is empty.
Each submission returns a :class:`~threadlab.handle.TaskHandle` that the
executing worker resolves exactly once.

Lifecycle: ``accepting`` until a shutdown is requested, then ``draining``
while workers finish what they hold, then ``stopped`` once the last worker
exits. A graceful shutdown lets the queue drain; a forced shutdown discards
queued tasks and cancels the token of every in-flight task.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, ParamSpec, TypeVar

from .cancellation import CancellationToken, bind_token
from .capabilities import detect_capabilities
from .config import PoolConfig
from .errors import PoolError, RejectedSubmission, ShutdownTimeout
from .events import EventListener, PoolEvent
from .handle import TaskHandle

T = TypeVar("T")
InputT = TypeVar("InputT")
P = ParamSpec("P")

PoolState = Literal["accepting", "draining", "stopped"]
WorkerState = Literal["idle", "running", "stopped"]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Task(Generic[T]):
    """A submitted unit of work and the handle it resolves."""

    task_id: int
    fn: Callable[..., T]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    handle: TaskHandle[T]
    token: CancellationToken = field(default_factory=CancellationToken)

    def run(self) -> bool:
        """Execute once and resolve the handle; return whether it succeeded."""

        with bind_token(self.token):
            try:
                value = self.fn(*self.args, **self.kwargs)
            except BaseException as exc:
                logger.debug("task #%d raised %r", self.task_id, exc, exc_info=exc)
                self.handle.set_exception(exc)
                return False
        self.handle.set_result(value)
        return True


@dataclass(slots=True)
class Worker:
    index: int
    thread: threading.Thread | None = None
    state: WorkerState = "idle"
    current: Task[Any] | None = None
    completed: int = 0


@dataclass(frozen=True, slots=True)
class WorkerSnapshot:
    index: int
    name: str
    state: WorkerState
    task_id: int | None
    completed: int


@dataclass(frozen=True, slots=True)
class PoolStats:
    state: PoolState
    max_workers: int
    submitted: int
    rejected: int
    pending: int
    active: int
    completed: int
    failed: int
    discarded: int


class WorkerPool:
    """Bounded pool of worker threads fed by a shared FIFO queue.

    ``max_workers`` overrides ``config.max_workers``; when both are unset the
    runtime's suggested I/O worker count is used.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        *,
        config: PoolConfig | None = None,
        name: str | None = None,
    ) -> None:
        self._config = config or PoolConfig.from_env()
        workers = max_workers if max_workers is not None else self._config.max_workers
        if workers is None:
            workers = detect_capabilities().suggested_io_workers
        if workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {workers}")

        self._max_workers = workers
        self._name = name or self._config.thread_name_prefix
        self._queue_size = self._config.queue_size
        self._lock = threading.Lock()
        self._work_ready = threading.Condition(self._lock)
        self._terminated = threading.Condition(self._lock)
        self._queue: deque[Task[Any]] = deque()
        self._state: PoolState = "accepting"
        self._finished = False
        self._sequence = itertools.count()
        self._listeners: list[EventListener] = []
        self._live_workers = workers
        self._submitted = 0
        self._rejected = 0
        self._completed = 0
        self._failed = 0
        self._discarded = 0

        self._workers = [Worker(index=index) for index in range(workers)]
        for worker in self._workers:
            thread = threading.Thread(
                target=self._work,
                name=f"{self._name}-{worker.index}",
                args=(worker,),
                daemon=True,
            )
            worker.thread = thread
            thread.start()
        logger.debug("pool %s started %d workers", self._name, workers)

    def __enter__(self) -> WorkerPool:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # --- submission -------------------------------------------------------

    def submit(
        self, fn: Callable[P, T], /, *args: P.args, **kwargs: P.kwargs
    ) -> TaskHandle[T]:
        """Queue ``fn(*args, **kwargs)`` and return its pending handle.

        Never blocks. Raises :class:`RejectedSubmission` once shutdown began or
        when a bounded queue is full; nothing is enqueued in that case.
        """

        reason: str | None = None
        with self._lock:
            if self._state != "accepting":
                reason = f"pool {self._name!r} is {self._state}"
            elif self._queue_size and len(self._queue) >= self._queue_size:
                reason = f"pool {self._name!r} queue is full ({self._queue_size})"
            if reason is not None:
                self._rejected += 1
            else:
                task_id = next(self._sequence)
                handle: TaskHandle[T] = TaskHandle(task_id=task_id)
                self._queue.append(Task(task_id, fn, args, kwargs, handle))
                self._submitted += 1
                self._work_ready.notify()

        if reason is not None:
            self._emit(PoolEvent("rejected", self._name, detail=reason))
            raise RejectedSubmission(f"{reason}; submission rejected")
        self._emit(PoolEvent("submitted", self._name, task_id=task_id))
        return handle

    def map(
        self, fn: Callable[[InputT], T], iterable: Iterable[InputT]
    ) -> list[TaskHandle[T]]:
        """Submit ``fn(item)`` for every item; handles keep submission order.

        Like :meth:`submit` this never blocks, so on a bounded queue it raises
        :class:`RejectedSubmission` once the queue is full. Use
        :func:`~threadlab.parallel.parallel_map` for throttled submission.
        """

        return [self.submit(fn, item) for item in iterable]

    # --- shutdown ---------------------------------------------------------

    def shutdown(
        self, graceful: bool = True, timeout: float | None = None
    ) -> bool | list[Task[Any]]:
        """Stop accepting work and wind the workers down.

        Graceful: queued and in-flight tasks run to completion; blocks up to
        *timeout* seconds (``None`` waits indefinitely) and returns whether
        every worker stopped in time.

        Forced (``graceful=False``): discards queued tasks, resolving their
        handles as cancelled, and cancels the token of each in-flight task.
        Returns the discarded tasks. Waits up to *timeout* seconds for the
        workers to exit when a timeout is given, otherwise returns at once.

        Calling either form on a stopped pool is a no-op (``True`` or ``[]``).
        """

        if not graceful:
            return self.shutdown_now(timeout=timeout)

        with self._lock:
            if self._state == "stopped":
                return True
            began = self._begin_shutdown_locked()
        if began:
            logger.info("pool %s draining", self._name)
            self._emit(PoolEvent("shutdown", self._name, state="draining"))
        return self.await_termination(timeout)

    def shutdown_now(self, timeout: float | None = None) -> list[Task[Any]]:
        """Forced shutdown; see :meth:`shutdown`."""

        with self._lock:
            if self._state == "stopped":
                return []
            self._begin_shutdown_locked()
            discarded = list(self._queue)
            self._queue.clear()
            self._discarded += len(discarded)
            in_flight = [
                worker.current for worker in self._workers if worker.current is not None
            ]

        logger.info(
            "pool %s forced shutdown: %d discarded, %d interrupted",
            self._name,
            len(discarded),
            len(in_flight),
        )
        for task in in_flight:
            task.token.cancel(f"pool {self._name!r} shut down")
        for task in discarded:
            task.handle.cancel()
            self._emit(PoolEvent("discarded", self._name, task_id=task.task_id))
        self._emit(
            PoolEvent(
                "shutdown",
                self._name,
                state="draining",
                detail=f"forced; discarded={len(discarded)}",
            )
        )
        if timeout is not None:
            self.await_termination(timeout)
        return discarded

    def await_termination(self, timeout: float | None = None) -> bool:
        """Block until every worker stopped; ``False`` if *timeout* ran out."""

        if timeout is None or timeout > 0:
            self._ensure_not_worker()
        with self._lock:
            return self._terminated.wait_for(
                lambda: self._finished, timeout
            )

    def close(
        self, timeout: float | None = None, *, escalate: bool = True
    ) -> list[Task[Any]]:
        """Drain gracefully, escalating to a forced shutdown on timeout.

        *timeout* defaults to ``config.shutdown_timeout``. With
        ``escalate=False`` an overrun raises :class:`ShutdownTimeout` instead.
        Returns the tasks discarded by an escalation (empty when the drain
        finished in time).
        """

        limit = self._config.shutdown_timeout if timeout is None else timeout
        if self.shutdown(graceful=True, timeout=limit):
            return []
        outstanding = self.outstanding
        if not escalate:
            raise ShutdownTimeout(outstanding, limit)
        logger.warning(
            "pool %s did not drain within %ss (%d outstanding); forcing shutdown",
            self._name,
            limit,
            outstanding,
        )
        return self.shutdown_now()

    # --- introspection ----------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def state(self) -> PoolState:
        with self._lock:
            return self._state

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def active(self) -> int:
        with self._lock:
            return self._active_locked()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def outstanding(self) -> int:
        with self._lock:
            return len(self._queue) + self._active_locked()

    @property
    def workers(self) -> list[WorkerSnapshot]:
        with self._lock:
            return [
                WorkerSnapshot(
                    index=worker.index,
                    name=worker.thread.name if worker.thread else "",
                    state=worker.state,
                    task_id=worker.current.task_id if worker.current else None,
                    completed=worker.completed,
                )
                for worker in self._workers
            ]

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                state=self._state,
                max_workers=self._max_workers,
                submitted=self._submitted,
                rejected=self._rejected,
                pending=len(self._queue),
                active=self._active_locked(),
                completed=self._completed,
                failed=self._failed,
                discarded=self._discarded,
            )

    def is_worker_thread(self, thread: threading.Thread | None = None) -> bool:
        candidate = thread or threading.current_thread()
        return any(worker.thread is candidate for worker in self._workers)

    # --- listeners --------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:  # pragma: no cover - listener not registered
                pass

    # --- worker loop ------------------------------------------------------

    def _work(self, worker: Worker) -> None:
        while True:
            with self._lock:
                while not self._queue and self._state == "accepting":
                    self._work_ready.wait()
                if not self._queue:
                    worker.state = "stopped"
                    break
                task = self._queue.popleft()
                if not task.handle.set_running():
                    # Cancelled by its submitter while still queued.
                    self._discarded += 1
                    continue
                worker.state = "running"
                worker.current = task

            self._emit(
                PoolEvent(
                    "started", self._name, task_id=task.task_id, worker=worker.index
                )
            )
            self._emit_worker_state(worker, "running")
            succeeded = task.run()

            with self._lock:
                worker.current = None
                worker.completed += 1
                worker.state = "idle"
                self._completed += 1
                if not succeeded:
                    self._failed += 1

            self._emit(
                PoolEvent(
                    "succeeded" if succeeded else "failed",
                    self._name,
                    task_id=task.task_id,
                    worker=worker.index,
                )
            )
            self._emit_worker_state(worker, "idle")

        self._emit_worker_state(worker, "stopped")
        with self._lock:
            self._live_workers -= 1
            if self._live_workers:
                return
            self._state = "stopped"
        logger.info("pool %s stopped", self._name)
        self._emit(PoolEvent("shutdown", self._name, state="stopped"))
        with self._lock:
            self._finished = True
            self._terminated.notify_all()

    # --- internals --------------------------------------------------------

    def _begin_shutdown_locked(self) -> bool:
        if self._state != "accepting":
            return False
        self._state = "draining"
        self._work_ready.notify_all()
        return True

    def _active_locked(self) -> int:
        return sum(1 for worker in self._workers if worker.current is not None)

    def _ensure_not_worker(self) -> None:
        if self.is_worker_thread():
            raise PoolError(
                f"a worker of pool {self._name!r} cannot wait for the pool to stop"
            )

    def _emit_worker_state(self, worker: Worker, state: WorkerState) -> None:
        self._emit(
            PoolEvent("worker_state", self._name, worker=worker.index, state=state)
        )

    def _emit(self, event: PoolEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("pool listener %r raised on %s", listener, event.kind)

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return (
            f"WorkerPool(name={self._name!r}, max_workers={self._max_workers}, "
            f"state={self._state!r})"
        )


__all__ = [
    "PoolState",
    "PoolStats",
    "Task",
    "Worker",
    "WorkerPool",
    "WorkerSnapshot",
    "WorkerState",
]
