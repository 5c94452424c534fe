"""Write-once result cells handed out by :meth:`WorkerPool.submit`.

A :class:`TaskHandle` mirrors :class:`concurrent.futures.Future` but reports
failures through the :mod:`threadlab.errors` vocabulary: the task's own
exception is always wrapped in :class:`~threadlab.errors.TaskFailed`, and a
caller-side timeout raises :class:`~threadlab.errors.AwaitTimeout` without
touching the task.

>>> handle = TaskHandle()
>>> handle.set_result(21)
>>> handle.then(lambda value: value * 2).result()
42
>>> handle.result(timeout=0)
21
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Generic, Literal, TypeVar, cast

from .errors import AwaitTimeout, PoolError, TaskCancelled, TaskFailed

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")

HandleState = Literal["pending", "running", "succeeded", "failed", "cancelled"]

_RESOLVED: frozenset[str] = frozenset({"succeeded", "failed", "cancelled"})

logger = logging.getLogger(__name__)


class TaskHandle(Generic[T]):
    """One-shot cell holding a value, a captured failure, or nothing yet."""

    def __init__(self, *, task_id: int | None = None) -> None:
        self.task_id = task_id
        self._condition = threading.Condition()
        self._state: HandleState = "pending"
        self._value: T | None = None
        self._error: BaseException | None = None
        self._callbacks: list[Callable[[TaskHandle[T]], object]] = []

    # --- reading ----------------------------------------------------------

    @property
    def state(self) -> HandleState:
        with self._condition:
            return self._state

    def done(self) -> bool:
        with self._condition:
            return self._state in _RESOLVED

    def running(self) -> bool:
        with self._condition:
            return self._state == "running"

    def cancelled(self) -> bool:
        with self._condition:
            return self._state == "cancelled"

    def result(self, timeout: float | None = None) -> T:
        """Block until resolved and return the value.

        Raises :class:`TaskFailed` wrapping the task's exception,
        :class:`TaskCancelled` if the task was discarded, or
        :class:`AwaitTimeout` when *timeout* seconds pass first. ``timeout=0``
        polls without blocking.
        """

        with self._condition:
            self._wait_locked(timeout)
            if self._state == "succeeded":
                return self._value  # type: ignore[return-value]
            if self._state == "cancelled":
                raise TaskCancelled(self._describe("was discarded before it ran"))
            error = cast(BaseException, self._error)
        raise TaskFailed(error) from error

    def exception(self, timeout: float | None = None) -> BaseException | None:
        """Return the original exception of a failed task, or ``None``."""

        with self._condition:
            self._wait_locked(timeout)
            if self._state == "cancelled":
                raise TaskCancelled(self._describe("was discarded before it ran"))
            return self._error

    def wait(self, timeout: float | None = None) -> bool:
        """Block until resolved without raising; return whether it resolved."""

        with self._condition:
            return self._condition.wait_for(self._resolved_locked, timeout)

    # --- writing (pool side) ----------------------------------------------

    def set_running(self) -> bool:
        """Claim the handle for execution; ``False`` if it was cancelled."""

        with self._condition:
            if self._state != "pending":
                return False
            self._state = "running"
            return True

    def set_result(self, value: T) -> None:
        self._resolve("succeeded", value=value)

    def set_exception(self, error: BaseException) -> None:
        self._resolve("failed", error=error)

    def cancel(self) -> bool:
        """Cancel a handle whose task has not started yet."""

        with self._condition:
            if self._state != "pending":
                return self._state == "cancelled"
            callbacks = self._settle_locked("cancelled", None, None)
        self._run_callbacks(callbacks)
        return True

    # --- composition ------------------------------------------------------

    def add_done_callback(self, callback: Callable[[TaskHandle[T]], object]) -> None:
        """Invoke *callback* with this handle once it resolves.

        Callbacks registered after resolution run immediately in the caller's
        thread; otherwise they run in the thread that resolves the handle.
        """

        with self._condition:
            if self._state not in _RESOLVED:
                self._callbacks.append(callback)
                return
        self._invoke(callback)

    def then(self, func: Callable[[T], U]) -> TaskHandle[U]:
        """Return a handle resolved with ``func(value)`` once this one succeeds."""

        child: TaskHandle[U] = TaskHandle()

        def _chain(parent: TaskHandle[T]) -> None:
            _forward(parent, child, lambda: func(parent._value))  # type: ignore[arg-type]

        self.add_done_callback(_chain)
        return child

    def combine(
        self, other: TaskHandle[U], func: Callable[[T, U], R]
    ) -> TaskHandle[R]:
        """Return a handle resolved with ``func(mine, theirs)`` when both succeed.

        No thread blocks while waiting; the second handle to resolve computes
        the combined value.
        """

        child: TaskHandle[R] = TaskHandle()
        lock = threading.Lock()
        remaining = [2]

        def _on_done(_: TaskHandle[Any]) -> None:
            with lock:
                remaining[0] -= 1
                if remaining[0]:
                    return
            for source in (self, other):
                if source._state != "succeeded":
                    _propagate(source, child)
                    return
            _forward(
                self,
                child,
                lambda: func(self._value, other._value),  # type: ignore[arg-type]
            )

        self.add_done_callback(_on_done)
        other.add_done_callback(_on_done)
        return child

    # --- internals --------------------------------------------------------

    def _resolved_locked(self) -> bool:
        return self._state in _RESOLVED

    def _wait_locked(self, timeout: float | None) -> None:
        if not self._condition.wait_for(self._resolved_locked, timeout):
            raise AwaitTimeout(self._describe(f"not resolved within {timeout}s"))

    def _resolve(
        self,
        state: HandleState,
        *,
        value: T | None = None,
        error: BaseException | None = None,
    ) -> None:
        with self._condition:
            if self._state in _RESOLVED:
                raise PoolError(self._describe(f"already {self._state}"))
            callbacks = self._settle_locked(state, value, error)
        self._run_callbacks(callbacks)

    def _settle_locked(
        self,
        state: HandleState,
        value: T | None,
        error: BaseException | None,
    ) -> list[Callable[[TaskHandle[T]], object]]:
        self._state = state
        self._value = value
        self._error = error
        callbacks = self._callbacks
        self._callbacks = []
        self._condition.notify_all()
        return callbacks

    def _run_callbacks(
        self, callbacks: list[Callable[[TaskHandle[T]], object]]
    ) -> None:
        for callback in callbacks:
            self._invoke(callback)

    def _invoke(self, callback: Callable[[TaskHandle[T]], object]) -> None:
        try:
            callback(self)
        except Exception:
            logger.exception("done callback %r raised for %s", callback, self)

    def _describe(self, message: str) -> str:
        if self.task_id is None:
            return f"handle {message}"
        return f"task #{self.task_id} {message}"

    def __repr__(self) -> str:
        return f"<TaskHandle task_id={self.task_id} state={self._state}>"


def _propagate(source: TaskHandle[Any], target: TaskHandle[Any]) -> None:
    if source._state == "cancelled":
        target.cancel()
    else:
        target.set_exception(cast(BaseException, source._error))


def _forward(
    source: TaskHandle[Any],
    target: TaskHandle[Any],
    compute: Callable[[], Any],
) -> None:
    if source._state != "succeeded":
        _propagate(source, target)
        return
    try:
        value = compute()
    except BaseException as exc:
        target.set_exception(exc)
    else:
        target.set_result(value)


__all__ = ["HandleState", "TaskHandle"]
