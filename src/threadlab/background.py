"""Detachable periodic work that is cancelled explicitly at teardown.

:class:`BackgroundTask` runs a callable every ``interval`` seconds on a daemon
thread until :meth:`BackgroundTask.cancel` is called. Tasks still running when
the interpreter exits are cancelled by an ``atexit`` hook rather than being
killed mid-iteration.
"""

from __future__ import annotations

import atexit
import logging
import threading
import weakref
from collections.abc import Callable

from .cancellation import CancellationToken, bind_token
from .errors import TaskInterrupted

logger = logging.getLogger(__name__)

_LIVE_TASKS: weakref.WeakSet[BackgroundTask] = weakref.WeakSet()
_LOCK = threading.Lock()
_ATEXIT_REGISTERED = False


class BackgroundTask:
    def __init__(
        self,
        action: Callable[[], object],
        *,
        interval: float,
        name: str = "threadlab-background",
        run_immediately: bool = False,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._action = action
        self._interval = interval
        self._name = name
        self._run_immediately = run_immediately
        self._token = CancellationToken()
        self._thread: threading.Thread | None = None
        self._runs = 0
        self._errors: list[Exception] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def runs(self) -> int:
        with self._lock:
            return self._runs

    @property
    def errors(self) -> list[Exception]:
        with self._lock:
            return list(self._errors)

    def start(self) -> BackgroundTask:
        if self._thread is not None:
            raise RuntimeError(f"background task {self._name!r} already started")
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        with _LOCK:
            _LIVE_TASKS.add(self)
        _register_atexit()
        self._thread.start()
        return self

    def cancel(self, timeout: float | None = None) -> bool:
        """Signal the loop to stop and wait up to *timeout* for it to exit."""

        self._token.cancel(f"background task {self._name!r} cancelled")
        with _LOCK:
            _LIVE_TASKS.discard(self)
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def __enter__(self) -> BackgroundTask:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cancel()
        return False

    def _loop(self) -> None:
        with bind_token(self._token):
            if self._run_immediately:
                self._tick()
            while not self._token.wait(self._interval):
                self._tick()
        logger.debug("background task %s stopped after %d runs", self._name, self._runs)

    def _tick(self) -> None:
        try:
            self._action()
        except TaskInterrupted:
            logger.debug("background task %s interrupted mid-run", self._name)
        except Exception as exc:
            logger.exception("background task %s failed", self._name)
            with self._lock:
                self._errors.append(exc)
        with self._lock:
            self._runs += 1


def cancel_all(timeout: float | None = 1.0) -> None:
    """Cancel every background task that is still running."""

    with _LOCK:
        tasks = list(_LIVE_TASKS)
    for task in tasks:
        task.cancel(timeout)


def _register_atexit() -> None:
    global _ATEXIT_REGISTERED
    if _ATEXIT_REGISTERED:
        return
    atexit.register(cancel_all)
    _ATEXIT_REGISTERED = True


__all__ = ["BackgroundTask", "cancel_all"]
