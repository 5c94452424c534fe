"""Cooperative interruption for tasks running on pool workers.

Python threads cannot be interrupted from the outside, so forced shutdown works
through a :class:`CancellationToken` bound to each task. Tasks observe it at
cooperative points: :func:`sleep`, :func:`checkpoint`, or by polling
``current_token().cancelled`` themselves. A task that never checks runs to
completion regardless.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from .errors import TaskInterrupted


class CancellationToken:
    """One-way flag flipped when the owner wants work to stop."""

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to *timeout* seconds; return ``True`` once cancelled."""

        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TaskInterrupted(self._reason or "task interrupted")

    def __repr__(self) -> str:  # pragma: no cover - convenience
        return f"CancellationToken(cancelled={self.cancelled})"


# Tokens that nobody cancels; returned when code runs outside a pool task.
_DETACHED = CancellationToken()
_CURRENT_TOKEN: ContextVar[CancellationToken] = ContextVar(
    "threadlab_cancellation_token", default=_DETACHED
)


def current_token() -> CancellationToken:
    """Return the token of the task running in this thread."""

    return _CURRENT_TOKEN.get()


@contextmanager
def bind_token(token: CancellationToken) -> Iterator[CancellationToken]:
    """Make *token* the current token for the duration of the block."""

    marker = _CURRENT_TOKEN.set(token)
    try:
        yield token
    finally:
        _CURRENT_TOKEN.reset(marker)


def checkpoint() -> None:
    """Raise :class:`TaskInterrupted` if the current task was cancelled."""

    current_token().raise_if_cancelled()


def sleep(seconds: float) -> None:
    """Interruptible replacement for :func:`time.sleep` inside tasks.

    >>> sleep(0)
    """

    token = current_token()
    if token is _DETACHED:
        time.sleep(seconds)
        return
    if token.wait(seconds):
        token.raise_if_cancelled()


__all__ = [
    "CancellationToken",
    "bind_token",
    "checkpoint",
    "current_token",
    "sleep",
]
