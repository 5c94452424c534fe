from __future__ import annotations

from contextvars import ContextVar
from typing import cast

from .config import PoolConfig
from .events import EventListener
from .pool import WorkerPool


class Run:
    """Scoped worker pool for synchronous or asynchronous code blocks.

    A scope without overrides nested inside another one reuses the outer pool
    instead of starting new workers. The scope that created a pool closes it
    on exit; a caller-provided pool is left running.
    """

    def __init__(
        self,
        *,
        max_workers: int | None = None,
        name: str | None = None,
        config: PoolConfig | None = None,
        pool: WorkerPool | None = None,
        shutdown_timeout: float | None = None,
        trace: EventListener | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._max_workers = max_workers
        self._name = name
        self._config = config
        self._provided_pool = pool
        self._shutdown_timeout = shutdown_timeout
        self._trace = trace

        self._entered = False
        self._token = None
        self._pool: WorkerPool | None = None
        self._owns_pool = False

    @property
    def pool(self) -> WorkerPool | None:
        return self._pool

    @property
    def owns_pool(self) -> bool:
        return self._owns_pool

    def __enter__(self) -> WorkerPool:
        return self._enter()

    async def __aenter__(self) -> WorkerPool:
        return self._enter()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._exit()
        return False

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._exit()
        return False

    # ------------------------------------------------------------------

    def _enter(self) -> WorkerPool:
        if self._entered:
            raise RuntimeError("Run context cannot be entered multiple times")
        self._entered = True

        if self._provided_pool is not None:
            self._pool = self._provided_pool
            self._owns_pool = False
        else:
            reusable = self._find_reusable_parent()
            if reusable is not None:
                self._pool = reusable._pool
                self._owns_pool = False
            else:
                self._pool = WorkerPool(
                    self._max_workers,
                    config=self._config,
                    name=self._name,
                )
                self._owns_pool = True

        if self._trace is not None:
            self._pool.add_listener(self._trace)

        stack = _ACTIVE_RUN_STACK.get()
        self._token = _ACTIVE_RUN_STACK.set(stack + (self,))
        return self._pool  # type: ignore[return-value]

    def _exit(self) -> None:
        if not self._entered:
            return
        try:
            if self._token is not None:
                try:
                    _ACTIVE_RUN_STACK.reset(self._token)
                except ValueError:
                    # Exited from another context; fall back to manual removal.
                    stack = tuple(
                        item for item in _ACTIVE_RUN_STACK.get() if item is not self
                    )
                    _ACTIVE_RUN_STACK.set(stack)
        finally:
            self._entered = False

        pool = self._pool
        if pool is None:
            return
        if self._trace is not None:
            pool.remove_listener(self._trace)
        if self._owns_pool:
            pool.close(self._shutdown_timeout)

    # ------------------------------------------------------------------

    def _find_reusable_parent(self) -> Run | None:
        if self._has_overrides:
            return None
        for existing in reversed(_ACTIVE_RUN_STACK.get()):
            if existing._pool is not None and existing._pool.state == "accepting":
                return existing
        return None

    @property
    def _has_overrides(self) -> bool:
        return any(
            value is not None
            for value in (self._max_workers, self._name, self._config)
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience
        base = "Run("
        if self._name:
            base += f"name={self._name!r}, "
        if self._max_workers is not None:
            base += f"max_workers={self._max_workers}"
        return base.rstrip(", ") + ")"


def current_pool() -> WorkerPool | None:
    """Return the pool of the innermost active :class:`Run`, if any."""

    for scope in reversed(_ACTIVE_RUN_STACK.get()):
        if scope.pool is not None:
            return scope.pool
    return None


_EMPTY_RUN_STACK = cast(tuple[Run, ...], ())
_ACTIVE_RUN_STACK: ContextVar[tuple[Run, ...]] = ContextVar(
    "threadlab_run_stack", default=_EMPTY_RUN_STACK
)


__all__ = ["Run", "current_pool"]
