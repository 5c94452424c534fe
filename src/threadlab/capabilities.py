from __future__ import annotations

import os
import platform
import sys
import sysconfig
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuntimeCapabilities:
    """Snapshot of the concurrency-related features of this interpreter.

    Pools consult it for a default worker count; the parallel-data lab uses
    ``cpu_count`` as the ideal speedup when reporting efficiency.
    """

    python_version: tuple[int, int, int]
    implementation: str
    gil_enabled: bool
    free_threading_build: bool
    cpu_count: int
    suggested_io_workers: int
    suggested_cpu_workers: int

    @property
    def python_release(self) -> str:
        major, minor, micro = self.python_version
        return f"{major}.{minor}.{micro}"

    @property
    def threads_run_in_parallel(self) -> bool:
        return not self.gil_enabled


def detect_capabilities() -> RuntimeCapabilities:
    version = sys.version_info
    cpu_count = os.cpu_count() or 1
    free_threading_build = bool(sysconfig.get_config_var("Py_GIL_DISABLED"))
    gil_enabled = _is_gil_enabled()

    suggested_io_workers = max(4, min(32, cpu_count * 5))
    if free_threading_build and not gil_enabled:
        suggested_cpu_workers = cpu_count
    else:
        # CPU-bound threads serialise on the GIL; more than a few only adds overhead.
        suggested_cpu_workers = max(1, min(4, cpu_count))

    return RuntimeCapabilities(
        python_version=(version.major, version.minor, version.micro),
        implementation=platform.python_implementation(),
        gil_enabled=gil_enabled,
        free_threading_build=free_threading_build,
        cpu_count=cpu_count,
        suggested_io_workers=suggested_io_workers,
        suggested_cpu_workers=suggested_cpu_workers,
    )


def _is_gil_enabled() -> bool:
    checker = getattr(sys, "_is_gil_enabled", None)
    if checker is None:
        return True
    try:
        return bool(checker())
    except RuntimeError:
        # Some implementations may raise if called from a non-main thread.
        return True
