from __future__ import annotations

import threading

import pytest

from threadlab import BackgroundTask, sleep
from threadlab import background as background_module


def test_background_task_runs_until_cancelled() -> None:
    ticks = threading.Semaphore(0)
    task = BackgroundTask(ticks.release, interval=0.01, name="ticker").start()
    try:
        for _ in range(3):
            assert ticks.acquire(timeout=5)
        assert task.running
    finally:
        assert task.cancel(timeout=5) is True
    assert not task.running
    assert task.runs >= 3


def test_run_immediately_ticks_before_first_interval() -> None:
    ran = threading.Event()
    with BackgroundTask(ran.set, interval=60, run_immediately=True):
        assert ran.wait(5)


def test_failures_are_recorded_and_loop_continues() -> None:
    calls = threading.Semaphore(0)

    def _flaky() -> None:
        calls.release()
        raise OSError("disk full")

    task = BackgroundTask(_flaky, interval=0.01, name="flaky").start()
    try:
        assert calls.acquire(timeout=5)
        assert calls.acquire(timeout=5)
    finally:
        task.cancel(timeout=5)
    assert len(task.errors) >= 2
    assert all(isinstance(error, OSError) for error in task.errors)


def test_start_twice_is_an_error() -> None:
    task = BackgroundTask(lambda: None, interval=1)
    task.start()
    try:
        with pytest.raises(RuntimeError):
            task.start()
    finally:
        task.cancel(timeout=5)


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BackgroundTask(lambda: None, interval=0)


def test_cancel_all_stops_live_tasks() -> None:
    tasks = [BackgroundTask(lambda: None, interval=0.01).start() for _ in range(3)]
    background_module.cancel_all(timeout=5)
    assert not any(task.running for task in tasks)


def test_cancel_before_start_is_harmless() -> None:
    task = BackgroundTask(lambda: None, interval=1)
    assert task.cancel() is True
    assert task.runs == 0


def test_interrupted_sleep_is_a_clean_stop() -> None:
    entered = threading.Event()

    def _slow_save() -> None:
        entered.set()
        sleep(5)

    task = BackgroundTask(_slow_save, interval=0.01, run_immediately=True).start()
    assert entered.wait(5)
    assert task.cancel(timeout=5) is True
    assert task.errors == []
    assert task.runs == 1
