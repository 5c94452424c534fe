from __future__ import annotations

import logging

import pytest

from threadlab import LifecycleRecorder, PoolEvent, RejectedSubmission, observe_pool


def test_lifecycle_recorder_tracks_worker_states(make_pool) -> None:
    recorder = LifecycleRecorder()
    pool = make_pool(1)
    pool.add_listener(recorder)
    pool.submit(lambda: None).result(timeout=5)
    assert pool.shutdown(timeout=5) is True
    assert recorder.transitions(0) == ["idle", "running", "idle", "stopped"]
    assert recorder.workers() == [0]


def test_events_cover_task_lifecycle(make_pool) -> None:
    events: list[PoolEvent] = []
    pool = make_pool(1)
    pool.add_listener(events.append)

    def _fail() -> None:
        raise ValueError("x")

    pool.submit(lambda: 1)
    pool.submit(_fail)
    pool.shutdown(timeout=5)
    pool.remove_listener(events.append)

    kinds = [event.kind for event in events if event.kind != "worker_state"]
    assert kinds.count("submitted") == 2
    assert kinds.count("started") == 2
    assert kinds.count("succeeded") == 1
    assert kinds.count("failed") == 1
    assert kinds.count("shutdown") == 2
    assert kinds.index("submitted") < kinds.index("started")
    assert events[-1].as_dict()["state"] == "stopped"


def test_rejections_are_reported(make_pool) -> None:
    events: list[PoolEvent] = []
    pool = make_pool(1)
    pool.add_listener(events.append)
    pool.shutdown(timeout=5)
    with pytest.raises(RejectedSubmission):
        pool.submit(lambda: None)
    assert events[-1].kind == "rejected"
    assert "stopped" in (events[-1].detail or "")


def test_broken_listener_does_not_break_workers(make_pool) -> None:
    pool = make_pool(1)

    def _broken(_: PoolEvent) -> None:
        raise RuntimeError("listener bug")

    pool.add_listener(_broken)
    assert pool.submit(lambda: "ok").result(timeout=5) == "ok"
    assert pool.shutdown(timeout=5) is True


def test_observe_pool_logs_events(make_pool, caplog: pytest.LogCaptureFixture) -> None:
    pool = make_pool(1)
    logger = logging.getLogger("threadlab.tests.observe")
    with caplog.at_level(logging.INFO, logger="threadlab.tests.observe"):
        with observe_pool(pool, logger=logger):
            pool.submit(lambda: None).result(timeout=5)
            pool.shutdown(timeout=5)
    messages = [record.getMessage() for record in caplog.records]
    assert any("event=submitted" in message for message in messages)
    assert any("event=shutdown" in message for message in messages)


def test_pool_reports_stopped_during_final_event(make_pool) -> None:
    pool = make_pool(2)
    seen: list[str] = []

    def _listener(event: PoolEvent) -> None:
        if event.kind == "shutdown" and event.state == "stopped":
            seen.append(pool.state)

    pool.add_listener(_listener)
    pool.submit(lambda: None)
    assert pool.shutdown(timeout=5) is True
    assert seen == ["stopped"]
