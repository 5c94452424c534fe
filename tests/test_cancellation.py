from __future__ import annotations

import time

import pytest

from threadlab import CancellationToken, TaskInterrupted, checkpoint, current_token, sleep
from threadlab.cancellation import bind_token


def test_token_cancel_is_one_way() -> None:
    token = CancellationToken()
    assert not token.cancelled
    assert token.wait(0) is False
    token.cancel("first")
    token.cancel("second")
    assert token.cancelled
    assert token.reason == "first"
    assert token.wait(0) is True
    with pytest.raises(TaskInterrupted, match="first"):
        token.raise_if_cancelled()


def test_code_outside_tasks_sees_an_uncancelled_token() -> None:
    token = current_token()
    assert not token.cancelled
    checkpoint()
    started = time.perf_counter()
    sleep(0.01)
    assert time.perf_counter() - started >= 0.005


def test_bind_token_scopes_current_token() -> None:
    outer = current_token()
    token = CancellationToken()
    with bind_token(token):
        assert current_token() is token
        checkpoint()
        token.cancel()
        with pytest.raises(TaskInterrupted):
            checkpoint()
    assert current_token() is outer


def test_sleep_returns_early_when_cancelled() -> None:
    token = CancellationToken()
    token.cancel("stop")
    started = time.perf_counter()
    with bind_token(token):
        with pytest.raises(TaskInterrupted):
            sleep(5)
    assert time.perf_counter() - started < 1


def test_pool_tasks_get_a_fresh_token_each(make_pool) -> None:
    pool = make_pool(1)
    first = pool.submit(current_token).result(timeout=5)
    second = pool.submit(current_token).result(timeout=5)
    assert first is not second
    assert first is not current_token()
