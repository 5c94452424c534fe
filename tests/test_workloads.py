from __future__ import annotations

import math

import pytest

from threadlab import CancellationToken, TaskInterrupted
from threadlab.cancellation import bind_token
from threadlab.workloads import (
    count_primes,
    fetch_flight,
    fetch_hotel,
    prepare_dish,
    simulate_blocking_io,
    sin_sqrt,
)


def test_count_primes_low_limit() -> None:
    assert count_primes(0) == 0
    assert count_primes(2) == 0
    assert count_primes(10) == 4


def test_sin_sqrt() -> None:
    assert sin_sqrt(0) == 0.0
    assert sin_sqrt(4) == pytest.approx(math.sin(2))


def test_named_workloads() -> None:
    assert prepare_dish("Soup", 0) == "Ready: Soup"
    assert fetch_flight("Oslo", 0) == "Flight to Oslo"
    assert fetch_hotel("Oslo", 0) == "Hotel in Oslo"


def test_blocking_io_ends_early_when_cancelled() -> None:
    token = CancellationToken()
    token.cancel("stop")
    with bind_token(token), pytest.raises(TaskInterrupted):
        simulate_blocking_io(5)
