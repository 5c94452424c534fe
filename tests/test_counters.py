from __future__ import annotations

import pytest

from threadlab import (
    RaceReport,
    SynchronizedCounter,
    UnsynchronizedCounter,
    hammer,
    make_counter,
)


def test_make_counter_defaults_to_synchronized() -> None:
    assert isinstance(make_counter(), SynchronizedCounter)
    assert isinstance(make_counter(synchronized=False), UnsynchronizedCounter)


def test_synchronized_counter_never_loses_updates() -> None:
    report = hammer(make_counter(), threads=4, iterations=2_000)
    assert report.expected == 8_000
    assert report.actual == 8_000
    assert report.consistent
    assert report.lost_updates == 0


def test_unsynchronized_counter_never_overcounts() -> None:
    report = hammer(make_counter(synchronized=False), threads=4, iterations=500)
    assert 0 < report.actual <= report.expected
    assert report.lost_updates == report.expected - report.actual


def test_single_thread_is_always_consistent() -> None:
    report = hammer(UnsynchronizedCounter(), threads=1, iterations=100)
    assert report == RaceReport(threads=1, iterations=100, expected=100, actual=100)


def test_hammer_requires_a_thread() -> None:
    with pytest.raises(ValueError):
        hammer(make_counter(), threads=0)
