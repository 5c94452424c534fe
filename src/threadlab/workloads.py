from __future__ import annotations

import math

from . import cancellation


def count_primes(limit: int) -> int:
    """Naively count prime numbers below ``limit``.

    The implementation intentionally uses a simple algorithm so it spends a
    meaningful amount of CPU time without relying on third-party packages.
    """

    if limit < 2:
        return 0
    primes: list[int] = []
    for candidate in range(2, limit):
        is_prime = True
        root = int(math.isqrt(candidate))
        for divisor in primes:
            if divisor > root:
                break
            if candidate % divisor == 0:
                is_prime = False
                break
        if is_prime:
            primes.append(candidate)
    return len(primes)


def simulate_blocking_io(duration: float) -> float:
    """Sleep for ``duration`` seconds to emulate blocking IO.

    Inside a pool task the sleep ends early with
    :class:`~threadlab.errors.TaskInterrupted` on forced shutdown.
    """

    cancellation.sleep(duration)
    return duration


def sin_sqrt(value: float) -> float:
    return math.sin(math.sqrt(value))


def prepare_dish(name: str, duration: float) -> str:
    simulate_blocking_io(duration)
    return f"Ready: {name}"


def fetch_flight(destination: str, duration: float) -> str:
    simulate_blocking_io(duration)
    return f"Flight to {destination}"


def fetch_hotel(destination: str, duration: float) -> str:
    simulate_blocking_io(duration)
    return f"Hotel in {destination}"


__all__ = [
    "count_primes",
    "fetch_flight",
    "fetch_hotel",
    "prepare_dish",
    "simulate_blocking_io",
    "sin_sqrt",
]
