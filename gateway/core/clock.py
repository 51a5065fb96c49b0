# gateway/core/clock.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Protocol


class Clock(Protocol):
    """Time source used by every wait in the engine (injectable for tests)."""

    def now(self) -> datetime: ...
    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock + real sleeps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


def poll_until(predicate: Callable[[], bool], *, period_s: float, clock: Clock) -> int:
    """
    Evaluate predicate until it returns True, sleeping period_s between
    attempts. There is no deadline.

    Returns the number of attempts it took.
    """
    if period_s < 0:
        raise ValueError("period_s must be >= 0")

    attempts = 0
    while True:
        attempts += 1
        if predicate():
            return attempts
        clock.sleep(period_s)
