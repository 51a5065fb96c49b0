from __future__ import annotations

import pytest

from gateway.core.clock import SystemClock, poll_until


def test_poll_until_returns_attempt_count_and_sleeps_between_misses(clock) -> None:
    answers = iter([False, False, True])

    attempts = poll_until(lambda: next(answers), period_s=2.0, clock=clock)

    assert attempts == 3
    assert clock.sleeps == [2.0, 2.0]


def test_poll_until_sleeps_full_period_regardless_of_check_time(clock) -> None:
    answers = iter([False, True])

    def slow_check() -> bool:
        clock.advance(5.0)
        return next(answers)

    poll_until(slow_check, period_s=1.0, clock=clock)

    assert clock.sleeps == [1.0]


def test_poll_until_rejects_negative_period(clock) -> None:
    with pytest.raises(ValueError):
        poll_until(lambda: True, period_s=-1.0, clock=clock)


def test_system_clock_now_is_timezone_aware() -> None:
    now = SystemClock().now()
    assert now.tzinfo is not None
