from __future__ import annotations

import pytest

from gateway.core.retry import retry


def test_retry_first_success_does_not_sleep(clock) -> None:
    res = retry(lambda: "token", max_attempts=5, backoff_s=1.0, clock=clock)

    assert res.ok is True
    assert res.value == "token"
    assert res.attempts == 1
    assert clock.sleeps == []


def test_retry_exhaustion_sleeps_between_attempts_only(clock) -> None:
    calls = []

    def op() -> bool:
        calls.append(1)
        return False

    res = retry(op, max_attempts=5, backoff_s=1.0, clock=clock)

    assert res.ok is False
    assert res.attempts == 5
    assert len(calls) == 5
    assert clock.sleeps == [1.0] * 4


def test_retry_unbounded_runs_until_success(clock) -> None:
    answers = iter([False] * 9 + [True])

    res = retry(lambda: next(answers), max_attempts=None, backoff_s=2.0, clock=clock)

    assert res.ok is True
    assert res.attempts == 10
    assert clock.sleeps == [2.0] * 9


def test_retry_counts_listed_exceptions_as_failed_attempts(clock) -> None:
    answers = iter([FileNotFoundError("x"), FileNotFoundError("x"), 42])

    def op() -> int:
        a = next(answers)
        if isinstance(a, Exception):
            raise a
        return a

    res = retry(op, max_attempts=5, backoff_s=1.0, clock=clock, retry_on=(FileNotFoundError,))

    assert res.ok is True
    assert res.value == 42
    assert res.attempts == 3


def test_retry_propagates_unlisted_exceptions(clock) -> None:
    def op() -> bool:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        retry(op, max_attempts=3, backoff_s=1.0, clock=clock, retry_on=(OSError,))
    assert clock.sleeps == []


def test_retry_rejects_zero_attempts(clock) -> None:
    with pytest.raises(ValueError):
        retry(lambda: True, max_attempts=0, backoff_s=1.0, clock=clock)
