# gateway/core/retry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from gateway.core.clock import Clock

T = TypeVar("T")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """
    Outcome of retry().

    ok is True when an attempt produced a truthy value. value is the last
    value returned by the operation (None if every attempt raised).
    """
    ok: bool
    value: Optional[T]
    attempts: int


def retry(
    operation: Callable[[], T],
    *,
    max_attempts: Optional[int],
    backoff_s: float,
    clock: Clock,
    logger: Optional[logging.Logger] = None,
    name: str = "operation",
    retry_on: tuple[type[BaseException], ...] = (),
) -> RetryResult[T]:
    """
    Call operation until it returns a truthy value.

    - max_attempts=None retries forever.
    - Exceptions listed in retry_on count as a failed attempt; anything
      else propagates.
    - Sleeps backoff_s between attempts (never after the last one).
    """
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be >= 1 or None")

    log = logger or logging.getLogger(__name__)
    attempt = 0
    value: Optional[T] = None

    while True:
        attempt += 1
        try:
            value = operation()
        except retry_on as e:
            value = None
            log.debug("RETRY_ATTEMPT_RAISED name=%s attempt=%d err=%s", name, attempt, e)

        if value:
            return RetryResult(ok=True, value=value, attempts=attempt)

        if max_attempts is not None and attempt >= max_attempts:
            log.debug("RETRY_EXHAUSTED name=%s attempts=%d", name, attempt)
            return RetryResult(ok=False, value=value, attempts=attempt)

        if max_attempts is not None:
            log.info("RETRY name=%s remaining=%d", name, max_attempts - attempt)
        clock.sleep(backoff_s)
