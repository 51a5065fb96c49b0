from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from gateway.model.loader import load_schema
from gateway.runtime.session import SessionFactory, StoreEndpoint
from gateway.store.memory import daemon_at, reset_daemons


class SleepLimitReached(Exception):
    """Raised by FakeClock once it has slept max_sleeps times."""


class FakeClock:
    """Clock whose sleeps only advance virtual time."""

    Limit = SleepLimitReached

    def __init__(self, start: float = 0.0, *, max_sleeps: Optional[int] = None):
        self.t = float(start)
        self.max_sleeps = max_sleeps
        self.sleeps: List[float] = []
        self.wall0 = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.wall0 + timedelta(seconds=self.t)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += max(0.0, seconds)
        if self.max_sleeps is not None and len(self.sleeps) >= self.max_sleeps:
            raise SleepLimitReached(f"slept {len(self.sleeps)} times")

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def schema():
    return load_schema()


@pytest.fixture(autouse=True)
def _fresh_memory_daemons():
    reset_daemons()
    yield
    reset_daemons()


LOCAL_PORT = 12345
REMOTE_PORT = 54321


@pytest.fixture
def local_daemon():
    return daemon_at("127.0.0.1", LOCAL_PORT)


@pytest.fixture
def remote_daemon():
    return daemon_at("127.0.0.1", REMOTE_PORT)


@pytest.fixture
def factory():
    return SessionFactory(
        local=StoreEndpoint("memory", "127.0.0.1", LOCAL_PORT),
        remote=StoreEndpoint("memory", "127.0.0.1", REMOTE_PORT),
        timeout_s=1.0,
    )
