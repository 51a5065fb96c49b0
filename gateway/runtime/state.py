# gateway/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SupervisorState(str, Enum):
    CONNECTING = "connecting"
    POLLING = "polling"
    RECOVERING = "recovering"
    STOPPED = "stopped"


@dataclass
class BridgeState:
    """
    Mutable engine state, owned by the supervisor and passed by reference
    into the poll and propagate routines.

    - registered: set once when cloud registration succeeds, never reset.
    - last_counter: last raw counter value seen; None until the first read.
    """
    registered: bool = False
    last_counter: Optional[int] = None
    led_state: Optional[bool] = None
    propagations: int = 0
    polls: int = 0
    recoveries: int = 0


@dataclass(frozen=True)
class PropagationResult:
    """
    Outcome of one propagation. notified is None when notification was
    skipped because the device is not registered.
    """
    state: bool
    counter: int
    remote_ok: bool
    local_ok: bool
    notified: Optional[bool] = None

    @property
    def ok(self) -> bool:
        return self.remote_ok and self.local_ok and self.notified is not False


@dataclass(frozen=True)
class PollExit:
    """Why the poll loop returned (read failure is the only exit)."""
    reason: str
    polls: int
