# gateway/interfaces/indicator.py
from __future__ import annotations

from typing import Protocol


class Indicator(Protocol):
    """Liveness output (heartbeat LED). set() must never raise."""

    def set(self, on: bool) -> None: ...
