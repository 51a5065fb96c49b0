# gateway/interfaces/messenger.py
from __future__ import annotations

from typing import Protocol


class Messenger(Protocol):
    """
    Cloud registration + user notification channel.

    Implementations never raise to the engine: failures are reported as
    False and logged by the implementation.
    """

    def register(self) -> bool: ...
    def is_logged_in(self) -> bool: ...
    def notify(self, text: str) -> bool: ...
