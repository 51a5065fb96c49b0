# gateway/cloud/disabled.py
from __future__ import annotations

import logging
from typing import Optional


class DisabledMessenger:
    """Messenger used when cloud registration is turned off. Never registers."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    def register(self) -> bool:
        self._log.info("FLOW_REGISTRATION_DISABLED")
        return False

    def is_logged_in(self) -> bool:
        return False

    def notify(self, text: str) -> bool:
        return False
