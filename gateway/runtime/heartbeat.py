# gateway/runtime/heartbeat.py
from __future__ import annotations

import logging
import subprocess
from typing import Optional


class CommandIndicator:
    """
    Heartbeat LED driven by an external command: `<command> 1` / `<command> 0`.

    Failures (missing binary, non-zero exit, timeout) are logged as warnings.
    command=None turns the indicator into a no-op.
    """

    def __init__(
        self,
        command: Optional[str],
        *,
        timeout_s: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.command = command
        self.timeout_s = timeout_s
        self._log = logger or logging.getLogger(__name__)

    def set(self, on: bool) -> None:
        if not self.command:
            return

        argv = [self.command, "1" if on else "0"]
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout_s,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            self._log.warning("HEARTBEAT_LED_FAILED cmd=%s err=%s", self.command, e)
            return

        if proc.returncode != 0:
            self._log.warning("HEARTBEAT_LED_FAILED cmd=%s rc=%d", self.command, proc.returncode)
