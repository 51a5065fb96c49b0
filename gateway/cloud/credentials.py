# gateway/cloud/credentials.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import libconf

from gateway.core.clock import Clock, SystemClock
from gateway.core.errors import ConfigError
from gateway.core.retry import retry


DEFAULT_CREDENTIALS_PATH = Path("/etc/lwm2m/flow_access.cfg")

# file key -> attribute
_FIELDS = {
    "URL": "url",
    "CustomerKey": "customer_key",
    "CustomerSecret": "customer_secret",
    "RememberMeToken": "remember_me_token",
}


@dataclass(frozen=True)
class FlowCredentials:
    """Registration data written by the provisioning step."""
    url: str
    customer_key: str
    customer_secret: str
    remember_me_token: str

    def __repr__(self) -> str:
        return f"FlowCredentials(url='{self.url}', customer_key='{self.customer_key}', ...)"


def parse_credentials(data: object, *, source: str = "<memory>") -> FlowCredentials:
    if not isinstance(data, Mapping):
        raise ConfigError(
            "Credentials file must contain a mapping.",
            details={"path": source},
        )

    values = {}
    missing = []
    for key, attr in _FIELDS.items():
        v = data.get(key)
        if not isinstance(v, str) or not v:
            missing.append(key)
            continue
        values[attr] = v

    if missing:
        raise ConfigError(
            "Failed to read config data.",
            hint=f"Missing or empty keys: {missing}",
            details={"path": source, "missing": missing},
        )
    return FlowCredentials(**values)


class CredentialsLoader:
    """
    Reads FlowCredentials from a libconfig file (`URL = "...";`), waiting
    for the file to appear.

    - file absent: retried up to `attempts` times, `backoff_s` apart
    - file present but malformed/incomplete: fails at once
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_CREDENTIALS_PATH,
        *,
        attempts: int = 5,
        backoff_s: float = 1.0,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = Path(path)
        self.attempts = int(attempts)
        self.backoff_s = float(backoff_s)
        self._clock = clock or SystemClock()
        self._log = logger or logging.getLogger(__name__)

    def read_once(self) -> FlowCredentials:
        if not self.path.exists():
            self._log.info("WAITING_FOR_CONFIG_DATA path=%s", self.path)
            raise FileNotFoundError(str(self.path))

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = libconf.load(f)
        except libconf.ConfigParseError as e:
            raise ConfigError(
                "Failed to parse credentials file.",
                hint=str(e),
                details={"path": str(self.path)},
            ) from None
        return parse_credentials(data, source=str(self.path))

    def load(self) -> Optional[FlowCredentials]:
        """Return credentials, or None if the file never appeared or is invalid."""
        try:
            result = retry(
                self.read_once,
                max_attempts=self.attempts,
                backoff_s=self.backoff_s,
                clock=self._clock,
                logger=self._log,
                name="credentials_file",
                retry_on=(FileNotFoundError,),
            )
        except (ConfigError, OSError) as e:
            self._log.error("CREDENTIALS_INVALID path=%s err=%s", self.path, e)
            return None

        if not result.ok:
            self._log.error("CREDENTIALS_FILE_MISSING path=%s attempts=%d", self.path, result.attempts)
            return None
        return result.value
