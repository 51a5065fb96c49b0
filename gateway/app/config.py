# gateway/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from gateway.core.errors import ConfigError
from gateway.model.loader import DEFAULT_SCHEMA_PATH
from gateway.model.schema import ResourcePath
from gateway.runtime.session import StoreEndpoint
from gateway.runtime.supervisor import SupervisorSettings


REGISTRATION_DRIVERS = ("flow", "none")


@dataclass(frozen=True)
class StoreEndpointConfig:
    driver: str = "awa"
    address: str = "127.0.0.1"
    port: int = 12345

    def endpoint(self) -> StoreEndpoint:
        return StoreEndpoint(driver=self.driver, address=self.address, port=self.port)


@dataclass(frozen=True)
class RegistrationConfig:
    driver: str = "flow"
    credentials_path: str = "/etc/lwm2m/flow_access.cfg"
    attempts: int = 5
    backoff: float = 1.0
    file_attempts: int = 5
    file_backoff: float = 1.0
    message_expiry_s: int = 20


@dataclass(frozen=True)
class HeartbeatConfig:
    command: Optional[str] = "/usr/bin/set_led.sh"
    timeout_s: float = 5.0


@dataclass(frozen=True)
class GatewayConfig:
    """
    Every tunable of the gateway. Backoffs are in time units (time_unit_s).

    Values come from the defaults below, optionally overridden by a YAML
    file with the same nested layout.
    """
    local: StoreEndpointConfig = field(default_factory=StoreEndpointConfig)
    remote: StoreEndpointConfig = field(default_factory=lambda: StoreEndpointConfig(port=54321))
    timeout_ms: int = 5000
    time_unit_s: float = 1.0
    schema_path: Optional[str] = None

    provisioning_marker: str = "/20001/0"
    provisioning_backoff: float = 2.0
    presence_backoff: float = 1.0
    recovery_backoff: float = 1.0
    pulse: float = 1.0

    button_path: str = "/3200/0/5501"
    led_path: str = "/3311/0/5850"

    registration: RegistrationConfig = field(default_factory=RegistrationConfig)
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    def schema_file(self) -> Path:
        return Path(self.schema_path) if self.schema_path else DEFAULT_SCHEMA_PATH

    def seconds(self, units: float) -> float:
        return float(units) * self.time_unit_s

    def supervisor_settings(self) -> SupervisorSettings:
        r = self.registration
        return SupervisorSettings(
            provisioning_marker=_path(self.provisioning_marker, "provisioning_marker"),
            button_path=_path(self.button_path, "button_path"),
            led_path=_path(self.led_path, "led_path"),
            time_unit_s=self.time_unit_s,
            provisioning_backoff=self.provisioning_backoff,
            presence_backoff=self.presence_backoff,
            recovery_backoff=self.recovery_backoff,
            pulse=self.pulse,
            registration_attempts=r.attempts,
            registration_backoff=r.backoff,
        )

    def validate(self) -> "GatewayConfig":
        if self.timeout_ms <= 0:
            raise ConfigError("timeout_ms must be > 0.", details={"timeout_ms": self.timeout_ms})
        if self.time_unit_s < 0:
            raise ConfigError("time_unit_s must be >= 0.", details={"time_unit_s": self.time_unit_s})
        for name in ("provisioning_backoff", "presence_backoff", "recovery_backoff", "pulse"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0.", details={name: getattr(self, name)})

        for name, ep in (("local", self.local), ("remote", self.remote)):
            if not (0 < ep.port < 65536):
                raise ConfigError(f"{name}.port out of range.", details={"port": ep.port})

        r = self.registration
        if r.driver.lower() not in REGISTRATION_DRIVERS:
            raise ConfigError(
                f"Unknown registration driver '{r.driver}'.",
                hint=f"Valid drivers: {list(REGISTRATION_DRIVERS)}",
            )
        if r.attempts < 1 or r.file_attempts < 1:
            raise ConfigError("registration attempts must be >= 1.")

        marker = _path(self.provisioning_marker, "provisioning_marker")
        if marker.is_resource:
            raise ConfigError(
                "provisioning_marker must address an object instance (/O/I).",
                details={"provisioning_marker": self.provisioning_marker},
            )
        for name in ("button_path", "led_path"):
            if not _path(getattr(self, name), name).is_resource:
                raise ConfigError(
                    f"{name} must address a resource (/O/I/R).",
                    details={name: getattr(self, name)},
                )
        return self


def _path(text: str, key: str) -> ResourcePath:
    try:
        return ResourcePath.parse(text)
    except ValueError as e:
        raise ConfigError(f"Invalid path for '{key}'.", hint=str(e), details={key: text}) from None


def _coerce(value: Any, default: Any, where: str) -> Any:
    if is_dataclass(default):
        if not isinstance(value, Mapping):
            raise ConfigError(f"'{where}' must be a mapping.")
        return _build(default, value, f"{where}.")

    if default is None or isinstance(default, str):
        ok = value is None or isinstance(value, str)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        value = float(value) if ok else value
    if not ok:
        raise ConfigError(f"'{where}' has the wrong type.", details={where: value})
    return value


def _build(base: Any, data: Mapping[str, Any], prefix: str = "") -> Any:
    known = {f.name for f in fields(base)}
    unknown = sorted(str(k) for k in data.keys() if k not in known)
    if unknown:
        raise ConfigError(
            "Unknown configuration keys.",
            hint=f"Unknown: {[f'{prefix}{k}' for k in unknown]}",
            details={"unknown": unknown},
        )

    changes = {}
    for key, value in data.items():
        where = f"{prefix}{key}"
        changes[key] = _coerce(value, getattr(base, key), where)
    return replace(base, **changes)


def config_from_mapping(data: Optional[Mapping[str, Any]]) -> GatewayConfig:
    base = GatewayConfig()
    if not data:
        return base.validate()
    if not isinstance(data, Mapping):
        raise ConfigError("Configuration root must be a mapping.")
    return _build(base, data).validate()


def load_config(path: Optional[str | Path] = None) -> GatewayConfig:
    """Defaults, overridden by the YAML file at `path` when given."""
    if path is None:
        return GatewayConfig().validate()

    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Could not read config file '{p}'.",
            hint=e.strerror or str(e),
            details={"path": str(p)},
        ) from None
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Malformed config file '{p}'.",
            hint=str(e),
            details={"path": str(p)},
        ) from None

    return config_from_mapping(data)
