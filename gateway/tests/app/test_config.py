from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from gateway.app.config import GatewayConfig, config_from_mapping, load_config
from gateway.core.errors import ConfigError
from gateway.model.loader import DEFAULT_SCHEMA_PATH
from gateway.model.schema import ResourcePath


def _write(p: Path, text: str) -> Path:
    f = p / "gateway.yml"
    f.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return f


def test_defaults_match_deployment_constants() -> None:
    cfg = load_config(None)

    assert (cfg.local.driver, cfg.local.address, cfg.local.port) == ("awa", "127.0.0.1", 12345)
    assert (cfg.remote.driver, cfg.remote.address, cfg.remote.port) == ("awa", "127.0.0.1", 54321)
    assert cfg.timeout_s == 5.0
    assert cfg.registration.credentials_path == "/etc/lwm2m/flow_access.cfg"
    assert cfg.registration.message_expiry_s == 20
    assert cfg.heartbeat.command == "/usr/bin/set_led.sh"
    assert cfg.schema_file() == DEFAULT_SCHEMA_PATH


def test_supervisor_settings_from_defaults() -> None:
    s = GatewayConfig().supervisor_settings()

    assert s.provisioning_marker == ResourcePath(20001, 0)
    assert s.button_path == ResourcePath(3200, 0, 5501)
    assert s.led_path == ResourcePath(3311, 0, 5850)
    assert s.seconds(s.provisioning_backoff) == 2.0
    assert s.seconds(s.presence_backoff) == 1.0
    assert s.registration_attempts == 5


def test_yaml_overrides_subset_and_keeps_nested_defaults(tmp_path: Path) -> None:
    f = _write(
        tmp_path,
        """
        local:
          driver: memory
        remote:
          driver: memory
          address: 10.0.0.2
        timeout_ms: 250
        time_unit_s: 0.5
        registration:
          driver: none
        heartbeat:
          command: null
        """,
    )

    cfg = load_config(f)

    assert cfg.local.driver == "memory"
    assert cfg.local.port == 12345
    assert (cfg.remote.address, cfg.remote.port) == ("10.0.0.2", 54321)
    assert cfg.timeout_s == 0.25
    assert cfg.registration.driver == "none"
    assert cfg.registration.attempts == 5
    assert cfg.heartbeat.command is None
    assert cfg.supervisor_settings().seconds(2.0) == 1.0


def test_integers_are_accepted_for_float_fields() -> None:
    cfg = config_from_mapping({"time_unit_s": 2, "pulse": 3})
    assert cfg.time_unit_s == 2.0
    assert isinstance(cfg.pulse, float)


@pytest.mark.parametrize(
    "data, fragment",
    [
        ({"polling": 1}, "Unknown configuration keys"),
        ({"local": {"host": "x"}}, "Unknown configuration keys"),
        ({"timeout_ms": "fast"}, "'timeout_ms' has the wrong type"),
        ({"timeout_ms": True}, "wrong type"),
        ({"pulse": "1s"}, "'pulse' has the wrong type"),
        ({"heartbeat": {"command": 5}}, "'heartbeat.command' has the wrong type"),
        ({"local": "memory"}, "must be a mapping"),
        ({"timeout_ms": 0}, "timeout_ms"),
        ({"remote": {"port": 70000}}, "port"),
        ({"registration": {"driver": "mqtt"}}, "registration driver"),
        ({"button_path": "/3200/0"}, "button_path"),
        ({"provisioning_marker": "/20001/0/1"}, "provisioning_marker"),
        ({"led_path": "not/a/path/at/all"}, "led_path"),
    ],
)
def test_invalid_values_raise_config_error(data, fragment: str) -> None:
    with pytest.raises(ConfigError) as ei:
        config_from_mapping(data)
    assert ei.value.code == "config_error"
    assert fragment in f"{ei.value.message} {ei.value.hint or ''}"


def test_malformed_yaml_raises_config_error(tmp_path: Path) -> None:
    f = _write(tmp_path, "local: [unclosed\n")
    with pytest.raises(ConfigError, match="Malformed"):
        load_config(f)


def test_missing_config_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Could not read"):
        load_config(tmp_path / "absent.yml")


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    f = _write(tmp_path, "# nothing here\n")
    assert load_config(f) == GatewayConfig()
