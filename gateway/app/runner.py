# gateway/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from gateway.app.config import GatewayConfig
from gateway.cloud import CredentialsLoader, DisabledMessenger, FlowMessenger
from gateway.core.clock import Clock, SystemClock
from gateway.core.errors import ConfigError
from gateway.interfaces import Indicator, Messenger
from gateway.model.loader import SchemaLoader
from gateway.model.schema import ResourceSchema
from gateway.runtime.heartbeat import CommandIndicator
from gateway.runtime.session import SessionFactory
from gateway.runtime.supervisor import Supervisor
from gateway.store.registry import StoreDriverRegistry


@dataclass(frozen=True)
class AppRun:
    supervisor: Supervisor
    factory: SessionFactory
    schema: ResourceSchema
    messenger: Messenger
    indicator: Indicator


def load_app_schema(cfg: GatewayConfig) -> ResourceSchema:
    path = cfg.schema_file()
    try:
        return SchemaLoader(path).load()
    except FileNotFoundError:
        raise ConfigError(
            f"Schema file not found: {path}",
            hint="Check 'schema_path' in the config file.",
            details={"path": str(path)},
        ) from None
    except ValueError as e:
        raise ConfigError(
            f"Invalid schema file: {path}",
            hint=str(e),
            details={"path": str(path)},
        ) from None


def build_messenger(cfg: GatewayConfig, *, clock: Clock, logger: Optional[logging.Logger] = None) -> Messenger:
    r = cfg.registration
    driver = r.driver.lower()
    if driver == "none":
        return DisabledMessenger(logger=logger)
    if driver == "flow":
        credentials = CredentialsLoader(
            r.credentials_path,
            attempts=r.file_attempts,
            backoff_s=cfg.seconds(r.file_backoff),
            clock=clock,
            logger=logger,
        )
        return FlowMessenger(credentials, message_expiry_s=r.message_expiry_s, logger=logger)

    raise ConfigError(f"Unknown registration driver '{r.driver}'.")


def start_run(
    cfg: GatewayConfig,
    *,
    clock: Optional[Clock] = None,
    registry: Optional[StoreDriverRegistry] = None,
    messenger: Optional[Messenger] = None,
    indicator: Optional[Indicator] = None,
) -> AppRun:
    """Wire the supervisor from config. Nothing is connected until run()."""
    log = logging.getLogger("gateway")
    clock = clock or SystemClock()

    schema = load_app_schema(cfg)
    factory = SessionFactory(
        local=cfg.local.endpoint(),
        remote=cfg.remote.endpoint(),
        timeout_s=cfg.timeout_s,
        registry=registry,
        logger=logging.getLogger("gateway.session"),
    )

    messenger = messenger or build_messenger(cfg, clock=clock, logger=logging.getLogger("gateway.cloud"))
    indicator = indicator or CommandIndicator(
        cfg.heartbeat.command,
        timeout_s=cfg.heartbeat.timeout_s,
        logger=logging.getLogger("gateway.heartbeat"),
    )

    supervisor = Supervisor(
        factory=factory,
        schema=schema,
        messenger=messenger,
        indicator=indicator,
        clock=clock,
        settings=cfg.supervisor_settings(),
        logger=log,
    )
    log.info(
        "APP_CONFIGURED local=%s remote=%s objects=%d registration=%s",
        factory.local, factory.remote, len(schema), cfg.registration.driver,
    )

    return AppRun(
        supervisor=supervisor,
        factory=factory,
        schema=schema,
        messenger=messenger,
        indicator=indicator,
    )
