# gateway/runtime/supervisor.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from gateway.core.clock import Clock
from gateway.core.errors import RecoveryError, SessionConnectError
from gateway.core.retry import retry
from gateway.interfaces import Indicator, Messenger
from gateway.model.schema import ResourcePath, ResourceSchema
from gateway.runtime.bridge import Bridge
from gateway.runtime.definer import define_schema
from gateway.runtime.gates import ProvisioningGate, wait_for_peer
from gateway.runtime.session import LocalSession, RemoteSession, SessionFactory
from gateway.runtime.state import BridgeState, SupervisorState


@dataclass(frozen=True)
class SupervisorSettings:
    """Timings are expressed in time units; time_unit_s converts them."""
    provisioning_marker: ResourcePath = field(default_factory=lambda: ResourcePath(20001, 0))
    button_path: ResourcePath = field(default_factory=lambda: ResourcePath(3200, 0, 5501))
    led_path: ResourcePath = field(default_factory=lambda: ResourcePath(3311, 0, 5850))
    time_unit_s: float = 1.0
    provisioning_backoff: float = 2.0
    presence_backoff: float = 1.0
    recovery_backoff: float = 1.0
    pulse: float = 1.0
    registration_attempts: int = 5
    registration_backoff: float = 1.0

    def seconds(self, units: float) -> float:
        return float(units) * self.time_unit_s


class Supervisor:
    """
    Outer recovery loop around the bridge.

        CONNECTING -> POLLING -> RECOVERING -> CONNECTING -> POLLING -> ...

    One-time setup (provisioning wait, cloud registration, schema
    definition, peer presence) runs in CONNECTING and is never repeated.
    A poll read failure moves to RECOVERING: the remote session is closed,
    the supervisor sleeps, and a fresh remote session is opened. The local
    session is not touched by recovery.

    run() only returns by raising: RecoveryError when the remote session
    cannot be re-established, or whatever interrupted the process. Both
    sessions are closed and the indicator switched off on the way out.
    """

    def __init__(
        self,
        *,
        factory: SessionFactory,
        schema: ResourceSchema,
        messenger: Messenger,
        indicator: Indicator,
        clock: Clock,
        settings: Optional[SupervisorSettings] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._factory = factory
        self._schema = schema
        self._messenger = messenger
        self._indicator = indicator
        self._clock = clock
        self.settings = settings or SupervisorSettings()
        self._log = logger or logging.getLogger(__name__)

        self.state = BridgeState()
        self.status = SupervisorState.CONNECTING
        self.history: List[SupervisorState] = [self.status]

        self.provisioning = ProvisioningGate(
            factory,
            self.settings.provisioning_marker,
            backoff_s=self.settings.seconds(self.settings.provisioning_backoff),
            clock=clock,
            logger=self._log,
        )

        self.local: Optional[LocalSession] = None
        self.remote: Optional[RemoteSession] = None
        self.bridge: Optional[Bridge] = None
        self._setup_done = False

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def run(self) -> None:
        try:
            if not self._setup_done:
                self.setup()

            while True:
                self._transition(SupervisorState.POLLING)
                assert self.bridge is not None and self.remote is not None
                outcome = self.bridge.poll(self.remote)
                self._log.warning("POLL_EXIT reason=%s polls=%d", outcome.reason, outcome.polls)

                self._transition(SupervisorState.RECOVERING)
                self.recover()
        finally:
            self.shutdown()

    def setup(self) -> None:
        """One-time setup; leaves the supervisor ready to poll."""
        s = self.settings
        self._indicator.set(True)

        self.local = self.provisioning.wait(self.local)
        self._register()

        try:
            self.remote = self._factory.open_remote()
        except SessionConnectError as e:
            raise RecoveryError(
                "Failed to establish server session.",
                hint=e.hint,
                details=e.details,
            ) from None

        remote_ok = define_schema(self.remote, self._schema, logger=self._log)
        local_ok = define_schema(self.local, self._schema, logger=self._log)
        if not (remote_ok and local_ok):
            self._log.warning("SCHEMA_INCOMPLETE remote_ok=%s local_ok=%s", remote_ok, local_ok)

        for endpoint in self._schema.endpoints():
            wait_for_peer(
                self.remote,
                endpoint,
                period_s=s.seconds(s.presence_backoff),
                clock=self._clock,
                logger=self._log,
            )

        self.bridge = Bridge(
            local=self.local,
            schema=self._schema,
            button_path=s.button_path,
            led_path=s.led_path,
            messenger=self._messenger,
            indicator=self._indicator,
            clock=self._clock,
            state=self.state,
            pulse_s=s.seconds(s.pulse),
            logger=self._log,
        )
        self._setup_done = True

    def recover(self) -> None:
        """Replace the remote session. Raises RecoveryError if that fails."""
        s = self.settings
        if self.remote is not None:
            self.remote.close()
            self.remote = None

        self._clock.sleep(s.seconds(s.recovery_backoff))
        self._transition(SupervisorState.CONNECTING)

        try:
            self.remote = self._factory.open_remote()
        except SessionConnectError as e:
            self._log.error("RECOVERY_FAILED err=%s", e.hint or e.message)
            raise RecoveryError(
                "Could not re-establish the server session.",
                hint=e.hint,
                details=e.details,
            ) from None

        self.state.recoveries += 1
        self._log.info("SESSION_RECOVERED recoveries=%d", self.state.recoveries)

    def shutdown(self) -> None:
        """Close both sessions and switch the heartbeat off. Idempotent."""
        self._indicator.set(False)
        for session in (self.remote, self.local):
            if session is not None:
                session.close()
        self.remote = None
        self.local = None
        if self.status is not SupervisorState.STOPPED:
            self._transition(SupervisorState.STOPPED)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _register(self) -> None:
        s = self.settings
        result = retry(
            self._try_register,
            max_attempts=s.registration_attempts,
            backoff_s=s.seconds(s.registration_backoff),
            clock=self._clock,
            logger=self._log,
            name="flow_registration",
        )
        self.state.registered = bool(result.ok)
        if result.ok:
            self._log.info("DEVICE_REGISTERED attempts=%d", result.attempts)
        else:
            self._log.error("DEVICE_REGISTRATION_FAILED attempts=%d", result.attempts)

    def _try_register(self) -> bool:
        try:
            return bool(self._messenger.register())
        except Exception:
            self._log.exception("MESSENGER_REGISTER_ERROR")
            return False

    def _transition(self, new: SupervisorState) -> None:
        if new is self.status:
            return
        self._log.debug("SUPERVISOR_STATE %s -> %s", self.status.value, new.value)
        self.status = new
        self.history.append(new)
