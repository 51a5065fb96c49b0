# gateway/runtime/bridge.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from gateway.core.clock import Clock
from gateway.core.errors import SessionOperationError
from gateway.interfaces import Indicator, Messenger
from gateway.model.schema import ResourcePath, ResourceSchema
from gateway.runtime.session import LocalSession, RemoteSession
from gateway.runtime.state import BridgeState, PollExit, PropagationResult

ON_STR = "on"
OFF_STR = "off"


def counter_to_state(counter: int) -> bool:
    """Only the parity of the button counter is meaningful."""
    return counter % 2 != 0


def format_message(state: bool, when: datetime) -> str:
    """`HH:MM:SS DD-MM-YYYY LED on|off`"""
    return f"{when:%H:%M:%S %d-%m-%Y} LED {ON_STR if state else OFF_STR}"


class Bridge:
    """
    Poll-and-propagate engine.

    Reads the button counter from the remote store; every change of the raw
    value (and the very first read) is propagated as a boolean to the LED
    resource on the remote store, on the local store, and to the messenger
    when the device is registered. The three propagation steps are
    independent: a failure in one is logged and the others still run.

    The remote session is passed per call because the supervisor replaces
    it on recovery. The local session is fixed for the bridge's lifetime.
    """

    def __init__(
        self,
        *,
        local: LocalSession,
        schema: ResourceSchema,
        button_path: ResourcePath,
        led_path: ResourcePath,
        messenger: Messenger,
        indicator: Indicator,
        clock: Clock,
        state: BridgeState,
        pulse_s: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        if not button_path.is_resource or not led_path.is_resource:
            raise ValueError("button_path and led_path must address resources (/O/I/R)")

        self.local = local
        self.button_path = button_path
        self.led_path = led_path
        self.button_endpoint = schema.endpoint_for(button_path)
        self.led_endpoint = schema.endpoint_for(led_path)
        self._messenger = messenger
        self._indicator = indicator
        self._clock = clock
        self.state = state
        self.pulse_s = float(pulse_s)
        self._log = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------
    def poll(self, remote: RemoteSession) -> PollExit:
        """
        Run until a read of the button counter fails, then return.

        Each iteration ends with a heartbeat pulse (off, sleep pulse_s, on),
        whether or not the counter changed.
        """
        self._log.info("POLL_START endpoint=%s path=%s", self.button_endpoint, self.button_path)
        polls = 0

        while True:
            try:
                self.observe(remote)
            except SessionOperationError as e:
                self._log.error("BUTTON_READ_FAILED path=%s err=%s", self.button_path, e.hint or e.message)
                return PollExit(reason=e.hint or e.message, polls=polls)
            polls += 1

            self._indicator.set(False)
            self._clock.sleep(self.pulse_s)
            self._indicator.set(True)

    def observe(self, remote: RemoteSession) -> Optional[PropagationResult]:
        """
        One read + compare step. Raises SessionOperationError on read failure.

        Returns the propagation result, or None if nothing changed (or the
        counter has no value yet).
        """
        value = remote.read_integer(self.button_endpoint, str(self.button_path))
        self.state.polls += 1

        if value is None:
            return None
        if self.state.last_counter is not None and value == self.state.last_counter:
            return None

        self._log.debug("COUNTER_CHANGED old=%s new=%d", self.state.last_counter, value)
        result = self.propagate(remote, counter_to_state(value), counter=value)
        self.state.last_counter = value
        return result

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------
    def propagate(self, remote: RemoteSession, led_state: bool, *, counter: int) -> PropagationResult:
        remote_ok = self._write_remote(remote, led_state)
        if not remote_ok:
            self._log.error("LED_WRITE_REMOTE_FAILED value=%s", led_state)

        local_ok = self._set_local(led_state)
        if not local_ok:
            self._log.error("LED_SET_LOCAL_FAILED value=%s", led_state)

        notified: Optional[bool] = None
        if self.state.registered:
            notified = self._notify(led_state)
            if not notified:
                self._log.error("FLOW_MESSAGE_SEND_FAILED value=%s", led_state)

        self.state.led_state = led_state
        self.state.propagations += 1
        return PropagationResult(
            state=led_state,
            counter=counter,
            remote_ok=remote_ok,
            local_ok=local_ok,
            notified=notified,
        )

    def _write_remote(self, remote: RemoteSession, value: bool) -> bool:
        path = str(self.led_path)
        try:
            if not remote.is_resource_defined(path):
                self._log.error("LED_RESOURCE_UNDEFINED role=%s path=%s", remote.role, path)
                return False
            remote.write_boolean(self.led_endpoint, path, value)
        except SessionOperationError as e:
            self._log.error("LED_WRITE_REMOTE_ERROR path=%s err=%s", path, e.hint or e.message)
            return False
        self._log.info("LED_WRITTEN_REMOTE endpoint=%s value=%s", self.led_endpoint, value)
        return True

    def _set_local(self, value: bool) -> bool:
        path = str(self.led_path)
        instance = str(self.led_path.instance_path)
        try:
            exists = self.local.contains_path(instance)
        except SessionOperationError as e:
            self._log.debug("LED_INSTANCE_LOOKUP_FAILED path=%s err=%s", instance, e.hint or e.message)
            exists = False

        try:
            self.local.set_boolean(path, value, create_instance=None if exists else instance)
        except SessionOperationError as e:
            self._log.error("LED_SET_LOCAL_ERROR path=%s err=%s", path, e.hint or e.message)
            return False
        self._log.info("LED_SET_LOCAL value=%s created_instance=%s", value, not exists)
        return True

    def _notify(self, value: bool) -> bool:
        text = format_message(value, self._clock.now())
        try:
            return bool(self._messenger.notify(text))
        except Exception:
            self._log.exception("MESSENGER_NOTIFY_ERROR")
            return False
