# gateway/runtime/gates.py
from __future__ import annotations

import logging
from typing import Optional

from gateway.core.clock import Clock, poll_until
from gateway.core.errors import SessionClosedError, SessionConnectError, SessionOperationError
from gateway.core.retry import retry
from gateway.model.schema import ResourcePath
from gateway.runtime.session import LocalSession, RemoteSession, SessionFactory

_log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

def is_provisioned(session: Optional[LocalSession], marker: ResourcePath) -> bool:
    """
    True iff the provisioning marker instance exists on the local store.

    Any lookup failure (no session, closed session, operation error) reads
    as "not provisioned yet".
    """
    if session is None or not session.is_connected:
        return False
    try:
        found = session.contains_path(str(marker))
    except (SessionOperationError, SessionClosedError) as e:
        _log.debug("PROVISIONING_LOOKUP_FAILED marker=%s err=%s", marker, e)
        return False
    if found:
        _log.info("GATEWAY_PROVISIONED marker=%s", marker)
    return found


class ProvisioningGate:
    """
    Blocks until the provisioning marker appears on the local store.

    Between attempts the local session is discarded, the gate sleeps
    backoff_s and a fresh session is created. Passes exactly once.
    """

    def __init__(
        self,
        factory: SessionFactory,
        marker: ResourcePath,
        *,
        backoff_s: float,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ):
        self._factory = factory
        self.marker = marker
        self.backoff_s = float(backoff_s)
        self._clock = clock
        self._log = logger or _log
        self.passed = False
        self.checks = 0

    def wait(self, session: Optional[LocalSession] = None) -> LocalSession:
        """Return a connected, provisioned local session."""
        if self.passed:
            raise RuntimeError("Provisioning gate already passed")

        self._log.info("WAITING_FOR_PROVISIONING marker=%s", self.marker)
        current: list[Optional[LocalSession]] = [session]

        def attempt() -> bool:
            if current[0] is None or current[0].is_closed:
                current[0] = self._open_local()
            self.checks += 1
            if is_provisioned(current[0], self.marker):
                return True
            self._log.info("WAITING_FOR_PROVISIONING attempt=%d", self.checks)
            if current[0] is not None:
                current[0].close()
                current[0] = None
            return False

        retry(
            attempt,
            max_attempts=None,
            backoff_s=self.backoff_s,
            clock=self._clock,
            logger=self._log,
            name="provisioning",
        )
        self.passed = True
        assert current[0] is not None
        return current[0]

    def _open_local(self) -> Optional[LocalSession]:
        try:
            return self._factory.open_local()
        except SessionConnectError:
            return None


# ---------------------------------------------------------------------------
# Peer presence
# ---------------------------------------------------------------------------

def is_peer_registered(session: RemoteSession, peer_id: str) -> bool:
    """Fresh enumeration of the remote client registry; True iff peer_id is listed."""
    try:
        clients = session.list_clients()
    except SessionOperationError as e:
        _log.error("LIST_CLIENTS_FAILED err=%s", e.hint or e.message)
        return False
    if peer_id in clients:
        _log.info("PEER_REGISTERED endpoint=%s", peer_id)
        return True
    return False


def wait_for_peer(
    session: RemoteSession,
    peer_id: str,
    *,
    period_s: float,
    clock: Clock,
    logger: Optional[logging.Logger] = None,
) -> int:
    """
    Block until peer_id shows up in the remote registry. No deadline: an
    absent peer blocks forever. Returns the number of checks made.
    """
    log = logger or _log
    log.info("WAITING_FOR_PEER endpoint=%s", peer_id)
    return poll_until(lambda: is_peer_registered(session, peer_id), period_s=period_s, clock=clock)
