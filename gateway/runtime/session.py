# gateway/runtime/session.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from gateway.core.errors import (
    ConfigError,
    SchemaDefinitionError,
    SessionClosedError,
    SessionConnectError,
    SessionOperationError,
)
from gateway.model.schema import ObjectDescriptor
from gateway.store.base import ClientStore, ResourceStore, ServerStore
from gateway.store.errors import StoreError
from gateway.store.registry import ROLE_CLIENT, ROLE_SERVER, StoreDriverRegistry


@dataclass(frozen=True)
class StoreEndpoint:
    """Where a session connects: driver key + IPC address/port."""
    driver: str
    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.driver}://{self.address}:{self.port}"


class ResourceSession:
    """
    Owns exactly one store connection.

    Lifecycle: create -> connect() -> (define | read | write)* -> close().
    close() disconnects and frees the store; any use afterwards raises
    SessionClosedError. A closed session is never reconnected, a new one
    is created instead.
    """

    role: str = ""

    def __init__(
        self,
        *,
        store: ResourceStore,
        endpoint: StoreEndpoint,
        timeout_s: float,
        logger: Optional[logging.Logger] = None,
    ):
        self._store: Optional[ResourceStore] = store
        self.endpoint = endpoint
        self.timeout_s = float(timeout_s)
        self._log = logger or logging.getLogger(__name__)
        self._connected = False
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return self._connected and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    def connect(self) -> None:
        store = self._require_store()
        if self._connected:
            return
        try:
            store.open()
        except StoreError as e:
            self._log.error("SESSION_CONNECT_FAILED role=%s endpoint=%s err=%s", self.role, self.endpoint, e)
            raise SessionConnectError(
                f"Could not connect {self.role} session to {self.endpoint}.",
                hint=str(e),
                details={"role": self.role, "endpoint": str(self.endpoint)},
            ) from None
        self._connected = True
        self._log.info("SESSION_ESTABLISHED role=%s endpoint=%s", self.role, self.endpoint)

    def close(self) -> None:
        """Disconnect + free. Idempotent; failures are logged, never raised."""
        if self._closed:
            return
        store = self._store
        self._closed = True
        self._connected = False
        self._store = None
        if store is None:
            return
        try:
            store.close()
        except Exception:
            self._log.exception("SESSION_CLOSE_FAILED role=%s endpoint=%s", self.role, self.endpoint)
        else:
            self._log.info("SESSION_CLOSED role=%s endpoint=%s", self.role, self.endpoint)

    def __enter__(self) -> "ResourceSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- definitions ---
    def is_object_defined(self, object_id: int) -> bool:
        store = self._require_connected()
        try:
            return store.is_object_defined(object_id)
        except StoreError as e:
            raise self._op_error("is_object_defined", e) from None

    def new_definition(self, obj: ObjectDescriptor) -> Any:
        store = self._require_connected()
        try:
            return store.new_definition(obj)
        except StoreError as e:
            raise SchemaDefinitionError(
                f"Could not build definition for object {obj.name} [{obj.object_id}].",
                hint=str(e),
                details={"role": self.role, "object_id": obj.object_id},
            ) from None

    def define(self, definitions: Sequence[Any]) -> None:
        store = self._require_connected()
        try:
            store.define(definitions, self.timeout_s)
        except StoreError as e:
            raise SchemaDefinitionError(
                f"Failed to perform define operation on {self.role}.",
                hint=str(e),
                details={"role": self.role, "count": len(definitions)},
            ) from None

    # --- helpers ---
    def _require_store(self) -> ResourceStore:
        if self._closed or self._store is None:
            raise SessionClosedError(f"{self.role} session used after close")
        return self._store

    def _require_connected(self) -> Any:
        store = self._require_store()
        if not self._connected:
            raise SessionOperationError(
                f"{self.role} session is not connected.",
                details={"role": self.role, "endpoint": str(self.endpoint)},
            )
        return store

    def _op_error(self, op: str, e: Exception) -> SessionOperationError:
        return SessionOperationError(
            f"{self.role} {op} failed.",
            hint=str(e),
            details={"role": self.role, "op": op, "endpoint": str(self.endpoint)},
        )

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("connected" if self._connected else "created")
        return f"{type(self).__name__}(endpoint='{self.endpoint}', state={state})"


class LocalSession(ResourceSession):
    """Session to the store colocated with the gateway (client daemon)."""

    role = ROLE_CLIENT

    def contains_path(self, path: str) -> bool:
        store: ClientStore = self._require_connected()
        try:
            return store.contains_path(path, self.timeout_s)
        except StoreError as e:
            raise self._op_error("get", e) from None

    def set_boolean(self, path: str, value: bool, *, create_instance: Optional[str] = None) -> None:
        store: ClientStore = self._require_connected()
        try:
            store.set_boolean(path, value, self.timeout_s, create_instance=create_instance)
        except StoreError as e:
            raise self._op_error("set", e) from None


class RemoteSession(ResourceSession):
    """Session to the device-management backend (server daemon)."""

    role = ROLE_SERVER

    def list_clients(self) -> List[str]:
        store: ServerStore = self._require_connected()
        try:
            return list(store.list_clients(self.timeout_s))
        except StoreError as e:
            raise self._op_error("list_clients", e) from None

    def read_integer(self, endpoint: str, path: str) -> Optional[int]:
        store: ServerStore = self._require_connected()
        try:
            return store.read_integer(endpoint, path, self.timeout_s)
        except StoreError as e:
            raise self._op_error("read", e) from None

    def write_boolean(self, endpoint: str, path: str, value: bool) -> None:
        store: ServerStore = self._require_connected()
        try:
            store.write_boolean(endpoint, path, value, self.timeout_s)
        except StoreError as e:
            raise self._op_error("write", e) from None

    def is_resource_defined(self, path: str) -> bool:
        store: ServerStore = self._require_connected()
        try:
            return store.is_resource_defined(path)
        except StoreError as e:
            self._log.error("RESOURCE_LOOKUP_FAILED path=%s err=%s", path, e)
            return False


class SessionFactory:
    """
    Creates sessions from endpoint settings + a driver registry.

    open_*() returns a connected session or raises SessionConnectError; a
    half-created session is closed before raising.
    """

    def __init__(
        self,
        *,
        local: StoreEndpoint,
        remote: StoreEndpoint,
        timeout_s: float,
        registry: Optional[StoreDriverRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.local = local
        self.remote = remote
        self.timeout_s = float(timeout_s)
        self._registry = registry or StoreDriverRegistry.default()
        self._log = logger or logging.getLogger(__name__)

        for ep in (local, remote):
            if not self._registry.has(ep.driver):
                raise ConfigError(
                    f"Unknown store driver '{ep.driver}'.",
                    hint=f"Valid drivers: {self._registry.names()}",
                    details={"driver": ep.driver},
                )

    def _create(self, endpoint: StoreEndpoint, role: str) -> ResourceStore:
        try:
            return self._registry.create(endpoint.driver, role, address=endpoint.address, port=endpoint.port)
        except (StoreError, TypeError) as e:
            raise SessionConnectError(
                f"Failed to construct {role} store (driver='{endpoint.driver}').",
                hint=str(e),
                details={"role": role, "endpoint": str(endpoint)},
            ) from None

    def create_local(self) -> LocalSession:
        return LocalSession(
            store=self._create(self.local, ROLE_CLIENT),
            endpoint=self.local,
            timeout_s=self.timeout_s,
            logger=self._log,
        )

    def create_remote(self) -> RemoteSession:
        return RemoteSession(
            store=self._create(self.remote, ROLE_SERVER),
            endpoint=self.remote,
            timeout_s=self.timeout_s,
            logger=self._log,
        )

    def open_local(self) -> LocalSession:
        return self._open(self.create_local())

    def open_remote(self) -> RemoteSession:
        return self._open(self.create_remote())

    @staticmethod
    def _open(session: Any) -> Any:
        try:
            session.connect()
        except Exception:
            session.close()
            raise
        return session
