# gateway/store/memory.py
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from gateway.model.schema import ObjectDescriptor, ResourcePath, ResourceType

from .base import ClientStore, ServerStore
from .errors import StoreDefinitionError, StoreOpenError, StoreOperationError


class MemoryDaemon:
    """
    In-process stand-in for a store daemon listening on (address, port).

    Holds object definitions, the local object instances/values (client
    role) and the values reported by registered peer endpoints (server
    role). Sessions connect to it by address/port, so state survives a
    session being closed and re-opened.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.available = True
        self.definitions: Dict[int, ObjectDescriptor] = {}
        self.instances: Set[str] = set()
        self.values: Dict[str, Any] = {}
        self.clients: Dict[str, Dict[str, Any]] = {}
        self.define_calls = 0

    # --- peer simulation helpers ---
    def register_client(self, endpoint: str) -> None:
        with self.lock:
            self.clients.setdefault(endpoint, {})

    def deregister_client(self, endpoint: str) -> None:
        with self.lock:
            self.clients.pop(endpoint, None)

    def set_client_value(self, endpoint: str, path: str, value: Any) -> None:
        with self.lock:
            self.clients.setdefault(endpoint, {})[str(ResourcePath.parse(path))] = value

    def client_value(self, endpoint: str, path: str) -> Any:
        with self.lock:
            return self.clients.get(endpoint, {}).get(str(ResourcePath.parse(path)))


_DAEMONS: Dict[Tuple[str, int], MemoryDaemon] = {}
_DAEMONS_LOCK = threading.Lock()


def daemon_at(address: str, port: int) -> MemoryDaemon:
    """Return the daemon bound to (address, port), creating it on first use."""
    key = (str(address), int(port))
    with _DAEMONS_LOCK:
        d = _DAEMONS.get(key)
        if d is None:
            d = MemoryDaemon()
            _DAEMONS[key] = d
        return d


def reset_daemons() -> None:
    with _DAEMONS_LOCK:
        _DAEMONS.clear()


class _MemoryStoreMixin:
    """Connection handling + definitions shared by both roles."""

    address: str
    port: int

    def _init_memory(self) -> None:
        self._daemon: Optional[MemoryDaemon] = None

    def open(self) -> None:
        d = daemon_at(self.address, self.port)
        if not d.available:
            raise StoreOpenError(f"No store daemon at {self.address}:{self.port}")
        self._daemon = d

    def close(self) -> None:
        self._daemon = None

    def is_open(self) -> bool:
        return self._daemon is not None

    def _require(self) -> MemoryDaemon:
        d = self._daemon
        if d is None:
            raise StoreOperationError("operation while store not open")
        if not d.available:
            raise StoreOperationError(f"Store daemon at {self.address}:{self.port} went away")
        return d

    def is_object_defined(self, object_id: int) -> bool:
        d = self._require()
        with d.lock:
            return int(object_id) in d.definitions

    def new_definition(self, obj: ObjectDescriptor) -> ObjectDescriptor:
        seen: Set[int] = set()
        for r in obj.resources:
            if not isinstance(r.type, ResourceType):
                raise StoreDefinitionError(
                    f"Could not add resource definition ({r.name} [{r.resource_id}]): "
                    f"unsupported type {r.type!r}"
                )
            if r.resource_id in seen:
                raise StoreDefinitionError(
                    f"Could not add resource definition ({r.name} [{r.resource_id}]): duplicate id"
                )
            seen.add(r.resource_id)
        return obj

    def define(self, definitions: Sequence[ObjectDescriptor], timeout_s: float) -> None:
        d = self._require()
        with d.lock:
            for obj in definitions:
                if obj.object_id in d.definitions:
                    raise StoreDefinitionError(f"Object {obj.object_id} already defined")
            for obj in definitions:
                d.definitions[obj.object_id] = obj
            d.define_calls += 1


class MemoryClientStore(_MemoryStoreMixin, ClientStore):
    def __init__(self, address: str, port: int):
        super().__init__(address, port)
        self._init_memory()

    def contains_path(self, path: str, timeout_s: float) -> bool:
        d = self._require()
        p = str(ResourcePath.parse(path))
        with d.lock:
            return p in d.instances or p in d.values

    def set_boolean(
        self,
        path: str,
        value: bool,
        timeout_s: float,
        *,
        create_instance: Optional[str] = None,
    ) -> None:
        d = self._require()
        rp = ResourcePath.parse(path)
        with d.lock:
            obj = d.definitions.get(rp.object_id)
            if obj is None or rp.resource_id is None or obj.resource(rp.resource_id) is None:
                raise StoreOperationError(f"Path {rp} is not defined")
            if create_instance is not None:
                d.instances.add(str(ResourcePath.parse(create_instance)))
            if str(rp.instance_path) not in d.instances:
                raise StoreOperationError(f"Object instance {rp.instance_path} does not exist")
            d.values[str(rp)] = bool(value)


class MemoryServerStore(_MemoryStoreMixin, ServerStore):
    def __init__(self, address: str, port: int):
        super().__init__(address, port)
        self._init_memory()

    def list_clients(self, timeout_s: float) -> List[str]:
        d = self._require()
        with d.lock:
            return sorted(d.clients)

    def read_integer(self, endpoint: str, path: str, timeout_s: float) -> Optional[int]:
        d = self._require()
        p = str(ResourcePath.parse(path))
        with d.lock:
            if endpoint not in d.clients:
                raise StoreOperationError(f"Client '{endpoint}' is not registered")
            value = d.clients[endpoint].get(p)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise StoreOperationError(f"Value at {p} is not an integer")
        return value

    def write_boolean(self, endpoint: str, path: str, value: bool, timeout_s: float) -> None:
        d = self._require()
        p = str(ResourcePath.parse(path))
        with d.lock:
            if endpoint not in d.clients:
                raise StoreOperationError(f"Client '{endpoint}' is not registered")
            d.clients[endpoint][p] = bool(value)

    def path_to_ids(self, path: str) -> Tuple[int, Optional[int], Optional[int]]:
        try:
            rp = ResourcePath.parse(path)
        except ValueError as e:
            raise StoreOperationError(str(e)) from None
        return rp.object_id, rp.instance_id, rp.resource_id

    def is_resource_defined(self, path: str) -> bool:
        object_id, _instance_id, resource_id = self.path_to_ids(path)
        d = self._require()
        with d.lock:
            obj = d.definitions.get(object_id)
        if obj is None or resource_id is None:
            return False
        return obj.resource(resource_id) is not None
