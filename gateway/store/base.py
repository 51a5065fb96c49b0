# gateway/store/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

from gateway.model.schema import ObjectDescriptor


class ResourceStore(ABC):
    """
    Abstract resource-store driver (one IPC connection to a store daemon).

    Contract:
      - open()/close() manage the underlying connection. close() is
        disconnect + free; the instance must not be reused afterwards.
      - every operation is blocking and bounded by timeout_s.
      - failures raise StoreError subclasses; "absent" is not a failure
        (e.g. contains_path() returns False).
      - new_definition() raises StoreDefinitionError if any resource of the
        object cannot be added; the partial definition is released first.
      - define() takes ownership of the definitions and releases them.
    """

    def __init__(self, address: str, port: int):
        self.address = address
        self.port = int(port)

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def is_object_defined(self, object_id: int) -> bool: ...

    @abstractmethod
    def new_definition(self, obj: ObjectDescriptor) -> Any: ...

    @abstractmethod
    def define(self, definitions: Sequence[Any], timeout_s: float) -> None: ...

    def __enter__(self) -> "ResourceStore":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address='{self.address}', port={self.port})"


class ClientStore(ResourceStore):
    """Store colocated with the gateway (LwM2M client daemon)."""

    @abstractmethod
    def contains_path(self, path: str, timeout_s: float) -> bool: ...

    @abstractmethod
    def set_boolean(
        self,
        path: str,
        value: bool,
        timeout_s: float,
        *,
        create_instance: Optional[str] = None,
    ) -> None: ...


class ServerStore(ResourceStore):
    """Device-management backend (LwM2M server daemon)."""

    @abstractmethod
    def list_clients(self, timeout_s: float) -> List[str]: ...

    @abstractmethod
    def read_integer(self, endpoint: str, path: str, timeout_s: float) -> Optional[int]: ...

    @abstractmethod
    def write_boolean(self, endpoint: str, path: str, value: bool, timeout_s: float) -> None: ...

    @abstractmethod
    def path_to_ids(self, path: str) -> Tuple[int, Optional[int], Optional[int]]: ...

    @abstractmethod
    def is_resource_defined(self, path: str) -> bool: ...
