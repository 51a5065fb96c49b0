from .base import ClientStore, ResourceStore, ServerStore
from .errors import StoreDefinitionError, StoreError, StoreOpenError, StoreOperationError
from .registry import ROLE_CLIENT, ROLE_SERVER, StoreDriverRegistry

__all__ = [
    "ClientStore", "ResourceStore", "ServerStore",
    "StoreDefinitionError", "StoreError", "StoreOpenError", "StoreOperationError",
    "ROLE_CLIENT", "ROLE_SERVER", "StoreDriverRegistry",
]
