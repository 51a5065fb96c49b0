# gateway/store/registry.py
from __future__ import annotations

from typing import Dict, Tuple, Type

from .awa import AwaClientStore, AwaServerStore
from .base import ClientStore, ResourceStore, ServerStore
from .errors import StoreError
from .memory import MemoryClientStore, MemoryServerStore


ROLE_CLIENT = "client"
ROLE_SERVER = "server"


class StoreDriverRegistry:
    """
    Driver key -> (client store class, server store class).

    Keys are case-insensitive. create() instantiates a store for one role
    and never opens it.
    """

    def __init__(self, drivers: Dict[str, Tuple[Type[ClientStore], Type[ServerStore]]]):
        self._drivers: Dict[str, Tuple[Type[ClientStore], Type[ServerStore]]] = {
            k.lower(): v for k, v in drivers.items()
        }

    @classmethod
    def default(cls) -> "StoreDriverRegistry":
        return cls(
            drivers={
                "awa": (AwaClientStore, AwaServerStore),
                "memory": (MemoryClientStore, MemoryServerStore),
            }
        )

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def names(self) -> list[str]:
        return sorted(self._drivers)

    def get_class(self, driver: str, role: str) -> Type[ResourceStore]:
        key = driver.lower()
        if key not in self._drivers:
            raise StoreError(f"Store driver '{driver}' not registered")
        client_cls, server_cls = self._drivers[key]
        if role == ROLE_CLIENT:
            return client_cls
        if role == ROLE_SERVER:
            return server_cls
        raise StoreError(f"Unknown store role '{role}'")

    def create(self, driver: str, role: str, **params) -> ResourceStore:
        store_cls = self.get_class(driver, role)
        return store_cls(**params)
