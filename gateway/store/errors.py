# gateway/store/errors.py
from __future__ import annotations


class StoreError(Exception):
    """Base class for resource-store driver failures."""

class StoreOpenError(StoreError):
    pass

class StoreOperationError(StoreError):
    pass

class StoreDefinitionError(StoreError):
    pass
