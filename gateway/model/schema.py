# gateway/model/schema.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple


class ResourceType(str, Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    A single typed value inside an object.

    Every resource the gateway defines is mandatory and read-write.
    """
    resource_id: int
    name: str
    type: ResourceType
    mandatory: bool = True
    writable: bool = True


@dataclass(frozen=True)
class ObjectDescriptor:
    """
    A group of resources addressable as /<object_id>/<instance>/<resource_id>.

    endpoint is the peer device (LwM2M client name) that hosts the object.
    """
    object_id: int
    name: str
    endpoint: str
    resources: Tuple[ResourceDescriptor, ...]
    min_instances: int = 0
    max_instances: int = 1

    def resource(self, resource_id: int) -> Optional[ResourceDescriptor]:
        for r in self.resources:
            if r.resource_id == resource_id:
                return r
        return None


@dataclass(frozen=True)
class ResourceSchema:
    """Ordered, immutable list of object descriptors."""
    objects: Tuple[ObjectDescriptor, ...]

    def __iter__(self) -> Iterator[ObjectDescriptor]:
        return iter(self.objects)

    def __len__(self) -> int:
        return len(self.objects)

    def get(self, object_id: int) -> Optional[ObjectDescriptor]:
        for o in self.objects:
            if o.object_id == object_id:
                return o
        return None

    def endpoints(self) -> Tuple[str, ...]:
        """Peer endpoints in schema order, without duplicates."""
        seen: list[str] = []
        for o in self.objects:
            if o.endpoint not in seen:
                seen.append(o.endpoint)
        return tuple(seen)

    def endpoint_for(self, path: "ResourcePath") -> str:
        obj = self.get(path.object_id)
        if obj is None:
            raise KeyError(f"Object {path.object_id} is not part of the schema")
        return obj.endpoint


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResourcePath:
    """
    LwM2M-style path. resource_id=None addresses an object instance.
    """
    object_id: int
    instance_id: int = 0
    resource_id: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> "ResourcePath":
        parts = [p for p in str(text).strip().split("/") if p != ""]
        if len(parts) not in (2, 3):
            raise ValueError(f"Invalid resource path '{text}' (expected /O/I or /O/I/R)")
        try:
            ids = [int(p) for p in parts]
        except ValueError:
            raise ValueError(f"Invalid resource path '{text}' (ids must be integers)") from None
        if any(i < 0 for i in ids):
            raise ValueError(f"Invalid resource path '{text}' (ids must be >= 0)")
        return cls(ids[0], ids[1], ids[2] if len(ids) == 3 else None)

    @property
    def instance_path(self) -> "ResourcePath":
        return ResourcePath(self.object_id, self.instance_id)

    @property
    def is_resource(self) -> bool:
        return self.resource_id is not None

    def __str__(self) -> str:
        if self.resource_id is None:
            return f"/{self.object_id}/{self.instance_id}"
        return f"/{self.object_id}/{self.instance_id}/{self.resource_id}"
