# gateway/model/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from .schema import ObjectDescriptor, ResourceDescriptor, ResourceSchema, ResourceType


DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parents[1] / "metadata" / "objects.yml"


class SchemaLoader:
    """
    Loads the static object/resource schema from YAML into immutable model
    classes.

    Expected layout:

        objects:
          3200:
            name: DigitalInput
            endpoint: ButtonDevice
            min_instances: 0
            max_instances: 1
            resources:
              5501: {name: Counter, type: integer}

    Mapping order in the file is the definition order.
    """

    def __init__(self, path: str | Path = DEFAULT_SCHEMA_PATH):
        self.path = Path(path)

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self) -> dict:
        if not self.path.exists():
            raise FileNotFoundError(f"Missing schema file: {self.path}")

        with open(self.path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load(self) -> ResourceSchema:
        data = self._load_yaml()

        objects = data.get("objects")
        if not isinstance(objects, dict) or not objects:
            raise ValueError(f"{self.path.name} is missing 'objects' root node")

        seen: set[int] = set()
        out: List[ObjectDescriptor] = []
        for oid_raw, oinfo in objects.items():
            oid = int(oid_raw)
            if oid in seen:
                raise ValueError(f"Object {oid} defined twice")
            seen.add(oid)
            out.append(self._parse_object(oid, oinfo))

        return ResourceSchema(objects=tuple(out))

    # ---------------------------------------------------------------------
    # Objects / resources
    # ---------------------------------------------------------------------
    def _parse_object(self, oid: int, oinfo: Any) -> ObjectDescriptor:
        if not isinstance(oinfo, dict):
            raise ValueError(f"Object {oid} entry must be a mapping")

        name = oinfo.get("name")
        if not name:
            raise ValueError(f"Object {oid} is missing 'name'")

        endpoint = oinfo.get("endpoint")
        if not endpoint:
            raise ValueError(f"Object {oid} is missing 'endpoint'")

        min_instances = int(oinfo.get("min_instances", 0))
        max_instances = int(oinfo.get("max_instances", 1))
        if min_instances < 0 or max_instances < max(1, min_instances):
            raise ValueError(
                f"Object {oid} has invalid cardinality min={min_instances} max={max_instances}"
            )

        resources = oinfo.get("resources") or {}
        if not isinstance(resources, dict) or not resources:
            raise ValueError(f"Object {oid} 'resources' must be a non-empty mapping")

        parsed: Dict[int, ResourceDescriptor] = {}
        for rid_raw, rinfo in resources.items():
            rid = int(rid_raw)
            if rid in parsed:
                raise ValueError(f"Object {oid} resource {rid} defined twice")
            if not isinstance(rinfo, dict):
                raise ValueError(f"Object {oid} resource {rid} entry must be a mapping")

            rname = rinfo.get("name")
            if not rname:
                raise ValueError(f"Object {oid} resource {rid} is missing 'name'")

            try:
                rtype = ResourceType(str(rinfo.get("type", "")).lower())
            except ValueError:
                raise ValueError(
                    f"Object {oid} resource {rid} has unsupported type {rinfo.get('type')!r}"
                ) from None

            parsed[rid] = ResourceDescriptor(resource_id=rid, name=str(rname), type=rtype)

        return ObjectDescriptor(
            object_id=oid,
            name=str(name),
            endpoint=str(endpoint),
            resources=tuple(parsed.values()),
            min_instances=min_instances,
            max_instances=max_instances,
        )


def load_schema(path: str | Path = DEFAULT_SCHEMA_PATH) -> ResourceSchema:
    return SchemaLoader(path).load()
