from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from gateway.model.loader import SchemaLoader, load_schema
from gateway.model.schema import ResourcePath, ResourceType


def _write(p: Path, text: str) -> Path:
    f = p / "objects.yml"
    f.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return f


def test_default_schema_has_button_and_led_objects() -> None:
    schema = load_schema()

    assert [o.object_id for o in schema] == [3200, 3311]
    assert schema.endpoints() == ("ButtonDevice", "LedDevice")

    button = schema.get(3200)
    assert button is not None
    assert button.name == "DigitalInput"
    assert (button.min_instances, button.max_instances) == (0, 1)
    counter = button.resource(5501)
    assert counter is not None
    assert counter.type is ResourceType.INTEGER
    assert counter.mandatory and counter.writable

    led = schema.get(3311)
    assert led is not None
    assert led.resource(5850).type is ResourceType.BOOLEAN


def test_endpoint_for_maps_paths_to_hosting_peer() -> None:
    schema = load_schema()

    assert schema.endpoint_for(ResourcePath(3200, 0, 5501)) == "ButtonDevice"
    assert schema.endpoint_for(ResourcePath(3311, 0, 5850)) == "LedDevice"
    with pytest.raises(KeyError):
        schema.endpoint_for(ResourcePath(9999, 0, 1))


def test_endpoints_are_deduplicated_in_order(tmp_path: Path) -> None:
    f = _write(
        tmp_path,
        """
        objects:
          10:
            name: A
            endpoint: Peer
            resources: {1: {name: X, type: integer}}
          11:
            name: B
            endpoint: Other
            resources: {1: {name: X, type: boolean}}
          12:
            name: C
            endpoint: Peer
            resources: {1: {name: X, type: boolean}}
        """,
    )

    assert SchemaLoader(f).load().endpoints() == ("Peer", "Other")


def test_unknown_resource_type_rejected(tmp_path: Path) -> None:
    f = _write(
        tmp_path,
        """
        objects:
          10:
            name: A
            endpoint: Peer
            resources: {1: {name: X, type: float}}
        """,
    )
    with pytest.raises(ValueError, match="unsupported type"):
        SchemaLoader(f).load()


def test_duplicate_resource_id_rejected(tmp_path: Path) -> None:
    f = _write(
        tmp_path,
        """
        objects:
          10:
            name: A
            endpoint: Peer
            resources:
              1: {name: X, type: integer}
              "1": {name: Y, type: integer}
        """,
    )
    with pytest.raises(ValueError, match="defined twice"):
        SchemaLoader(f).load()


def test_object_without_endpoint_rejected(tmp_path: Path) -> None:
    f = _write(
        tmp_path,
        """
        objects:
          10:
            name: A
            resources: {1: {name: X, type: integer}}
        """,
    )
    with pytest.raises(ValueError, match="endpoint"):
        SchemaLoader(f).load()


def test_missing_objects_root_rejected(tmp_path: Path) -> None:
    f = _write(tmp_path, "something_else: {}\n")
    with pytest.raises(ValueError, match="objects"):
        SchemaLoader(f).load()


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SchemaLoader(tmp_path / "nope.yml").load()


@pytest.mark.parametrize(
    "text, expected",
    [
        ("/3200/0/5501", ResourcePath(3200, 0, 5501)),
        ("/20001/0", ResourcePath(20001, 0)),
        ("3311/0/5850", ResourcePath(3311, 0, 5850)),
    ],
)
def test_resource_path_parse(text: str, expected: ResourcePath) -> None:
    p = ResourcePath.parse(text)
    assert p == expected
    assert str(ResourcePath.parse(str(p))) == str(expected)


@pytest.mark.parametrize("text", ["/3200", "/a/0/1", "/1/2/3/4", "/1/-1"])
def test_resource_path_parse_rejects_invalid(text: str) -> None:
    with pytest.raises(ValueError):
        ResourcePath.parse(text)


def test_instance_path_drops_resource() -> None:
    p = ResourcePath(3311, 0, 5850)
    assert p.is_resource
    assert str(p.instance_path) == "/3311/0"
    assert not p.instance_path.is_resource
