from __future__ import annotations

import pytest

from gateway.store.errors import StoreDefinitionError, StoreOpenError, StoreOperationError
from gateway.store.memory import MemoryClientStore, MemoryServerStore, daemon_at


def _client(port: int = 12345) -> MemoryClientStore:
    s = MemoryClientStore("127.0.0.1", port)
    s.open()
    return s


def _server(port: int = 54321) -> MemoryServerStore:
    s = MemoryServerStore("127.0.0.1", port)
    s.open()
    return s


def test_open_fails_when_daemon_unavailable() -> None:
    daemon_at("127.0.0.1", 12345).available = False
    with pytest.raises(StoreOpenError):
        MemoryClientStore("127.0.0.1", 12345).open()


def test_operations_require_open_store() -> None:
    s = MemoryClientStore("127.0.0.1", 12345)
    with pytest.raises(StoreOperationError):
        s.is_object_defined(3200)


def test_define_is_visible_to_later_sessions_on_same_daemon(schema) -> None:
    s = _client()
    s.define([s.new_definition(o) for o in schema], timeout_s=1.0)
    s.close()

    again = _client()
    assert again.is_object_defined(3200) is True
    assert again.is_object_defined(3311) is True
    # different port, different daemon
    assert _client(port=9999).is_object_defined(3200) is False


def test_define_twice_is_rejected(schema) -> None:
    s = _client()
    defs = [s.new_definition(o) for o in schema]
    s.define(defs, timeout_s=1.0)
    with pytest.raises(StoreDefinitionError):
        s.define(defs, timeout_s=1.0)


def test_set_boolean_needs_instance_unless_created(schema) -> None:
    s = _client()
    s.define([s.new_definition(o) for o in schema], timeout_s=1.0)

    with pytest.raises(StoreOperationError):
        s.set_boolean("/3311/0/5850", True, 1.0)

    s.set_boolean("/3311/0/5850", True, 1.0, create_instance="/3311/0")
    assert s.contains_path("/3311/0", 1.0) is True
    assert daemon_at("127.0.0.1", 12345).values["/3311/0/5850"] is True

    s.set_boolean("/3311/0/5850", False, 1.0)
    assert daemon_at("127.0.0.1", 12345).values["/3311/0/5850"] is False


def test_set_boolean_on_undefined_object_fails() -> None:
    s = _client()
    with pytest.raises(StoreOperationError):
        s.set_boolean("/3311/0/5850", True, 1.0, create_instance="/3311/0")


def test_server_reads_and_writes_registered_clients() -> None:
    d = daemon_at("127.0.0.1", 54321)
    d.register_client("ButtonDevice")
    d.register_client("LedDevice")
    srv = _server()

    assert srv.list_clients(1.0) == ["ButtonDevice", "LedDevice"]
    assert srv.read_integer("ButtonDevice", "/3200/0/5501", 1.0) is None

    d.set_client_value("ButtonDevice", "/3200/0/5501", 7)
    assert srv.read_integer("ButtonDevice", "/3200/0/5501", 1.0) == 7

    srv.write_boolean("LedDevice", "/3311/0/5850", True, 1.0)
    assert d.client_value("LedDevice", "/3311/0/5850") is True


def test_server_read_from_unregistered_client_fails() -> None:
    srv = _server()
    with pytest.raises(StoreOperationError):
        srv.read_integer("ButtonDevice", "/3200/0/5501", 1.0)


def test_server_read_fails_once_daemon_goes_away() -> None:
    d = daemon_at("127.0.0.1", 54321)
    d.register_client("ButtonDevice")
    srv = _server()
    d.available = False
    with pytest.raises(StoreOperationError):
        srv.read_integer("ButtonDevice", "/3200/0/5501", 1.0)


def test_is_resource_defined_follows_definitions(schema) -> None:
    srv = _server()
    assert srv.is_resource_defined("/3311/0/5850") is False

    srv.define([srv.new_definition(o) for o in schema], timeout_s=1.0)
    assert srv.is_resource_defined("/3311/0/5850") is True
    assert srv.is_resource_defined("/3311/0/9999") is False
    assert srv.is_resource_defined("/3311/0") is False
    assert srv.path_to_ids("/3311/0/5850") == (3311, 0, 5850)
