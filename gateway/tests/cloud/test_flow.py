from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest

from gateway.cloud import flow
from gateway.cloud.credentials import FlowCredentials
from gateway.cloud.disabled import DisabledMessenger
from gateway.cloud.flow import FlowMessenger
from gateway.store.errors import StoreOpenError

CREDS = FlowCredentials(
    url="https://ws-uat.flowworld.com",
    customer_key="key-123",
    customer_secret="secret-456",
    remember_me_token="token-789",
)


class StaticCredentials:
    def __init__(self, creds: Optional[FlowCredentials]):
        self.creds = creds
        self.loads = 0

    def load(self) -> Optional[FlowCredentials]:
        self.loads += 1
        return self.creds


class FakeFlowLib:
    DEFAULTS: Dict[str, Any] = {
        "FlowCore_Initialise": True,
        "FlowMessaging_Initialise": True,
        "FlowClient_ConnectToServer": True,
        "FlowClient_IsDeviceLoggedIn": True,
        "FlowNVS_Set": True,
        "FlowMemoryManager_New": 11,
        "FlowClient_GetLoggedInDevice": 22,
        "FlowDevice_RetrieveOwner": 33,
        "FlowUser_GetUserID": b"user-1",
        "FlowMessaging_SendMessageToUser": True,
    }

    def __init__(self, **overrides: Any):
        self.calls: List[Tuple[str, tuple]] = []
        self.values = {**self.DEFAULTS, **overrides}

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)

        def fn(*args: Any) -> Any:
            self.calls.append((name, args))
            return self.values.get(name)

        return fn

    def names(self) -> List[str]:
        return [n for n, _ in self.calls]

    def args(self, name: str) -> tuple:
        return [a for n, a in self.calls if n == name][0]


def test_register_seeds_token_and_connects() -> None:
    lib = FakeFlowLib()
    m = FlowMessenger(StaticCredentials(CREDS), library=lib)

    assert m.register() is True

    assert lib.names()[:5] == [
        "FlowCore_Initialise",
        "FlowNVS_Set",
        "FlowCore_Shutdown",
        "FlowCore_Initialise",
        "FlowCore_RegisterTypes",
    ]
    key, token, length = lib.args("FlowNVS_Set")
    assert key == b"core.deviceremembermetoken"
    assert token == b"token-789"
    assert length == len(b"token-789") + 1
    assert lib.args("FlowClient_ConnectToServer") == (
        b"https://ws-uat.flowworld.com", b"key-123", b"secret-456", True,
    )
    assert m.is_logged_in() is True


def test_register_without_credentials_never_touches_library() -> None:
    lib = FakeFlowLib()
    m = FlowMessenger(StaticCredentials(None), library=lib)

    assert m.register() is False
    assert lib.calls == []


def test_register_connect_failure_shuts_down() -> None:
    lib = FakeFlowLib(FlowClient_ConnectToServer=False)
    m = FlowMessenger(StaticCredentials(CREDS), library=lib)

    assert m.register() is False
    assert lib.names()[-2:] == ["FlowCore_Shutdown", "FlowMessaging_Shutdown"]


def test_register_fails_when_device_not_logged_in() -> None:
    lib = FakeFlowLib(FlowClient_IsDeviceLoggedIn=False)
    m = FlowMessenger(StaticCredentials(CREDS), library=lib)

    assert m.register() is False


def test_register_fails_when_library_missing(monkeypatch) -> None:
    def load(*args: Any, **kwargs: Any):
        raise StoreOpenError("Could not load FlowCloud library 'libflowcore.so'")

    monkeypatch.setattr(flow.FlowLibrary, "load", staticmethod(load))
    m = FlowMessenger(StaticCredentials(CREDS))

    assert m.register() is False
    assert m.is_logged_in() is False


class PartialCDLL:
    """Shared library stand-in that lacks some SDK symbols."""

    def __init__(self, path: str, missing: Tuple[str, ...] = ("FlowNVS_Set",)):
        self.path = path
        self.missing = missing

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name in self.missing:
            raise AttributeError(name)
        fn = SimpleNamespace(restype=None, argtypes=None)
        setattr(self, name, fn)
        return fn


def test_library_missing_symbol_is_an_open_error(monkeypatch) -> None:
    monkeypatch.setattr(flow.ctypes.util, "find_library", lambda name: None)
    monkeypatch.setattr(flow.ctypes, "CDLL", PartialCDLL)

    with pytest.raises(StoreOpenError) as ei:
        flow.FlowLibrary.load()

    assert "FlowNVS_Set" in str(ei.value)


def test_register_with_partial_sdk_install_fails_cleanly(monkeypatch) -> None:
    monkeypatch.setattr(flow.ctypes.util, "find_library", lambda name: None)
    monkeypatch.setattr(flow.ctypes, "CDLL", PartialCDLL)
    m = FlowMessenger(StaticCredentials(CREDS))

    assert m.register() is False


def test_notify_sends_text_to_device_owner() -> None:
    lib = FakeFlowLib()
    m = FlowMessenger(StaticCredentials(CREDS), library=lib, message_expiry_s=20)

    assert m.notify("14:05:07 09-03-2024 LED on") is True

    user, ctype, payload, length, expiry = lib.args("FlowMessaging_SendMessageToUser")
    assert user == b"user-1"
    assert ctype == b"text/plain"
    assert payload == b"14:05:07 09-03-2024 LED on"
    assert length == len(payload)
    assert expiry == 20
    assert "FlowMemoryManager_Free" in lib.names()


def test_notify_without_owner_fails_and_frees_memory_manager() -> None:
    lib = FakeFlowLib(FlowClient_GetLoggedInDevice=None)
    m = FlowMessenger(StaticCredentials(CREDS), library=lib)

    assert m.notify("x") is False
    assert "FlowMessaging_SendMessageToUser" not in lib.names()
    assert "FlowMemoryManager_Free" in lib.names()


def test_notify_send_failure_reports_false() -> None:
    lib = FakeFlowLib(FlowMessaging_SendMessageToUser=False)
    m = FlowMessenger(StaticCredentials(CREDS), library=lib)

    assert m.notify("x") is False


def test_disabled_messenger_never_registers() -> None:
    m = DisabledMessenger()
    assert m.register() is False
    assert m.is_logged_in() is False
    assert m.notify("x") is False
