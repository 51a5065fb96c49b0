# gateway/cloud/flow.py
"""
Messenger backed by the native FlowCloud SDK (libflowcore + libflowmessaging).

register() seeds the device remember-me token, restarts the core so it
picks the token up, starts messaging and logs in as a device.
notify() sends a text/plain message to the user that owns the device.
"""
from __future__ import annotations

import ctypes
import ctypes.util
import logging
from ctypes import POINTER, byref, c_bool, c_char_p, c_uint, c_void_p
from typing import Any, Optional

from gateway.store.errors import StoreOpenError

from .credentials import CredentialsLoader, FlowCredentials

FLOW_LIBRARIES = ("flowcore", "flowmessaging")
MESSAGE_EXPIRY_S = 20
CONTENT_TYPE = "text/plain"
REMEMBER_ME_KEY = "core.deviceremembermetoken"

_SIGNATURES: dict[str, tuple[Any, list]] = {
    "FlowCore_Initialise": (c_bool, []),
    "FlowCore_Shutdown": (None, []),
    "FlowCore_RegisterTypes": (None, []),
    "FlowNVS_Set": (c_bool, [c_char_p, c_char_p, c_uint]),
    "FlowMessaging_Initialise": (c_bool, []),
    "FlowMessaging_Shutdown": (None, []),
    "FlowClient_ConnectToServer": (c_bool, [c_char_p, c_char_p, c_char_p, c_bool]),
    "FlowClient_IsDeviceLoggedIn": (c_bool, []),
    "FlowClient_GetLoggedInDevice": (c_void_p, [c_void_p]),
    "FlowDevice_RetrieveOwner": (c_void_p, [c_void_p]),
    "FlowUser_GetUserID": (c_char_p, [c_void_p]),
    "FlowMemoryManager_New": (c_void_p, []),
    "FlowMemoryManager_Free": (None, [POINTER(c_void_p)]),
    "FlowMessaging_SendMessageToUser": (c_bool, [c_char_p, c_char_p, c_char_p, c_uint, c_uint]),
}


class FlowLibrary:
    """Resolves SDK symbols across the FlowCloud shared libraries."""

    def __init__(self, *libs: Any):
        self._libs = libs

    @classmethod
    def load(cls, names: tuple[str, ...] = FLOW_LIBRARIES) -> "FlowLibrary":
        libs = []
        for name in names:
            path = ctypes.util.find_library(name) or f"lib{name}.so"
            try:
                libs.append(ctypes.CDLL(path))
            except OSError as e:
                raise StoreOpenError(f"Could not load FlowCloud library '{path}': {e}") from None

        flow = cls(*libs)
        for fn_name, (restype, argtypes) in _SIGNATURES.items():
            try:
                fn = getattr(flow, fn_name)
            except AttributeError:
                raise StoreOpenError(f"FlowCloud symbol '{fn_name}' not found in {list(names)}") from None
            fn.restype = restype
            fn.argtypes = argtypes
        return flow

    def __getattr__(self, name: str) -> Any:
        for lib in self._libs:
            try:
                return getattr(lib, name)
            except AttributeError:
                continue
        raise AttributeError(name)


class FlowMessenger:
    """Messenger implementation for FlowCloud. Never raises to the caller."""

    def __init__(
        self,
        credentials: CredentialsLoader,
        *,
        message_expiry_s: int = MESSAGE_EXPIRY_S,
        library: Any = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._credentials = credentials
        self.message_expiry_s = int(message_expiry_s)
        self._lib = library
        self._log = logger or logging.getLogger(__name__)

    # --- Messenger ---
    def register(self) -> bool:
        creds = self._credentials.load()
        if creds is None:
            return False

        lib = self._library()
        if lib is None:
            return False

        if not self._initialise(lib, creds):
            return False

        if not lib.FlowClient_IsDeviceLoggedIn():
            self._log.error("FLOW_DEVICE_LOGIN_FAILED")
            return False

        self._log.info("FLOW_DEVICE_REGISTERED url=%s", creds.url)
        return True

    def is_logged_in(self) -> bool:
        if self._lib is None:
            return False
        return bool(self._lib.FlowClient_IsDeviceLoggedIn())

    def notify(self, text: str) -> bool:
        lib = self._library()
        if lib is None:
            return False

        user_id = self._user_id(lib)
        if user_id is None:
            return False

        payload = text.encode("utf-8")
        ok = lib.FlowMessaging_SendMessageToUser(
            user_id, CONTENT_TYPE.encode("ascii"), payload, len(payload), self.message_expiry_s
        )
        if not ok:
            self._log.error("FLOW_MESSAGE_SEND_FAILED")
            return False
        self._log.info("FLOW_MESSAGE_SENT text=%s", text)
        return True

    # --- internals ---
    def _library(self) -> Any:
        if self._lib is None:
            try:
                self._lib = FlowLibrary.load()
            except StoreOpenError as e:
                self._log.error("FLOW_LIBRARY_UNAVAILABLE err=%s", e)
                return None
        return self._lib

    def _initialise(self, lib: Any, creds: FlowCredentials) -> bool:
        if not lib.FlowCore_Initialise():
            self._log.error("FLOW_CORE_INIT_FAILED")
            return False

        token = creds.remember_me_token.encode("utf-8")
        lib.FlowNVS_Set(REMEMBER_ME_KEY.encode("ascii"), token, len(token) + 1)
        lib.FlowCore_Shutdown()

        if not lib.FlowCore_Initialise():
            self._log.error("FLOW_CORE_REINIT_FAILED")
            return False
        lib.FlowCore_RegisterTypes()

        if not lib.FlowMessaging_Initialise():
            self._log.error("FLOW_MESSAGING_INIT_FAILED")
            return False

        if not lib.FlowClient_ConnectToServer(
            creds.url.encode("utf-8"),
            creds.customer_key.encode("utf-8"),
            creds.customer_secret.encode("utf-8"),
            True,
        ):
            lib.FlowCore_Shutdown()
            lib.FlowMessaging_Shutdown()
            self._log.error("FLOW_CONNECT_FAILED url=%s", creds.url)
            return False
        return True

    def _user_id(self, lib: Any) -> Optional[bytes]:
        mm = lib.FlowMemoryManager_New()
        if not mm:
            self._log.error("FLOW_MEMORY_MANAGER_FAILED")
            return None
        try:
            device = lib.FlowClient_GetLoggedInDevice(mm)
            if not device:
                self._log.error("FLOW_LOGGED_IN_DEVICE_MISSING")
                return None
            user_id = lib.FlowUser_GetUserID(lib.FlowDevice_RetrieveOwner(device))
            if not user_id:
                self._log.error("FLOW_USER_ID_MISSING")
                return None
            # copy out before the memory manager releases the owner object
            return bytes(user_id)
        finally:
            ptr = c_void_p(mm)
            lib.FlowMemoryManager_Free(byref(ptr))
