# gateway/store/awa.py
"""
Resource-store drivers backed by the native Awa LwM2M API (libawa).

Every operation follows the same shape as the C API: create an operation
object, add paths/values, perform it with a timeout, read the response,
free the operation. Operation objects are always freed, also on failure.

The library is loaded lazily on first open() so importing this module
never requires libawa to be installed.
"""
from __future__ import annotations

import ctypes
import ctypes.util
import logging
from ctypes import POINTER, byref, c_bool, c_char_p, c_int, c_int64, c_ushort, c_void_p
from enum import IntEnum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from gateway.model.schema import ObjectDescriptor, ResourceType

from .base import ClientStore, ServerStore
from .errors import StoreDefinitionError, StoreOpenError, StoreOperationError

_log = logging.getLogger(__name__)

LIBRARY_NAME = "awa"


class AwaError(IntEnum):
    SUCCESS = 0


class AwaResourceOperations(IntEnum):
    NONE = 0
    READ_ONLY = 1
    WRITE_ONLY = 2
    READ_WRITE = 3
    EXECUTE = 4


class AwaWriteMode(IntEnum):
    REPLACE = 0
    UPDATE = 1


_VOIDPP = POINTER(c_void_p)

# name -> (restype, argtypes)
_SIGNATURES: dict[str, Tuple[Any, list]] = {
    "AwaError_ToString": (c_char_p, [c_int]),
    # object definitions
    "AwaObjectDefinition_New": (c_void_p, [c_int, c_char_p, c_int, c_int]),
    "AwaObjectDefinition_AddResourceDefinitionAsInteger": (
        c_int, [c_void_p, c_int, c_char_p, c_bool, c_int, c_int64]),
    "AwaObjectDefinition_AddResourceDefinitionAsBoolean": (
        c_int, [c_void_p, c_int, c_char_p, c_bool, c_int, c_bool]),
    "AwaObjectDefinition_GetResourceDefinition": (c_void_p, [c_void_p, c_int]),
    "AwaObjectDefinition_Free": (c_int, [_VOIDPP]),
    # client session
    "AwaClientSession_New": (c_void_p, []),
    "AwaClientSession_SetIPCAsUDP": (c_int, [c_void_p, c_char_p, c_ushort]),
    "AwaClientSession_Connect": (c_int, [c_void_p]),
    "AwaClientSession_Disconnect": (c_int, [c_void_p]),
    "AwaClientSession_Free": (c_int, [_VOIDPP]),
    "AwaClientSession_IsObjectDefined": (c_bool, [c_void_p, c_int]),
    "AwaClientDefineOperation_New": (c_void_p, [c_void_p]),
    "AwaClientDefineOperation_Add": (c_int, [c_void_p, c_void_p]),
    "AwaClientDefineOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaClientDefineOperation_Free": (c_int, [_VOIDPP]),
    "AwaClientGetOperation_New": (c_void_p, [c_void_p]),
    "AwaClientGetOperation_AddPath": (c_int, [c_void_p, c_char_p]),
    "AwaClientGetOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaClientGetOperation_GetResponse": (c_void_p, [c_void_p]),
    "AwaClientGetOperation_Free": (c_int, [_VOIDPP]),
    "AwaClientGetResponse_ContainsPath": (c_bool, [c_void_p, c_char_p]),
    "AwaClientSetOperation_New": (c_void_p, [c_void_p]),
    "AwaClientSetOperation_CreateOptionalResource": (c_int, [c_void_p, c_char_p]),
    "AwaClientSetOperation_CreateObjectInstance": (c_int, [c_void_p, c_char_p]),
    "AwaClientSetOperation_AddValueAsBoolean": (c_int, [c_void_p, c_char_p, c_bool]),
    "AwaClientSetOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaClientSetOperation_Free": (c_int, [_VOIDPP]),
    # server session
    "AwaServerSession_New": (c_void_p, []),
    "AwaServerSession_SetIPCAsUDP": (c_int, [c_void_p, c_char_p, c_ushort]),
    "AwaServerSession_Connect": (c_int, [c_void_p]),
    "AwaServerSession_Disconnect": (c_int, [c_void_p]),
    "AwaServerSession_Free": (c_int, [_VOIDPP]),
    "AwaServerSession_IsObjectDefined": (c_bool, [c_void_p, c_int]),
    "AwaServerSession_GetObjectDefinition": (c_void_p, [c_void_p, c_int]),
    "AwaServerSession_PathToIDs": (
        c_int, [c_void_p, c_char_p, POINTER(c_int), POINTER(c_int), POINTER(c_int)]),
    "AwaServerDefineOperation_New": (c_void_p, [c_void_p]),
    "AwaServerDefineOperation_Add": (c_int, [c_void_p, c_void_p]),
    "AwaServerDefineOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaServerDefineOperation_Free": (c_int, [_VOIDPP]),
    "AwaServerReadOperation_New": (c_void_p, [c_void_p]),
    "AwaServerReadOperation_AddPath": (c_int, [c_void_p, c_char_p, c_char_p]),
    "AwaServerReadOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaServerReadOperation_GetResponse": (c_void_p, [c_void_p, c_char_p]),
    "AwaServerReadOperation_Free": (c_int, [_VOIDPP]),
    "AwaServerReadResponse_GetValueAsIntegerPointer": (
        c_int, [c_void_p, c_char_p, POINTER(POINTER(c_int64))]),
    "AwaServerWriteOperation_New": (c_void_p, [c_void_p, c_int]),
    "AwaServerWriteOperation_AddValueAsBoolean": (c_int, [c_void_p, c_char_p, c_bool]),
    "AwaServerWriteOperation_Perform": (c_int, [c_void_p, c_char_p, c_int]),
    "AwaServerWriteOperation_Free": (c_int, [_VOIDPP]),
    "AwaServerListClientsOperation_New": (c_void_p, [c_void_p]),
    "AwaServerListClientsOperation_Perform": (c_int, [c_void_p, c_int]),
    "AwaServerListClientsOperation_NewClientIterator": (c_void_p, [c_void_p]),
    "AwaServerListClientsOperation_Free": (c_int, [_VOIDPP]),
    "AwaClientIterator_Next": (c_bool, [c_void_p]),
    "AwaClientIterator_GetClientID": (c_char_p, [c_void_p]),
    "AwaClientIterator_Free": (c_int, [_VOIDPP]),
}

_lib: Any = None


def load_library(name: str = LIBRARY_NAME) -> Any:
    """Load libawa once and attach ctypes signatures."""
    global _lib
    if _lib is not None:
        return _lib

    path = ctypes.util.find_library(name) or f"lib{name}.so"
    try:
        lib = ctypes.CDLL(path)
    except OSError as e:
        raise StoreOpenError(f"Could not load Awa library '{path}': {e}") from None

    for fn_name, (restype, argtypes) in _SIGNATURES.items():
        fn = getattr(lib, fn_name)
        fn.restype = restype
        fn.argtypes = argtypes

    _lib = lib
    return lib


def _b(s: str) -> bytes:
    return s.encode("utf-8")


def _ms(timeout_s: float) -> int:
    return max(0, int(round(timeout_s * 1000)))


class _AwaStore:
    """
    Session handling shared by the client and server drivers.

    Subclasses set _prefix to "AwaClient" or "AwaServer".
    """

    _prefix: str = ""
    address: str
    port: int

    def _init_awa(self, library: Any = None) -> None:
        self._lib = library
        self._session: Optional[int] = None

    # --- helpers ---
    def _fn(self, suffix: str) -> Callable[..., Any]:
        return getattr(self._lib, f"{self._prefix}{suffix}")

    def _err(self, code: int) -> str:
        try:
            text = self._lib.AwaError_ToString(code)
        except Exception:
            text = None
        if isinstance(text, bytes):
            return text.decode("utf-8", "replace")
        return text or f"AwaError({code})"

    def _check(self, code: int, what: str, exc: type = StoreOperationError) -> None:
        if code != AwaError.SUCCESS:
            raise exc(f"{what} failed: {self._err(code)}")

    def _free(self, fn_name: str, handle: Optional[int]) -> None:
        if not handle:
            return
        ptr = c_void_p(handle)
        code = getattr(self._lib, fn_name)(byref(ptr))
        if code != AwaError.SUCCESS:
            _log.warning("AWA_FREE_FAILED fn=%s err=%s", fn_name, self._err(code))

    def _require(self) -> int:
        if not self._session:
            raise StoreOperationError("operation while store not open")
        return self._session

    # --- lifecycle ---
    def open(self) -> None:
        if self._session:
            return
        if self._lib is None:
            self._lib = load_library()

        session = self._fn("Session_New")()
        if not session:
            raise StoreOpenError(f"{self._prefix}Session_New() failed")

        code = self._fn("Session_SetIPCAsUDP")(session, _b(self.address), self.port)
        if code != AwaError.SUCCESS:
            self._free(f"{self._prefix}Session_Free", session)
            raise StoreOpenError(f"{self._prefix}Session_SetIPCAsUDP() failed: {self._err(code)}")

        code = self._fn("Session_Connect")(session)
        if code != AwaError.SUCCESS:
            self._free(f"{self._prefix}Session_Free", session)
            raise StoreOpenError(f"{self._prefix}Session_Connect() failed: {self._err(code)}")

        self._session = session

    def close(self) -> None:
        session = self._session
        if not session:
            return
        self._session = None
        code = self._fn("Session_Disconnect")(session)
        if code != AwaError.SUCCESS:
            _log.error("AWA_DISCONNECT_FAILED prefix=%s err=%s", self._prefix, self._err(code))
        self._free(f"{self._prefix}Session_Free", session)

    def is_open(self) -> bool:
        return bool(self._session)

    # --- definitions ---
    def is_object_defined(self, object_id: int) -> bool:
        return bool(self._fn("Session_IsObjectDefined")(self._require(), int(object_id)))

    def new_definition(self, obj: ObjectDescriptor) -> int:
        if self._lib is None:
            self._lib = load_library()
        lib = self._lib
        definition = lib.AwaObjectDefinition_New(
            obj.object_id, _b(obj.name), obj.min_instances, obj.max_instances
        )
        if not definition:
            raise StoreDefinitionError(f"AwaObjectDefinition_New({obj.object_id}) failed")

        for r in obj.resources:
            if r.type is ResourceType.INTEGER:
                code = lib.AwaObjectDefinition_AddResourceDefinitionAsInteger(
                    definition, r.resource_id, _b(r.name), r.mandatory,
                    AwaResourceOperations.READ_WRITE, 0,
                )
            elif r.type is ResourceType.BOOLEAN:
                code = lib.AwaObjectDefinition_AddResourceDefinitionAsBoolean(
                    definition, r.resource_id, _b(r.name), r.mandatory,
                    AwaResourceOperations.READ_WRITE, False,
                )
            else:
                code = None

            if code != AwaError.SUCCESS:
                self._free("AwaObjectDefinition_Free", definition)
                reason = self._err(code) if code is not None else f"unsupported type {r.type!r}"
                raise StoreDefinitionError(
                    f"Could not add resource definition ({r.name} [{r.resource_id}]) "
                    f"to object definition: {reason}"
                )
        return definition

    def define(self, definitions: Sequence[int], timeout_s: float) -> None:
        session = self._require()
        op = self._fn("DefineOperation_New")(session)
        if not op:
            for d in definitions:
                self._free("AwaObjectDefinition_Free", d)
            raise StoreDefinitionError(f"{self._prefix}DefineOperation_New() failed")
        try:
            for d in definitions:
                self._check(self._fn("DefineOperation_Add")(op, d),
                            "DefineOperation_Add", StoreDefinitionError)
            self._check(self._fn("DefineOperation_Perform")(op, _ms(timeout_s)),
                        "DefineOperation_Perform", StoreDefinitionError)
        finally:
            for d in definitions:
                self._free("AwaObjectDefinition_Free", d)
            self._free(f"{self._prefix}DefineOperation_Free", op)


class AwaClientStore(_AwaStore, ClientStore):
    _prefix = "AwaClient"

    def __init__(self, address: str, port: int, *, library: Any = None):
        super().__init__(address, port)
        self._init_awa(library)

    def contains_path(self, path: str, timeout_s: float) -> bool:
        session = self._require()
        op = self._lib.AwaClientGetOperation_New(session)
        if not op:
            raise StoreOperationError("AwaClientGetOperation_New() failed")
        try:
            self._check(self._lib.AwaClientGetOperation_AddPath(op, _b(path)), "GetOperation_AddPath")
            self._check(self._lib.AwaClientGetOperation_Perform(op, _ms(timeout_s)), "GetOperation_Perform")
            response = self._lib.AwaClientGetOperation_GetResponse(op)
            if not response:
                return False
            return bool(self._lib.AwaClientGetResponse_ContainsPath(response, _b(path)))
        finally:
            self._free("AwaClientGetOperation_Free", op)

    def set_boolean(
        self,
        path: str,
        value: bool,
        timeout_s: float,
        *,
        create_instance: Optional[str] = None,
    ) -> None:
        session = self._require()
        op = self._lib.AwaClientSetOperation_New(session)
        if not op:
            raise StoreOperationError("AwaClientSetOperation_New() failed")
        try:
            self._check(self._lib.AwaClientSetOperation_CreateOptionalResource(op, _b(path)),
                        "SetOperation_CreateOptionalResource")
            if create_instance is not None:
                self._check(self._lib.AwaClientSetOperation_CreateObjectInstance(op, _b(create_instance)),
                            "SetOperation_CreateObjectInstance")
            self._check(self._lib.AwaClientSetOperation_AddValueAsBoolean(op, _b(path), bool(value)),
                        "SetOperation_AddValueAsBoolean")
            self._check(self._lib.AwaClientSetOperation_Perform(op, _ms(timeout_s)),
                        "AwaClientSetOperation_Perform")
        finally:
            self._free("AwaClientSetOperation_Free", op)


class AwaServerStore(_AwaStore, ServerStore):
    _prefix = "AwaServer"

    def __init__(self, address: str, port: int, *, library: Any = None):
        super().__init__(address, port)
        self._init_awa(library)

    def list_clients(self, timeout_s: float) -> List[str]:
        session = self._require()
        op = self._lib.AwaServerListClientsOperation_New(session)
        if not op:
            raise StoreOperationError("AwaServerListClientsOperation_New() failed")
        try:
            self._check(self._lib.AwaServerListClientsOperation_Perform(op, _ms(timeout_s)),
                        "AwaServerListClientsOperation_Perform")
            it = self._lib.AwaServerListClientsOperation_NewClientIterator(op)
            if not it:
                raise StoreOperationError("AwaServerListClientsOperation_NewClientIterator() failed")
            clients: List[str] = []
            try:
                while self._lib.AwaClientIterator_Next(it):
                    cid = self._lib.AwaClientIterator_GetClientID(it)
                    if cid:
                        clients.append(cid.decode("utf-8", "replace") if isinstance(cid, bytes) else str(cid))
            finally:
                self._free("AwaClientIterator_Free", it)
            return clients
        finally:
            self._free("AwaServerListClientsOperation_Free", op)

    def read_integer(self, endpoint: str, path: str, timeout_s: float) -> Optional[int]:
        session = self._require()
        op = self._lib.AwaServerReadOperation_New(session)
        if not op:
            raise StoreOperationError("AwaServerReadOperation_New() failed")
        try:
            self._check(self._lib.AwaServerReadOperation_AddPath(op, _b(endpoint), _b(path)),
                        "ReadOperation_AddPath")
            self._check(self._lib.AwaServerReadOperation_Perform(op, _ms(timeout_s)),
                        "AwaServerReadOperation_Perform")
            response = self._lib.AwaServerReadOperation_GetResponse(op, _b(endpoint))
            if not response:
                raise StoreOperationError("AwaServerReadOperation_GetResponse failed")

            value = POINTER(c_int64)()
            self._lib.AwaServerReadResponse_GetValueAsIntegerPointer(response, _b(path), byref(value))
            if not value:
                return None
            return int(value.contents.value)
        finally:
            self._free("AwaServerReadOperation_Free", op)

    def write_boolean(self, endpoint: str, path: str, value: bool, timeout_s: float) -> None:
        session = self._require()
        op = self._lib.AwaServerWriteOperation_New(session, AwaWriteMode.UPDATE)
        if not op:
            raise StoreOperationError("AwaServerWriteOperation_New() failed")
        try:
            self._check(self._lib.AwaServerWriteOperation_AddValueAsBoolean(op, _b(path), bool(value)),
                        "WriteOperation_AddValueAsBoolean")
            self._check(self._lib.AwaServerWriteOperation_Perform(op, _b(endpoint), _ms(timeout_s)),
                        "AwaServerWriteOperation_Perform")
        finally:
            self._free("AwaServerWriteOperation_Free", op)

    def path_to_ids(self, path: str) -> Tuple[int, Optional[int], Optional[int]]:
        session = self._require()
        oid, iid, rid = c_int(-1), c_int(-1), c_int(-1)
        self._check(
            self._lib.AwaServerSession_PathToIDs(session, _b(path), byref(oid), byref(iid), byref(rid)),
            "AwaServerSession_PathToIDs",
        )
        return (
            oid.value,
            iid.value if iid.value >= 0 else None,
            rid.value if rid.value >= 0 else None,
        )

    def is_resource_defined(self, path: str) -> bool:
        object_id, _instance_id, resource_id = self.path_to_ids(path)
        if resource_id is None:
            return False
        definition = self._lib.AwaServerSession_GetObjectDefinition(self._require(), object_id)
        if not definition:
            _log.error("AWA_OBJECT_DEFINITION_MISSING object_id=%d", object_id)
            return False
        return bool(self._lib.AwaObjectDefinition_GetResourceDefinition(definition, resource_id))
