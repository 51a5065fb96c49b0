# gateway/core/errors.py
from __future__ import annotations


class GatewayError(Exception):
    """
    Base class for all expected operational errors in the gateway.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (no store access yet)
# ---------------------------------------------------------------------------

class ConfigError(GatewayError):
    """
    Gateway configuration or schema metadata is invalid.

    Examples:
      - malformed YAML
      - unknown config key or wrong value type
      - duplicate object id in the schema
      - unknown store driver key
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Session lifecycle errors
# ---------------------------------------------------------------------------

class SessionConnectError(GatewayError):
    """
    A resource store session could not be created or connected.

    Examples:
      - store daemon not listening on the IPC port
      - native library missing
    """
    code = "session_connect_error"


class SessionOperationError(GatewayError):
    """
    A read/write/list operation on a connected session failed.

    Examples:
      - operation timed out
      - daemon rejected the request
      - response did not contain the requested path
    """
    code = "session_operation_error"


class SessionClosedError(RuntimeError):
    """A session handle was used after it was closed (disconnected and freed)."""


# ---------------------------------------------------------------------------
# Schema errors
# ---------------------------------------------------------------------------

class SchemaDefinitionError(GatewayError):
    """
    One or more object definitions could not be pushed to a session.

    The definer reports this as a boolean failure; the error type is used
    for per-object logging and by callers that want to escalate.
    """
    code = "schema_definition_error"


# ---------------------------------------------------------------------------
# Supervisor errors
# ---------------------------------------------------------------------------

class RecoveryError(GatewayError):
    """
    The remote session could not be re-established after a poll failure.

    This is the only terminal condition of the supervisor.
    """
    code = "recovery_error"
