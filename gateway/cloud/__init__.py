from .credentials import CredentialsLoader, FlowCredentials, DEFAULT_CREDENTIALS_PATH
from .disabled import DisabledMessenger
from .flow import FlowMessenger

__all__ = [
    "CredentialsLoader", "FlowCredentials", "DEFAULT_CREDENTIALS_PATH",
    "DisabledMessenger", "FlowMessenger",
]
