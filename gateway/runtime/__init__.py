from .session import LocalSession, RemoteSession, ResourceSession, SessionFactory, StoreEndpoint
from .state import BridgeState, PollExit, PropagationResult, SupervisorState
from .supervisor import Supervisor, SupervisorSettings

__all__ = [
    "LocalSession", "RemoteSession", "ResourceSession", "SessionFactory", "StoreEndpoint",
    "BridgeState", "PollExit", "PropagationResult", "SupervisorState",
    "Supervisor", "SupervisorSettings",
]
