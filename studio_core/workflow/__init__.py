"""Creative workflow state machine and its client-side orchestration"""

from .store import WorkflowStore, WorkflowState
from .sequencer import WorkflowSequencer
from .client import GatewayClient, GatewayRequestError
from .coordinator import WorkflowCoordinator
from .session import WorkflowSession, WorkflowSessionManager

__all__ = [
    "WorkflowStore",
    "WorkflowState",
    "WorkflowSequencer",
    "GatewayClient",
    "GatewayRequestError",
    "WorkflowCoordinator",
    "WorkflowSession",
    "WorkflowSessionManager",
]
