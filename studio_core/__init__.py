"""
Creative Studio Core Module

Shared business logic for the gateway API and the workflow client:
provider clients, the generation gateway, the workflow state machine
and persistence adapters.
"""

__version__ = "1.0.0"

from .services import GenerationGateway
from .processors import PromptEnhancer
from .workflow import WorkflowStore, WorkflowSequencer, WorkflowCoordinator, GatewayClient

__all__ = [
    "GenerationGateway",
    "PromptEnhancer",
    "WorkflowStore",
    "WorkflowSequencer",
    "WorkflowCoordinator",
    "GatewayClient",
]
