"""External provider clients"""

from .base import ProviderClient, PROVIDER_MESSAGES, user_message, mask_key
from .replicate import ReplicateClient, MockReplicateClient, PredictionStatus
from .clipdrop import ClipdropClient, BackgroundRemovalResult, CLIPDROP_MESSAGES
from .llm import AnthropicClient

__all__ = [
    "ProviderClient",
    "PROVIDER_MESSAGES",
    "user_message",
    "mask_key",
    "ReplicateClient",
    "MockReplicateClient",
    "PredictionStatus",
    "ClipdropClient",
    "BackgroundRemovalResult",
    "CLIPDROP_MESSAGES",
    "AnthropicClient",
]
