"""Models for type safety"""

from .generation import (
    ImageGenerationRequest,
    ImageToImageRequest,
    ThreeDGenerationRequest,
    ColoringBookRequest,
    PromptGenerationRequest,
)
from .workflow import (
    WorkflowStep,
    WORKFLOW_STEPS,
    EnhancementType,
    GeneratedImage,
    ImageMetadata,
    Model3D,
    ModelMetadata,
)
from .creations import (
    CreationType,
    CreationInput,
    SavedCreation,
    SavedPrompt,
    SaveCreationsRequest,
    SavePromptRequest,
)

__all__ = [
    "ImageGenerationRequest",
    "ImageToImageRequest",
    "ThreeDGenerationRequest",
    "ColoringBookRequest",
    "PromptGenerationRequest",
    "WorkflowStep",
    "WORKFLOW_STEPS",
    "EnhancementType",
    "GeneratedImage",
    "ImageMetadata",
    "Model3D",
    "ModelMetadata",
    "CreationType",
    "CreationInput",
    "SavedCreation",
    "SavedPrompt",
    "SaveCreationsRequest",
    "SavePromptRequest",
]
