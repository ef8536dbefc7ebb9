"""Workflow wizard type definitions."""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import uuid


class WorkflowStep(str, Enum):
    """Wizard steps, in progression order."""
    PROMPT = "prompt"
    GENERATE = "generate"
    ENHANCE = "enhance"
    EXPORT = "export"

    @property
    def index(self) -> int:
        return WORKFLOW_STEPS.index(self)


WORKFLOW_STEPS = list(WorkflowStep)


class EnhancementType(str, Enum):
    """Enhancement currently in progress."""
    BACKGROUND_REMOVAL = "background-removal"
    IMAGE_TO_IMAGE = "image-to-image"
    MODEL_3D = "3d-model"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ImageMetadata:
    """Provider details attached to a generated image."""
    model: Optional[str] = None
    generation_time: Optional[float] = None
    seed: Optional[int] = None
    aspect_ratio: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "generationTime": self.generation_time,
            "seed": self.seed,
            "aspectRatio": self.aspect_ratio,
        }


@dataclass
class GeneratedImage:
    """An image produced during the workflow."""
    url: str
    prompt: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=_now)
    background_removed_url: Optional[str] = None
    metadata: Optional[ImageMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "prompt": self.prompt,
            "timestamp": self.timestamp.isoformat(),
            "backgroundRemovedUrl": self.background_removed_url,
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }


@dataclass
class ModelMetadata:
    """Provider details attached to a generated 3D model."""
    generation_time: Optional[float] = None
    prompt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"generationTime": self.generation_time, "prompt": self.prompt}


@dataclass
class Model3D:
    """A 3D model produced during the workflow.

    ``source_image_id`` is empty when the model came from a prompt alone.
    """
    url: str
    source_image_id: str = ""
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=_now)
    metadata: Optional[ModelMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "sourceImageId": self.source_image_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata.to_dict() if self.metadata else None,
        }
