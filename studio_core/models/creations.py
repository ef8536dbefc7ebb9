"""
Pydantic models for persisted creations and prompts
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CreationType(str, Enum):
    IMAGE = "image"
    MODEL_3D = "3d-model"
    COLORING_BOOK = "coloring-book"
    BACKGROUND_REMOVED = "background-removed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CreationInput(BaseModel):
    """A creation as submitted by a client, before it gets an id"""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    type: CreationType = Field(..., description="Creation type")
    prompt: str = Field("", description="Prompt that produced the artifact")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    model_url: Optional[str] = Field(None, alias="modelUrl")
    background_removed_url: Optional[str] = Field(None, alias="backgroundRemovedUrl")
    source_image_id: Optional[str] = Field(None, alias="sourceImageId")
    aspect_ratio: Optional[str] = Field(None, alias="aspectRatio")
    model: Optional[str] = Field(None, description="Provider model identifier")
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _require_artifact(self):
        if not self.image_url and not self.model_url:
            raise ValueError("A creation needs an imageUrl or a modelUrl")
        return self

    def artifact_urls(self) -> List[str]:
        return [
            url
            for url in (self.image_url, self.model_url, self.background_removed_url)
            if url
        ]


class SavedCreation(CreationInput):
    """A persisted creation"""
    id: str
    user_id: str = Field(..., alias="userId")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SavedPrompt(BaseModel):
    """A persisted prompt"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    user_id: str = Field(..., alias="userId")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    metadata: Optional[Dict[str, Any]] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SaveCreationsRequest(BaseModel):
    """Body of POST /api/creations"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    items: List[CreationInput] = Field(default_factory=list)


class SavePromptRequest(BaseModel):
    """Body of POST /api/prompts"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    text: str = ""
    metadata: Optional[Dict[str, Any]] = None
