"""
Workflow session API: server-side access to a wizard's store and sequencer
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from studio_core.models import (
    GeneratedImage,
    ImageMetadata,
    Model3D,
    ModelMetadata,
    WorkflowStep,
)
from studio_core.workflow import WorkflowSessionManager
from studio_backend.services import get_session_manager

router = APIRouter()


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StepRequest(BaseModel):
    step: WorkflowStep


class PromptRequest(_CamelModel):
    prompt: str
    add_to_history: bool = Field(True, alias="addToHistory")


class ImageMetadataBody(_CamelModel):
    model: Optional[str] = None
    generation_time: Optional[float] = Field(None, alias="generationTime")
    seed: Optional[int] = None
    aspect_ratio: Optional[str] = Field(None, alias="aspectRatio")


class AddImageRequest(_CamelModel):
    url: str
    prompt: str = ""
    id: Optional[str] = None
    metadata: Optional[ImageMetadataBody] = None


class BackgroundRemovedRequest(_CamelModel):
    background_removed_url: str = Field(..., alias="backgroundRemovedUrl")


class SelectImageRequest(_CamelModel):
    image_id: Optional[str] = Field(None, alias="imageId")


class ModelMetadataBody(_CamelModel):
    generation_time: Optional[float] = Field(None, alias="generationTime")
    prompt: Optional[str] = None


class AddModelRequest(_CamelModel):
    url: str
    source_image_id: str = Field("", alias="sourceImageId")
    id: Optional[str] = None
    metadata: Optional[ModelMetadataBody] = None


class UIPreferencesRequest(_CamelModel):
    sidebar_collapsed: Optional[bool] = Field(None, alias="sidebarCollapsed")
    show_onboarding: Optional[bool] = Field(None, alias="showOnboarding")


@router.get("/{session_id}")
async def get_session(session_id: str, sessions: WorkflowSessionManager = Depends(get_session_manager)):
    """Current state, progress, next step and reachability"""
    return sessions.get_or_create(session_id).describe()


@router.post("/{session_id}/step")
async def go_to_step(
    session_id: str,
    body: StepRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    session.sequencer.go_to_step(body.step)
    return session.describe()


@router.post("/{session_id}/complete")
async def complete_step(
    session_id: str,
    body: StepRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    session.store.complete_step(body.step)
    return session.describe()


@router.post("/{session_id}/prompt")
async def set_prompt(
    session_id: str,
    body: PromptRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    session.store.set_prompt(body.prompt)
    if body.add_to_history and body.prompt.strip():
        session.store.add_to_prompt_history(body.prompt)
    return session.describe()


@router.post("/{session_id}/images")
async def add_image(
    session_id: str,
    body: AddImageRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    """Record a generated image; it becomes the selected image"""
    session = sessions.get_or_create(session_id)
    image = GeneratedImage(
        url=body.url,
        prompt=body.prompt,
        metadata=ImageMetadata(**body.metadata.model_dump()) if body.metadata else None,
    )
    if body.id:
        image.id = body.id
    session.store.add_generated_image(image)
    return session.describe()


@router.patch("/{session_id}/images/{image_id}/background")
async def set_background_removed(
    session_id: str,
    image_id: str,
    body: BackgroundRemovedRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    session.store.update_image_background_removed(image_id, body.background_removed_url)
    return session.describe()


@router.post("/{session_id}/select")
async def select_image(
    session_id: str,
    body: SelectImageRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    session.store.set_selected_image(body.image_id)
    return session.describe()


@router.post("/{session_id}/models")
async def add_model(
    session_id: str,
    body: AddModelRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    model = Model3D(
        url=body.url,
        source_image_id=body.source_image_id,
        metadata=ModelMetadata(**body.metadata.model_dump()) if body.metadata else None,
    )
    if body.id:
        model.id = body.id
    session.store.add_generated_model(model)
    return session.describe()


@router.patch("/{session_id}/ui")
async def set_ui_preferences(
    session_id: str,
    body: UIPreferencesRequest,
    sessions: WorkflowSessionManager = Depends(get_session_manager),
):
    session = sessions.get_or_create(session_id)
    if body.sidebar_collapsed is not None:
        session.store.set_sidebar_collapsed(body.sidebar_collapsed)
    if body.show_onboarding is not None:
        session.store.set_show_onboarding(body.show_onboarding)
    return session.describe()


@router.post("/{session_id}/reset")
async def reset_workflow(session_id: str, sessions: WorkflowSessionManager = Depends(get_session_manager)):
    session = sessions.get_or_create(session_id)
    session.store.reset_workflow()
    return session.describe()


@router.delete("/{session_id}")
async def delete_session(session_id: str, sessions: WorkflowSessionManager = Depends(get_session_manager)):
    sessions.delete(session_id)
    return {"success": True}
