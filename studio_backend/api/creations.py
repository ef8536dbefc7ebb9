"""
Saved creations and prompts API endpoints
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from studio_core.exceptions import InvalidInputError
from studio_core.models import CreationType, SaveCreationsRequest, SavePromptRequest
from studio_core.persistence import BlobStore, CreationRepository, store_inline_artifacts
from studio_backend.api.middleware.auth import resolve_user_id
from studio_backend.services import get_blob_store, get_creation_repository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/creations")
async def list_creations(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId"),
    creation_type: Optional[CreationType] = Query(None, alias="type"),
    repository: CreationRepository = Depends(get_creation_repository),
):
    """List a user's creations, newest first"""
    user_id = resolve_user_id(request, user_id)
    creations = await repository.list_user_creations(user_id, creation_type)
    return {"items": [creation.to_document() for creation in creations]}


@router.post("/creations")
async def save_creations(
    request: Request,
    body: SaveCreationsRequest,
    repository: CreationRepository = Depends(get_creation_repository),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """Save creations; inline data URLs are uploaded to blob storage first"""
    user_id = resolve_user_id(request, body.user_id)
    if not body.items:
        raise InvalidInputError("No items to save")

    items = [await store_inline_artifacts(blob_store, user_id, item) for item in body.items]
    ids = await repository.save_creations(user_id, items)
    logger.info(f"Saved {len(ids)} creations for {user_id}")
    return {"success": True, "created": [{"id": creation_id} for creation_id in ids]}


@router.delete("/creations/{creation_id}")
async def delete_creation(
    request: Request,
    creation_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    repository: CreationRepository = Depends(get_creation_repository),
):
    """Delete one of the caller's creations and its stored blobs"""
    user_id = resolve_user_id(request, user_id)
    await repository.delete_creation_by_id(creation_id, user_id=user_id)
    return {"success": True}


@router.get("/prompts")
async def list_prompts(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId"),
    repository: CreationRepository = Depends(get_creation_repository),
):
    """List a user's saved prompts, newest first"""
    user_id = resolve_user_id(request, user_id)
    prompts = await repository.list_user_prompts(user_id)
    return {"items": [prompt.to_document() for prompt in prompts]}


@router.post("/prompts")
async def save_prompt(
    request: Request,
    body: SavePromptRequest,
    repository: CreationRepository = Depends(get_creation_repository),
):
    """Save a prompt"""
    user_id = resolve_user_id(request, body.user_id)
    if not body.text.strip():
        raise InvalidInputError("Prompt text is required")

    prompt_id = await repository.save_prompt(user_id, body.text, body.metadata)
    return {"success": True, "created": [{"id": prompt_id}]}


@router.delete("/prompts/{prompt_id}")
async def delete_prompt(
    request: Request,
    prompt_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    repository: CreationRepository = Depends(get_creation_repository),
):
    """Delete one of the caller's saved prompts"""
    user_id = resolve_user_id(request, user_id)
    await repository.delete_prompt_by_id(prompt_id, user_id=user_id)
    return {"success": True}
