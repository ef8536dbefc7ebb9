"""
Backend services initialization
"""

import logging
from typing import Optional

from studio_core.config import BLOB_DIR, DATA_DIR, STORAGE_BACKEND
from studio_core.persistence import (
    BlobStore,
    CreationRepository,
    LocalBlobStore,
    LocalCreationRepository,
    SupabaseBlobStore,
    SupabaseCreationRepository,
    create_supabase_client,
)
from studio_core.services import GenerationGateway
from studio_core.workflow import WorkflowSessionManager

logger = logging.getLogger(__name__)

# Service instances
generation_gateway: Optional[GenerationGateway] = None
creation_repository: Optional[CreationRepository] = None
blob_store: Optional[BlobStore] = None
session_manager: Optional[WorkflowSessionManager] = None


def build_persistence(backend: str = STORAGE_BACKEND):
    """Create the blob store and repository for the configured backend"""
    if backend == "supabase":
        client = create_supabase_client()
        blobs = SupabaseBlobStore(client)
        return blobs, SupabaseCreationRepository(client, blob_store=blobs)

    if backend != "local":
        logger.warning(f"Unknown STORAGE_BACKEND '{backend}', using local storage")
    BLOB_DIR.mkdir(parents=True, exist_ok=True)
    blobs = LocalBlobStore(BLOB_DIR)
    return blobs, LocalCreationRepository(DATA_DIR, blob_store=blobs)


async def init_services():
    """Initialize all backend services"""
    global generation_gateway, creation_repository, blob_store, session_manager

    generation_gateway = GenerationGateway()
    blob_store, creation_repository = build_persistence()
    session_manager = WorkflowSessionManager()

    logger.info(
        f"Services initialized (storage: {type(creation_repository).__name__}, "
        f"blobs: {type(blob_store).__name__})"
    )


def get_generation_gateway() -> GenerationGateway:
    return generation_gateway


def get_creation_repository() -> CreationRepository:
    return creation_repository


def get_blob_store() -> BlobStore:
    return blob_store


def get_session_manager() -> WorkflowSessionManager:
    return session_manager
