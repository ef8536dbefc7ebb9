"""Persistence adapters for saved creations and prompts"""

from .base import BlobStore, CreationRepository, store_inline_artifacts, new_record_id
from .local_store import LocalBlobStore, LocalCreationRepository
from .supabase_store import (
    SupabaseBlobStore,
    SupabaseCreationRepository,
    create_supabase_client,
)

__all__ = [
    "BlobStore",
    "CreationRepository",
    "store_inline_artifacts",
    "new_record_id",
    "LocalBlobStore",
    "LocalCreationRepository",
    "SupabaseBlobStore",
    "SupabaseCreationRepository",
    "create_supabase_client",
]
