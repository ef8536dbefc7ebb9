"""
Supabase-backed persistence: ``creations``/``prompts`` tables and a storage bucket

The supabase client is synchronous; every call runs in a worker thread.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from ..config import SUPABASE_CONFIG
from ..exceptions import PersistenceError, RecordNotFoundError
from ..models.creations import CreationInput, CreationType, SavedCreation, SavedPrompt, utc_now
from .base import BlobStore, CreationRepository, new_record_id

logger = logging.getLogger(__name__)

# Table columns are snake_case; documents exchanged over HTTP use camelCase
CREATION_COLUMNS = {
    "id": "id",
    "user_id": "userId",
    "type": "type",
    "prompt": "prompt",
    "image_url": "imageUrl",
    "model_url": "modelUrl",
    "background_removed_url": "backgroundRemovedUrl",
    "source_image_id": "sourceImageId",
    "aspect_ratio": "aspectRatio",
    "model": "model",
    "metadata": "metadata",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Client:
    """Build a client from explicit values or the configured environment variables"""
    url = url or os.getenv(SUPABASE_CONFIG["url_env"])
    if not key:
        for env_name in SUPABASE_CONFIG["key_envs"]:
            key = os.getenv(env_name)
            if key:
                break

    if not url or not key:
        raise PersistenceError(
            "Missing Supabase credentials. Please set SUPABASE_URL and "
            "SUPABASE_SERVICE_KEY (or SUPABASE_ANON_KEY) environment variables."
        )

    client = create_client(url, key)
    logger.info("Supabase client initialized successfully")
    return client


def _to_row(document: Dict[str, Any]) -> Dict[str, Any]:
    reverse = {alias: column for column, alias in CREATION_COLUMNS.items()}
    return {reverse.get(key, key): value for key, value in document.items()}


class SupabaseBlobStore(BlobStore):
    """Blobs in one Supabase Storage bucket"""

    def __init__(self, client: Client, bucket: str = SUPABASE_CONFIG["bucket"]):
        self.client = client
        self.bucket = bucket
        self.marker = f"/storage/v1/object/public/{bucket}/"

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        storage = self.client.storage.from_(self.bucket)
        storage.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return storage.get_public_url(path)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            url = await asyncio.to_thread(self._upload_sync, path, data, content_type)
        except Exception as e:
            logger.error(f"Failed to upload file to {self.bucket}/{path}: {e}")
            raise PersistenceError(f"Failed to upload file: {e}") from e
        logger.info(f"Uploaded file to {self.bucket}/{path}")
        return url

    def owns(self, url: str) -> bool:
        return self.marker in url

    async def delete_by_url(self, url: str) -> bool:
        if not self.owns(url):
            return False
        path = url.split(self.marker, 1)[1].split("?", 1)[0]
        try:
            removed = await asyncio.to_thread(self.client.storage.from_(self.bucket).remove, [path])
        except Exception as e:
            logger.error(f"Failed to delete {self.bucket}/{path}: {e}")
            raise PersistenceError(f"Failed to delete file: {e}") from e
        return bool(removed)


class SupabaseCreationRepository(CreationRepository):
    """Creations and prompts in Supabase tables"""

    def __init__(
        self,
        client: Client,
        blob_store: Optional[BlobStore] = None,
        creations_table: str = SUPABASE_CONFIG["creations_table"],
        prompts_table: str = SUPABASE_CONFIG["prompts_table"],
    ):
        self.client = client
        self.blob_store = blob_store
        self.creations_table = creations_table
        self.prompts_table = prompts_table

    async def _execute(self, description: str, build_query):
        """Run a supabase query builder in a thread and return ``response.data``"""
        try:
            response = await asyncio.to_thread(lambda: build_query().execute())
        except Exception as e:
            logger.error(f"Supabase {description} failed: {e}")
            raise PersistenceError(f"Database error while trying to {description}: {e}") from e
        return response.data or []

    @staticmethod
    def _creation_from_row(row: Dict[str, Any]) -> SavedCreation:
        return SavedCreation.model_validate(row)

    async def list_user_creations(
        self,
        user_id: str,
        creation_type: Optional[CreationType] = None,
    ) -> List[SavedCreation]:
        def build():
            query = self.client.table(self.creations_table).select("*").eq("user_id", user_id)
            if creation_type:
                query = query.eq("type", CreationType(creation_type).value)
            return query.order("created_at", desc=True)

        rows = await self._execute("list creations", build)
        return [self._creation_from_row(row) for row in rows]

    async def save_creations(self, user_id: str, items: List[CreationInput]) -> List[str]:
        now = utc_now()
        saved = [
            SavedCreation(**item.model_dump(), id=new_record_id(), user_id=user_id, created_at=now, updated_at=now)
            for item in items
        ]
        rows = [_to_row(creation.to_document()) for creation in saved]
        await self._execute(
            "save creations",
            lambda: self.client.table(self.creations_table).insert(rows),
        )
        logger.info(f"Saved {len(saved)} creations for user {user_id}")
        return [creation.id for creation in saved]

    def _owned(self, table: str, record_id: str, user_id: Optional[str], query=None):
        query = query if query is not None else self.client.table(table).select("*")
        query = query.eq("id", record_id)
        return query.eq("user_id", user_id) if user_id else query

    async def delete_creation_by_id(self, creation_id: str, user_id: Optional[str] = None) -> SavedCreation:
        rows = await self._execute(
            "load creation",
            lambda: self._owned(self.creations_table, creation_id, user_id),
        )
        if not rows:
            raise RecordNotFoundError("creations", creation_id)

        creation = self._creation_from_row(rows[0])
        await self._execute(
            "delete creation",
            lambda: self._owned(
                self.creations_table, creation_id, user_id,
                query=self.client.table(self.creations_table).delete(),
            ),
        )
        await self._delete_blobs(creation)
        logger.info(f"Deleted creation {creation_id}")
        return creation

    async def list_user_prompts(self, user_id: str) -> List[SavedPrompt]:
        rows = await self._execute(
            "list prompts",
            lambda: (
                self.client.table(self.prompts_table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
            ),
        )
        return [SavedPrompt.model_validate(row) for row in rows]

    async def save_prompt(self, user_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        now = utc_now()
        prompt = SavedPrompt(id=new_record_id(), text=text, user_id=user_id, metadata=metadata,
                             created_at=now, updated_at=now)
        row = prompt.model_dump(mode="json", exclude_none=True)
        await self._execute(
            "save prompt",
            lambda: self.client.table(self.prompts_table).insert(row),
        )
        return prompt.id

    async def delete_prompt_by_id(self, prompt_id: str, user_id: Optional[str] = None) -> SavedPrompt:
        rows = await self._execute(
            "load prompt",
            lambda: self._owned(self.prompts_table, prompt_id, user_id),
        )
        if not rows:
            raise RecordNotFoundError("prompts", prompt_id)
        await self._execute(
            "delete prompt",
            lambda: self._owned(
                self.prompts_table, prompt_id, user_id,
                query=self.client.table(self.prompts_table).delete(),
            ),
        )
        return SavedPrompt.model_validate(rows[0])
