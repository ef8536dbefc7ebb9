"""
Local fallback persistence: JSON lists on disk plus a blob directory
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os

from ..config import (
    BLOB_DIR,
    DATA_DIR,
    LOCAL_PROMPTS_KEY,
    LOCAL_STORE_KEYS,
    LOCAL_STORE_LIMIT,
    PUBLIC_BASE_URL,
)
from ..exceptions import InvalidInputError, PersistenceError, RecordNotFoundError
from ..models.creations import CreationInput, CreationType, SavedCreation, SavedPrompt, utc_now
from .base import BlobStore, CreationRepository, new_record_id

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Blobs as files under a directory, served by the app under ``url_prefix``"""

    def __init__(self, root: Path = BLOB_DIR, url_prefix: Optional[str] = None):
        self.root = Path(root)
        self.url_prefix = (url_prefix or f"{PUBLIC_BASE_URL.rstrip('/')}/blobs").rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise InvalidInputError(f"Invalid blob path: {path}")
        return target

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(data)
        return f"{self.url_prefix}/{path}"

    def owns(self, url: str) -> bool:
        return url.startswith(f"{self.url_prefix}/")

    def _path_from_url(self, url: str) -> str:
        return url[len(self.url_prefix) + 1:]

    async def delete_by_url(self, url: str) -> bool:
        if not self.owns(url):
            return False
        target = self._resolve(self._path_from_url(url))
        if not target.exists():
            return False
        await aiofiles.os.remove(target)
        return True


class LocalCreationRepository(CreationRepository):
    """
    One JSON list per creation type (and one for prompts)

    Lists are newest-first and capped per user at LOCAL_STORE_LIMIT entries.
    """

    def __init__(self, data_dir: Path = DATA_DIR, blob_store: Optional[BlobStore] = None):
        self.data_dir = Path(data_dir)
        self.blob_store = blob_store
        self._lock = asyncio.Lock()

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    async def _read(self, key: str) -> List[Dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return []
        async with aiofiles.open(path, "r") as f:
            content = await f.read()
        try:
            records = json.loads(content) if content.strip() else []
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupt local store file {path.name}: {e}") from e
        return records if isinstance(records, list) else []

    async def _write(self, key: str, records: List[Dict[str, Any]]):
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        async with aiofiles.open(tmp_path, "w") as f:
            await f.write(json.dumps(records, indent=2))
        await aiofiles.os.replace(tmp_path, path)

    @staticmethod
    def _cap(records: List[Dict[str, Any]], user_id: str) -> List[Dict[str, Any]]:
        kept, count = [], 0
        for record in records:
            if record.get("userId") == user_id:
                count += 1
                if count > LOCAL_STORE_LIMIT:
                    continue
            kept.append(record)
        return kept

    async def list_user_creations(
        self,
        user_id: str,
        creation_type: Optional[CreationType] = None,
    ) -> List[SavedCreation]:
        keys = [LOCAL_STORE_KEYS[CreationType(creation_type).value]] if creation_type else list(LOCAL_STORE_KEYS.values())
        creations = []
        for key in keys:
            for record in await self._read(key):
                if record.get("userId") == user_id:
                    creations.append(SavedCreation.model_validate(record))
        creations.sort(key=lambda creation: creation.created_at, reverse=True)
        return creations

    async def save_creations(self, user_id: str, items: List[CreationInput]) -> List[str]:
        saved = [
            SavedCreation(**item.model_dump(), id=new_record_id(), user_id=user_id, created_at=utc_now())
            for item in items
        ]
        by_key: Dict[str, List[SavedCreation]] = {}
        for creation in saved:
            by_key.setdefault(LOCAL_STORE_KEYS[creation.type], []).append(creation)

        async with self._lock:
            for key, creations in by_key.items():
                records = await self._read(key)
                new_records = [creation.to_document() for creation in reversed(creations)]
                await self._write(key, self._cap(new_records + records, user_id))

        logger.info(f"Saved {len(saved)} creations for user {user_id} to local store")
        return [creation.id for creation in saved]

    async def delete_creation_by_id(self, creation_id: str, user_id: Optional[str] = None) -> SavedCreation:
        async with self._lock:
            record = None
            for key in LOCAL_STORE_KEYS.values():
                record = await self._remove_record(key, creation_id, user_id)
                if record is not None:
                    break
        if record is None:
            raise RecordNotFoundError("creations", creation_id)

        creation = SavedCreation.model_validate(record)
        await self._delete_blobs(creation)
        return creation

    async def _remove_record(
        self,
        key: str,
        record_id: str,
        user_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        records = await self._read(key)
        for index, record in enumerate(records):
            if record.get("id") == record_id and user_id in (None, record.get("userId")):
                del records[index]
                await self._write(key, records)
                return record
        return None

    async def list_user_prompts(self, user_id: str) -> List[SavedPrompt]:
        prompts = [
            SavedPrompt.model_validate(record)
            for record in await self._read(LOCAL_PROMPTS_KEY)
            if record.get("userId") == user_id
        ]
        prompts.sort(key=lambda prompt: prompt.created_at, reverse=True)
        return prompts

    async def save_prompt(self, user_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        prompt = SavedPrompt(id=new_record_id(), text=text, user_id=user_id, metadata=metadata)
        async with self._lock:
            records = await self._read(LOCAL_PROMPTS_KEY)
            await self._write(LOCAL_PROMPTS_KEY, self._cap([prompt.to_document()] + records, user_id))
        return prompt.id

    async def delete_prompt_by_id(self, prompt_id: str, user_id: Optional[str] = None) -> SavedPrompt:
        async with self._lock:
            record = await self._remove_record(LOCAL_PROMPTS_KEY, prompt_id, user_id)
        if record is None:
            raise RecordNotFoundError("prompts", prompt_id)
        return SavedPrompt.model_validate(record)
