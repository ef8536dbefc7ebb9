"""
Persistence interfaces for saved creations, prompts and their blobs
"""

import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidInputError
from ..models.creations import CreationInput, CreationType, SavedCreation, SavedPrompt
from ..utils import decode_data_url

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    return str(uuid.uuid4())


class BlobStore(ABC):
    """Binary artifact storage addressed by URL"""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its public URL"""

    @abstractmethod
    def owns(self, url: str) -> bool:
        """Whether ``url`` points into this store"""

    @abstractmethod
    async def delete_by_url(self, url: str) -> bool:
        """Delete the blob behind ``url``; False when it was not ours or already gone"""

    async def upload_data_url(self, user_id: str, data_url: str) -> str:
        try:
            data, content_type = decode_data_url(data_url)
        except ValueError as e:
            raise InvalidInputError(f"Invalid data URL: {e}") from e
        extension = (mimetypes.guess_extension(content_type) or ".bin").lstrip(".")
        path = f"{user_id}/{uuid.uuid4().hex}.{extension}"
        url = await self.upload(path, data, content_type)
        logger.info(f"Uploaded inline artifact ({len(data)} bytes) to {url}")
        return url

    async def delete_owned(self, urls: List[str]) -> int:
        deleted = 0
        for url in urls:
            if self.owns(url) and await self.delete_by_url(url):
                deleted += 1
        return deleted


async def store_inline_artifacts(blob_store: BlobStore, user_id: str, item: CreationInput) -> CreationInput:
    """Replace data: URLs in a creation with uploaded blob URLs"""
    changes: Dict[str, Any] = {}
    for field_name in ("image_url", "model_url", "background_removed_url"):
        value = getattr(item, field_name)
        if value and value.startswith("data:"):
            changes[field_name] = await blob_store.upload_data_url(user_id, value)
    return item.model_copy(update=changes) if changes else item


class CreationRepository(ABC):
    """Document store for a user's creations and prompts"""

    blob_store: Optional[BlobStore] = None

    @abstractmethod
    async def list_user_creations(
        self,
        user_id: str,
        creation_type: Optional[CreationType] = None,
    ) -> List[SavedCreation]:
        """Newest first"""

    @abstractmethod
    async def save_creations(self, user_id: str, items: List[CreationInput]) -> List[str]:
        """Persist ``items`` for ``user_id``; returns the new ids in input order"""

    async def save_creation(self, user_id: str, item: CreationInput) -> str:
        ids = await self.save_creations(user_id, [item])
        return ids[0]

    @abstractmethod
    async def delete_creation_by_id(self, creation_id: str, user_id: Optional[str] = None) -> SavedCreation:
        """
        Delete a creation and the blobs it owns

        With ``user_id`` only that user's record matches; anything else
        raises RecordNotFoundError.
        """

    @abstractmethod
    async def list_user_prompts(self, user_id: str) -> List[SavedPrompt]:
        """Newest first"""

    @abstractmethod
    async def save_prompt(self, user_id: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        pass

    @abstractmethod
    async def delete_prompt_by_id(self, prompt_id: str, user_id: Optional[str] = None) -> SavedPrompt:
        pass

    async def _delete_blobs(self, creation: SavedCreation):
        if self.blob_store is None:
            return
        deleted = await self.blob_store.delete_owned(creation.artifact_urls())
        if deleted:
            logger.info(f"Deleted {deleted} blobs for creation {creation.id}")
