"""
Client-side orchestration: calls the gateway and applies results to a store
"""

import logging
import random
from typing import Dict, Any, List, Optional

from ..exceptions import InvalidInputError, UnknownImageError, WorkflowError
from ..models.creations import CreationType
from ..models.workflow import (
    EnhancementType,
    GeneratedImage,
    ImageMetadata,
    Model3D,
    ModelMetadata,
)
from .client import GatewayClient
from .store import WorkflowStore

logger = logging.getLogger(__name__)

MAX_SEED = 2 ** 31 - 1


class WorkflowCoordinator:
    """
    Drives generation for one wizard session

    Loading flags are cleared whatever the outcome; failures propagate to
    the caller and nothing is retried automatically.
    """

    def __init__(self, store: WorkflowStore, client: GatewayClient):
        self.store = store
        self.client = client

    def _resolve_image(self, image_id: Optional[str]) -> Optional[GeneratedImage]:
        state = self.store.state
        if image_id is None:
            return state.selected_image
        image = state.find_image(image_id)
        if image is None:
            raise UnknownImageError(image_id)
        return image

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        seed: Optional[int] = None,
        negative_prompt: Optional[str] = None,
    ) -> GeneratedImage:
        if not prompt or not prompt.strip():
            raise InvalidInputError("Prompt is required")

        self.store.set_prompt(prompt)
        self.store.add_to_prompt_history(prompt)
        self.store.set_generating(True)
        try:
            data = await self.client.generate_image(
                prompt, aspect_ratio=aspect_ratio, seed=seed, negative_prompt=negative_prompt
            )
            image = GeneratedImage(
                url=data["imageUrl"],
                prompt=prompt,
                metadata=ImageMetadata(
                    model=data.get("model"),
                    generation_time=data.get("generationTime"),
                    seed=data.get("seed", seed),
                    aspect_ratio=data.get("aspect_ratio", aspect_ratio),
                ),
            )
            self.store.add_generated_image(image)
            logger.info(f"Generated image {image.id} in {data.get('generationTime')}s")
            return image
        finally:
            self.store.set_generating(False)

    async def regenerate(self, aspect_ratio: Optional[str] = None) -> GeneratedImage:
        """Same prompt again with a fresh random seed"""
        state = self.store.state
        prompt = state.prompt or (state.selected_image.prompt if state.selected_image else "")
        if not prompt:
            raise WorkflowError("Nothing to regenerate: no prompt has been used yet")

        selected = state.selected_image
        if aspect_ratio is None:
            aspect_ratio = (
                selected.metadata.aspect_ratio
                if selected and selected.metadata and selected.metadata.aspect_ratio
                else "1:1"
            )
        return await self.generate_image(prompt, aspect_ratio=aspect_ratio, seed=random.randint(0, MAX_SEED))

    async def remove_background(self, image_id: Optional[str] = None) -> GeneratedImage:
        image = self._resolve_image(image_id)
        if image is None:
            raise WorkflowError("Select an image before removing its background")

        self.store.set_enhancing(True)
        self.store.set_enhancement_type(EnhancementType.BACKGROUND_REMOVAL)
        try:
            data = await self.client.remove_background(image.url)
            self.store.update_image_background_removed(image.id, data["imageUrl"])
        finally:
            self.store.set_enhancing(False)
            self.store.set_enhancement_type(None)
        return self.store.state.find_image(image.id)

    async def generate_3d_model(self, image_id: Optional[str] = None) -> Model3D:
        image = self._resolve_image(image_id)
        prompt = image.prompt if image else self.store.state.prompt
        if image is None and not prompt:
            raise WorkflowError("A selected image or a prompt is needed for 3D generation")

        self.store.set_3d_generating(True)
        self.store.set_enhancement_type(EnhancementType.MODEL_3D)
        try:
            data = await self.client.generate_3d(
                prompt=prompt or None,
                image_url=image.url if image else None,
            )
            model = Model3D(
                url=data["modelUrl"],
                source_image_id=image.id if image else "",
                metadata=ModelMetadata(generation_time=data.get("generationTime"), prompt=prompt or None),
            )
            self.store.add_generated_model(model)
            logger.info(f"Generated 3D model {model.id} from image {model.source_image_id or '<prompt>'}")
            return model
        finally:
            self.store.set_3d_generating(False)
            self.store.set_enhancement_type(None)

    async def enhance_prompt(self, template: str, variables: Optional[Dict[str, Any]] = None) -> str:
        """Ask the gateway's LLM for a prompt and make it the current prompt"""
        data = await self.client.enhance_prompt(template, variables)
        generated = data["generatedPrompt"]
        self.store.set_prompt(generated)
        return generated

    def build_creation_items(self) -> List[Dict[str, Any]]:
        """Everything generated in this session, shaped for POST /api/creations"""
        state = self.store.state
        items: List[Dict[str, Any]] = []
        for image in state.generated_images:
            metadata = image.metadata or ImageMetadata()
            items.append({
                "type": CreationType.IMAGE.value,
                "imageUrl": image.url,
                "prompt": image.prompt,
                "aspectRatio": metadata.aspect_ratio,
                "model": metadata.model,
            })
            if image.background_removed_url:
                items.append({
                    "type": CreationType.BACKGROUND_REMOVED.value,
                    "imageUrl": image.background_removed_url,
                    "prompt": image.prompt,
                    "sourceImageId": image.id,
                })
        for model in state.generated_models:
            items.append({
                "type": CreationType.MODEL_3D.value,
                "modelUrl": model.url,
                "prompt": (model.metadata.prompt if model.metadata else None) or "",
                "sourceImageId": model.source_image_id or None,
            })
        return [{key: value for key, value in item.items() if value is not None} for item in items]

    async def save_creations(self, user_id: str) -> List[str]:
        """User-initiated save of the session's results; returns the new ids"""
        items = self.build_creation_items()
        if not items:
            raise WorkflowError("Nothing to save yet")
        data = await self.client.save_creations(user_id, items)
        ids = [entry["id"] for entry in data.get("created", [])]
        logger.info(f"Saved {len(ids)} creations for user {user_id}")
        return ids
