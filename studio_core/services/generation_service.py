"""
Generation gateway: one operation per capability, each forwarding a
reshaped request to a single provider and reshaping the answer
"""

import asyncio
import io
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Dict, Any, Optional, Callable
from urllib.parse import urlparse

import aiohttp
from PIL import Image, UnidentifiedImageError

from ..config import (
    MODEL_CONFIG,
    ASPECT_RATIOS,
    PERSON_GENERATION_OPTIONS,
    IMAGE_TO_IMAGE_DEFAULTS,
    IMAGE_TO_IMAGE_LIMITS,
    COLORING_BOOK_PROMPT,
    MAX_UPLOAD_SIZE,
    BLOB_STORAGE_MARKERS,
    IMAGE_URL_CHECK_TIMEOUT,
    get_api_key,
)
from ..exceptions import (
    GenerationError,
    GenerationTimeoutError,
    InvalidInputError,
    OutputFormatError,
    PayloadTooLargeError,
    ProviderError,
)
from ..models import (
    ImageGenerationRequest,
    ImageToImageRequest,
    ThreeDGenerationRequest,
    ColoringBookRequest,
)
from ..processors import PromptEnhancer
from ..providers import (
    ReplicateClient,
    ClipdropClient,
    BackgroundRemovalResult,
    CLIPDROP_MESSAGES,
    user_message,
)
from .timeout import run_for_capability

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGES = {
    "image": "Image generation is taking too long. Try again with a simpler prompt.",
    "image_to_image": (
        "Image generation is taking too long. Try reducing the inference steps "
        "or using a simpler prompt."
    ),
    "3d": (
        "The 3D generation process timed out. Complex models can take several "
        "minutes. Try again with a simpler image or prompt."
    ),
    "coloring_book": "Coloring book conversion is taking too long. Try again with a simpler image.",
    "background_removal": "Background removal is taking too long. Try again with a smaller image.",
    "prompt": "Prompt generation is taking too long. Try again with a shorter template.",
    "download": "Request timeout - image took too long to download",
}

INACCESSIBLE_IMAGE_MESSAGE = (
    "The image URL provided is invalid or inaccessible. Please make sure the URL "
    "is directly accessible and is a valid image file."
)


class ThreeDStep:
    """Stages reported in ``currentStep`` of a 3D failure"""
    VALIDATING_IMAGE = "validating-image"
    GENERATING = "generating"
    EXTRACTING_OUTPUT = "extracting-output"


@dataclass
class DownloadedImage:
    content: bytes
    content_type: str
    filename: str


def _is_data_url(url: str) -> bool:
    return url.startswith("data:")


def _is_blob_storage_url(url: str) -> bool:
    return any(marker in url for marker in BLOB_STORAGE_MARKERS)


def _preview(value: str, length: int = 50) -> str:
    return value if len(value) <= length else f"{value[:length]}..."


def _require_prompt(prompt: Optional[str]) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidInputError("Prompt is required and must be a non-empty string")
    return prompt


def _first_image_url(output: Any) -> Optional[str]:
    if isinstance(output, str) and output:
        return output
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    return None


def extract_model_url(output: Any) -> Optional[str]:
    """Pull the mesh URL out of a 3D model's output, whatever its shape"""
    if isinstance(output, dict):
        for key in ("mesh", "glb", "output"):
            value = output.get(key)
            if isinstance(value, str) and value:
                return value
        return None
    if isinstance(output, str) and output:
        return output
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    return None


def validate_image_bytes(content: bytes) -> str:
    """Check an upload is a non-empty decodable image within the size limit; returns its format"""
    if not content:
        raise InvalidInputError("No image file provided")
    if len(content) > MAX_UPLOAD_SIZE:
        raise PayloadTooLargeError(len(content), MAX_UPLOAD_SIZE)
    try:
        image = Image.open(io.BytesIO(content))
        image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidInputError("Invalid image file") from e
    return (image.format or "png").lower()


class GenerationGateway:
    """
    Forwards generation requests to external providers

    Provider clients are created per call through the injected factories,
    so tests can substitute fakes.
    """

    def __init__(
        self,
        replicate_factory: Callable[[str], ReplicateClient] = ReplicateClient,
        clipdrop_factory: Callable[[str], ClipdropClient] = ClipdropClient,
        prompt_enhancer: Optional[PromptEnhancer] = None,
        http_session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.replicate_factory = replicate_factory
        self.clipdrop_factory = clipdrop_factory
        self.prompt_enhancer = prompt_enhancer or PromptEnhancer()
        self.http_session_factory = http_session_factory
        self._request_counter = itertools.count(1)

    def next_request_id(self) -> int:
        """Process-local counter, used only to correlate log lines"""
        return next(self._request_counter)

    async def _run_replicate(
        self,
        request_id: int,
        capability: str,
        inputs: Dict[str, Any],
        step: Optional[str] = None,
    ) -> Any:
        model_id = MODEL_CONFIG[capability]["model_id"]
        api_key = get_api_key("replicate")

        logger.info(f"[Request #{request_id}] Calling Replicate model {model_id}")
        try:
            async with self.replicate_factory(api_key) as client:
                return await run_for_capability(
                    client.run(model_id, inputs),
                    capability,
                    message=TIMEOUT_MESSAGES.get(capability),
                )
        except ProviderError as e:
            logger.error(f"[Request #{request_id}] Replicate error ({e.kind.value}): {e.message}")
            raise ProviderError(e.kind, user_message(e), provider=e.provider, step=step, status=e.provider_status) from e
        except GenerationTimeoutError as e:
            e.step = step
            raise

    async def generate_image(self, request: ImageGenerationRequest) -> Dict[str, Any]:
        request_id = self.next_request_id()
        prompt = _require_prompt(request.prompt)
        if request.aspect_ratio not in ASPECT_RATIOS:
            raise InvalidInputError(
                f"Invalid aspect_ratio '{request.aspect_ratio}'. Supported: {', '.join(ASPECT_RATIOS)}"
            )
        if request.person_generation not in PERSON_GENERATION_OPTIONS:
            raise InvalidInputError(
                f"Invalid personGeneration '{request.person_generation}'. "
                f"Supported: {', '.join(PERSON_GENERATION_OPTIONS)}"
            )

        negative_prompt = (request.negative_prompt or "").strip() or None
        inputs: Dict[str, Any] = {
            "prompt": prompt,
            "aspect_ratio": request.aspect_ratio,
            "person_generation": request.person_generation,
        }
        if request.seed is not None:
            inputs["seed"] = request.seed
        if negative_prompt:
            inputs["negative_prompt"] = negative_prompt

        logger.info(f"[Request #{request_id}] Generating image for prompt: \"{_preview(prompt)}\"")
        start_time = time.monotonic()
        output = await self._run_replicate(request_id, "image", inputs)

        image_url = _first_image_url(output)
        if not image_url:
            logger.error(f"[Request #{request_id}] Invalid output from Replicate: {output!r}")
            raise OutputFormatError("Received invalid response from image generation service")

        generation_time = time.monotonic() - start_time
        logger.info(f"[Request #{request_id}] Image generated in {generation_time:.2f}s")
        config = MODEL_CONFIG["image"]
        return {
            "imageUrl": image_url,
            "model": config["name"],
            "modelId": config["model_id"],
            "generationTime": generation_time,
            "prompt": prompt,
            "aspect_ratio": request.aspect_ratio,
            "seed": request.seed,
            "negativePrompt": negative_prompt,
            "personGeneration": request.person_generation,
        }

    async def image_to_image(self, request: ImageToImageRequest) -> Dict[str, Any]:
        request_id = self.next_request_id()
        prompt = _require_prompt(request.prompt)
        if not isinstance(request.image, str) or not request.image:
            raise InvalidInputError("Input image is required")

        strength = request.strength if request.strength is not None else IMAGE_TO_IMAGE_DEFAULTS["strength"]
        guidance_scale = (
            request.guidance_scale if request.guidance_scale is not None
            else IMAGE_TO_IMAGE_DEFAULTS["guidance_scale"]
        )
        steps = (
            request.num_inference_steps if request.num_inference_steps is not None
            else IMAGE_TO_IMAGE_DEFAULTS["num_inference_steps"]
        )

        inputs: Dict[str, Any] = {
            "prompt": prompt,
            "image": request.image,
            "strength": min(strength, IMAGE_TO_IMAGE_LIMITS["strength"]),
            "guidance_scale": min(guidance_scale, IMAGE_TO_IMAGE_LIMITS["guidance_scale"]),
            "num_inference_steps": min(steps, IMAGE_TO_IMAGE_LIMITS["num_inference_steps"]),
            "scheduler": "K_EULER",
        }
        if request.seed is not None:
            inputs["seed"] = request.seed
        negative_prompt = (request.negative_prompt or "").strip()
        if negative_prompt:
            inputs["negative_prompt"] = negative_prompt

        logger.info(
            f"[Request #{request_id}] Image-to-image for \"{_preview(prompt)}\" "
            f"from {_preview(request.image)}"
        )
        start_time = time.monotonic()
        output = await self._run_replicate(request_id, "image_to_image", inputs)

        image_url = _first_image_url(output)
        if not image_url:
            logger.error(f"[Request #{request_id}] Invalid output from Replicate: {output!r}")
            raise OutputFormatError("Received invalid response from image generation service")

        config = MODEL_CONFIG["image_to_image"]
        return {
            "imageUrl": image_url,
            "model": config["name"],
            "modelId": config["model_id"],
            "generationTime": time.monotonic() - start_time,
            "prompt": prompt,
            "strength": strength,
            "guidance_scale": guidance_scale,
            "num_inference_steps": steps,
            "seed": request.seed,
            "negative_prompt": request.negative_prompt,
        }

    async def validate_image_url(self, url: str) -> bool:
        """Check an image URL answers 2xx with an image/* content type"""
        method = "GET" if _is_blob_storage_url(url) else "HEAD"
        timeout = aiohttp.ClientTimeout(total=IMAGE_URL_CHECK_TIMEOUT)
        try:
            async with self.http_session_factory(timeout=timeout) as session:
                async with session.request(method, url, allow_redirects=True) as response:
                    content_type = response.headers.get("content-type", "")
                    valid = 200 <= response.status < 300 and content_type.startswith("image/")
                    if not valid:
                        logger.warning(
                            f"Image URL check failed: {method} {response.status} content-type={content_type!r}"
                        )
                    return valid
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Image URL check failed for {_preview(url)}: {e}")
            return False

    async def generate_3d(self, request: ThreeDGenerationRequest) -> Dict[str, Any]:
        request_id = self.next_request_id()
        prompt = request.prompt.strip() if isinstance(request.prompt, str) else ""
        image_url = request.image_url or ""
        if not prompt and not image_url:
            raise InvalidInputError("Either prompt or imageUrl must be provided")

        if image_url and not _is_data_url(image_url):
            logger.info(f"[Request #{request_id}] Validating image URL: {_preview(image_url)}")
            if not await self.validate_image_url(image_url):
                raise InvalidInputError(INACCESSIBLE_IMAGE_MESSAGE, step=ThreeDStep.VALIDATING_IMAGE)

        inputs: Dict[str, Any] = {}
        if prompt:
            inputs["prompt"] = prompt
        if image_url:
            inputs["image"] = image_url

        start_time = time.monotonic()
        output = await self._run_replicate(request_id, "3d", inputs, step=ThreeDStep.GENERATING)

        model_url = extract_model_url(output)
        if not model_url:
            logger.error(f"[Request #{request_id}] No model URL in output: {output!r}")
            raise OutputFormatError(
                "Model returned output but no valid URL was found",
                step=ThreeDStep.EXTRACTING_OUTPUT,
            )

        generation_time = time.monotonic() - start_time
        logger.info(f"[Request #{request_id}] 3D model generated in {generation_time:.1f}s: {model_url}")
        return {
            "modelUrl": model_url,
            "model": MODEL_CONFIG["3d"]["name"],
            "generationTime": generation_time,
            "sourceImageUrl": image_url or None,
            "prompt": prompt or None,
        }

    async def coloring_book(self, request: ColoringBookRequest) -> Dict[str, Any]:
        request_id = self.next_request_id()
        if not isinstance(request.image_url, str) or not request.image_url:
            raise InvalidInputError("Image URL is required")

        inputs: Dict[str, Any] = {
            "prompt": COLORING_BOOK_PROMPT,
            "image": request.image_url,
            "prompt_strength": request.prompt_strength,
            "guidance_scale": request.guidance_scale,
            "num_inference_steps": request.num_inference_steps,
            "scheduler": "K_EULER",
        }
        negative_prompt = (request.negative_prompt or "").strip()
        if negative_prompt:
            inputs["negative_prompt"] = negative_prompt
        if request.seed is not None:
            inputs["seed"] = request.seed

        start_time = time.monotonic()
        output = await self._run_replicate(request_id, "coloring_book", inputs)

        image_url = _first_image_url(output)
        if not image_url:
            raise OutputFormatError("No coloring book image generated")

        return {
            "imageUrl": image_url,
            "originalImageUrl": request.image_url,
            "model": MODEL_CONFIG["coloring_book"]["name"],
            "generationTime": time.monotonic() - start_time,
            "prompt": COLORING_BOOK_PROMPT,
        }

    async def remove_background(
        self,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        transparency_handling: Optional[str] = None,
    ) -> BackgroundRemovalResult:
        request_id = self.next_request_id()
        image_format = validate_image_bytes(content)
        api_key = get_api_key("clipdrop")

        logger.info(f"[Request #{request_id}] Removing background from {len(content)} byte {image_format} image")
        try:
            async with self.clipdrop_factory(api_key) as client:
                return await run_for_capability(
                    client.remove_background(
                        content,
                        filename=filename or f"image.{image_format}",
                        content_type=content_type or f"image/{image_format}",
                        transparency_handling=transparency_handling,
                    ),
                    "background_removal",
                    message=TIMEOUT_MESSAGES["background_removal"],
                )
        except ProviderError as e:
            logger.error(f"[Request #{request_id}] Clipdrop error ({e.kind.value}): {e.message}")
            raise ProviderError(
                e.kind, user_message(e, CLIPDROP_MESSAGES), provider=e.provider, status=e.provider_status
            ) from e

    async def enhance_prompt(self, template: Optional[str], variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        request_id = self.next_request_id()
        if variables is not None and not isinstance(variables, dict):
            raise InvalidInputError("Variables must be an object")
        logger.info(f"[Request #{request_id}] Generating prompt from template")
        try:
            result = await run_for_capability(
                self.prompt_enhancer.enhance(template, variables),
                "prompt",
                message=TIMEOUT_MESSAGES["prompt"],
            )
        except ProviderError as e:
            logger.error(f"[Request #{request_id}] LLM error ({e.kind.value}): {e.message}")
            raise ProviderError(e.kind, user_message(e), provider=e.provider, status=e.provider_status) from e
        return result.to_dict()

    async def download_image(self, url: Optional[str], filename: Optional[str] = None) -> DownloadedImage:
        """Fetch a remote image so the browser can save it as an attachment"""
        if not url:
            raise InvalidInputError("Image URL is required")
        if url.startswith("blob:"):
            raise InvalidInputError(
                "Blob URLs cannot be processed server-side. Please download directly from the client."
            )
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise InvalidInputError("Invalid URL protocol. Only HTTP and HTTPS URLs are supported.")
        if not parsed.netloc:
            raise InvalidInputError("Invalid URL format")

        logger.info(f"Fetching image from URL: {_preview(url, 80)}")
        result = await run_for_capability(
            self._fetch(url),
            "download",
            message=TIMEOUT_MESSAGES["download"],
        )
        content, content_type = result
        logger.info(f"Fetched image: {len(content)} bytes, content-type: {content_type}")
        return DownloadedImage(content=content, content_type=content_type, filename=filename or "download.png")

    async def _fetch(self, url: str):
        headers = {"User-Agent": "Mozilla/5.0 (compatible; ImageDownloader/1.0)"}
        try:
            async with self.http_session_factory() as session:
                async with session.get(url, headers=headers) as response:
                    if response.status >= 400:
                        raise GenerationError(f"Failed to fetch image: {response.status} {response.reason}")
                    content = await response.read()
                    return content, response.headers.get("content-type", "image/png")
        except aiohttp.ClientError as e:
            raise GenerationError(f"Failed to download image: {e}") from e
