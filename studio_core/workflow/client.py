"""
HTTP client for the generation gateway, with abort-after-deadline timeouts
"""

import asyncio
import logging
from typing import Dict, Any, Optional, List

import aiohttp

from ..config import CLIENT_TIMEOUTS, PUBLIC_BASE_URL
from ..utils import decode_data_url

logger = logging.getLogger(__name__)


class GatewayRequestError(Exception):
    """Raised for a non-2xx gateway answer or a client-side timeout"""

    def __init__(self, status: Optional[int], message: str, is_timeout: bool = False):
        self.status = status
        self.message = message
        self.is_timeout = is_timeout
        super().__init__(message)


class GatewayClient:
    """
    Calls the gateway's HTTP routes

    Every request is bounded by the client-side deadline for its
    capability, independent of the gateway's own provider deadline.
    The bearer token is only sent to the gateway, never to image hosts.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeouts: Optional[Dict[str, float]] = None,
    ):
        self.base_url = (base_url or PUBLIC_BASE_URL).rstrip("/")
        self.auth_token = auth_token
        self.timeouts = {**CLIENT_TIMEOUTS, **(timeouts or {})}
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session:
            await self.session.close()
            self.session = None

    async def _request(self, method: str, path: str, capability: str, **kwargs) -> Dict[str, Any]:
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")

        if self.auth_token:
            kwargs["headers"] = {**kwargs.get("headers", {}), "Authorization": f"Bearer {self.auth_token}"}

        seconds = self.timeouts[capability]
        timeout = aiohttp.ClientTimeout(total=seconds)
        try:
            async with self.session.request(method, f"{self.base_url}{path}", timeout=timeout, **kwargs) as response:
                data = await self._read_json(response)
                if response.status >= 400:
                    message = data.get("error") or f"Request failed with status {response.status}"
                    raise GatewayRequestError(response.status, message, bool(data.get("isTimeout")))
                return data
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {path} aborted after {seconds:g}s")
            raise GatewayRequestError(
                408, f"Request timed out after {seconds:g} seconds", is_timeout=True
            ) from e
        except aiohttp.ClientError as e:
            raise GatewayRequestError(None, f"Could not reach the gateway: {e}") from e

    @staticmethod
    async def _read_json(response: aiohttp.ClientResponse) -> Dict[str, Any]:
        try:
            data = await response.json(content_type=None)
        except ValueError:
            return {"error": (await response.text()) or None}
        return data if isinstance(data, dict) else {"data": data}

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str = "1:1",
        seed: Optional[int] = None,
        negative_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"prompt": prompt, "aspect_ratio": aspect_ratio, "seed": seed}
        if negative_prompt:
            payload["negativePrompt"] = negative_prompt
        return await self._request("POST", "/api/generate-image", "image", json=payload)

    async def image_to_image(self, prompt: str, image: str, **params) -> Dict[str, Any]:
        payload = {"prompt": prompt, "image": image, **params}
        return await self._request("POST", "/api/image-to-image", "image_to_image", json=payload)

    async def generate_3d(self, prompt: Optional[str] = None, image_url: Optional[str] = None) -> Dict[str, Any]:
        payload = {"prompt": prompt, "imageUrl": image_url}
        return await self._request("POST", "/api/generate-3d", "3d", json=payload)

    async def coloring_book(self, image_url: str, **params) -> Dict[str, Any]:
        payload = {"imageUrl": image_url, **params}
        return await self._request("POST", "/api/coloring-book", "coloring_book", json=payload)

    async def fetch_image(self, url: str):
        """Load image bytes from a data URL or an http(s) URL"""
        if url.startswith("data:"):
            return decode_data_url(url)
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")
        timeout = aiohttp.ClientTimeout(total=self.timeouts["download"])
        try:
            async with self.session.get(url, timeout=timeout) as response:
                if response.status >= 400:
                    raise GatewayRequestError(response.status, f"Failed to fetch image: {response.status}")
                return await response.read(), response.headers.get("content-type", "image/png")
        except asyncio.TimeoutError as e:
            raise GatewayRequestError(408, "Image fetch timed out", is_timeout=True) from e
        except aiohttp.ClientError as e:
            raise GatewayRequestError(None, f"Failed to fetch image: {e}") from e

    async def remove_background(self, image_url: str, transparency_handling: Optional[str] = None) -> Dict[str, Any]:
        content, content_type = await self.fetch_image(url=image_url)
        form = aiohttp.FormData()
        form.add_field("image_file", content, filename="image.png", content_type=content_type)
        if transparency_handling:
            form.add_field("transparency_handling", transparency_handling)
        return await self._request("POST", "/api/remove-background", "background_removal", data=form)

    async def enhance_prompt(self, template: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = {"template": template, "variables": variables or {}}
        return await self._request("POST", "/api/generate-prompt", "prompt", json=payload)

    async def save_creations(self, user_id: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload = {"userId": user_id, "items": items}
        return await self._request("POST", "/api/creations", "creations", json=payload)

    async def list_creations(self, user_id: str, creation_type: Optional[str] = None) -> Dict[str, Any]:
        params = {"userId": user_id}
        if creation_type:
            params["type"] = creation_type
        return await self._request("GET", "/api/creations", "creations", params=params)
