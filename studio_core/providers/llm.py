"""
Anthropic Messages API client used for prompt enhancement
"""

import logging
from typing import Dict, Any, Optional

import aiohttp

from ..config import PROVIDER_CONFIG
from .base import ProviderClient

logger = logging.getLogger(__name__)


class AnthropicClient(ProviderClient):
    """Thin client for POST /v1/messages"""

    provider_name = "Anthropic"

    def __init__(self, api_key: Optional[str], base_url: Optional[str] = None):
        config = PROVIDER_CONFIG["anthropic"]
        super().__init__(api_key, base_url or config["base_url"])
        self.api_version = config["api_version"]

    def _headers(self) -> Dict[str, str]:
        headers = {"anthropic-version": self.api_version, "content-type": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def complete(
        self,
        prompt: str,
        model: str,
        system: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 1.0,
    ) -> str:
        """Send a single user message and return the concatenated text blocks"""
        session = self._require_session()
        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        try:
            async with session.post(f"{self.base_url}/messages", json=payload) as response:
                await self._raise_for_status(response)
                data = await response.json()
        except aiohttp.ClientError as e:
            raise self._wrap_transport_error(e) from e

        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        logger.info(f"LLM returned {len(text)} characters (stop reason: {data.get('stop_reason')})")
        return text
