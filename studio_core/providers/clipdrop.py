"""
Clipdrop background removal client
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp

from ..config import PROVIDER_CONFIG
from ..exceptions import ProviderErrorKind
from .base import ProviderClient

logger = logging.getLogger(__name__)

CLIPDROP_MESSAGES = {
    ProviderErrorKind.UNAUTHORIZED: "Invalid API key",
    ProviderErrorKind.PAYMENT_REQUIRED: "No remaining credits",
    ProviderErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ProviderErrorKind.UNKNOWN: "Background removal failed",
}


def _int_header(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class BackgroundRemovalResult:
    """Processed image plus the credit headers Clipdrop reports"""
    content: bytes
    content_type: str
    remaining_credits: Optional[int] = None
    credits_consumed: Optional[int] = None


class ClipdropClient(ProviderClient):
    """Removes image backgrounds via Clipdrop"""

    provider_name = "Clipdrop"

    def __init__(self, api_key: Optional[str], base_url: Optional[str] = None):
        super().__init__(api_key, base_url or PROVIDER_CONFIG["clipdrop"]["base_url"])

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key} if self.api_key else {}

    async def remove_background(
        self,
        image: bytes,
        filename: str = "image.png",
        content_type: str = "image/png",
        transparency_handling: Optional[str] = None,
    ) -> BackgroundRemovalResult:
        session = self._require_session()

        form = aiohttp.FormData()
        form.add_field("image_file", image, filename=filename, content_type=content_type)
        if transparency_handling:
            form.add_field("transparency_handling", transparency_handling)

        logger.info(f"Sending {len(image)} bytes to Clipdrop remove-background")
        try:
            async with session.post(f"{self.base_url}/remove-background/v1", data=form) as response:
                await self._raise_for_status(response)
                content = await response.read()
                result = BackgroundRemovalResult(
                    content=content,
                    content_type=response.headers.get("content-type", "image/png"),
                    remaining_credits=_int_header(response.headers.get("x-remaining-credits")),
                    credits_consumed=_int_header(response.headers.get("x-credits-consumed")),
                )
        except aiohttp.ClientError as e:
            raise self._wrap_transport_error(e) from e

        logger.info(
            f"Background removal successful, credits remaining: {result.remaining_credits}, "
            f"consumed: {result.credits_consumed}"
        )
        return result
