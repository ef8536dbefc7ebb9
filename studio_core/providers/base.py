"""
Shared aiohttp plumbing for external generative-AI providers
"""

import logging
from typing import Dict, Optional

import aiohttp

from ..exceptions import ProviderError, ProviderErrorKind

logger = logging.getLogger(__name__)

# User-facing messages per error kind
PROVIDER_MESSAGES: Dict[ProviderErrorKind, str] = {
    ProviderErrorKind.PAYMENT_REQUIRED: "Payment required for this model. Please set up billing on {provider}.",
    ProviderErrorKind.INVALID_MODEL: "Invalid model version or not permitted to use this model.",
    ProviderErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait a moment and try again.",
    ProviderErrorKind.UNAUTHORIZED: "Invalid API key for {provider}.",
    ProviderErrorKind.NOT_FOUND: "The image or resource could not be processed. Please try a different image or prompt.",
    ProviderErrorKind.INVALID_INPUT: "{provider} rejected the request: {detail}",
    ProviderErrorKind.TIMEOUT: "The {provider} request timed out. Try again with a simpler prompt or image.",
    ProviderErrorKind.UNKNOWN: "Error calling {provider} API: {detail}",
}


def user_message(error: ProviderError, overrides: Optional[Dict[ProviderErrorKind, str]] = None) -> str:
    """Render the user-facing message for a provider error"""
    template = (overrides or {}).get(error.kind) or PROVIDER_MESSAGES[error.kind]
    return template.format(provider=error.provider, detail=error.message)


def mask_key(api_key: Optional[str]) -> str:
    if not api_key:
        return "<unset>"
    return f"{api_key[:5]}..."


class ProviderClient:
    """
    Base class for provider clients

    Used as an async context manager: the aiohttp session lives for the
    duration of the ``async with`` block.
    """

    provider_name = "provider"

    def __init__(self, api_key: Optional[str], base_url: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    def _headers(self) -> Dict[str, str]:
        return {}

    async def __aenter__(self):
        """Async context manager entry"""
        timeout = aiohttp.ClientTimeout(total=self.timeout) if self.timeout else None
        self.session = aiohttp.ClientSession(headers=self._headers(), timeout=timeout)
        logger.debug(f"Opened {self.provider_name} session with key {mask_key(self.api_key)}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session:
            await self.session.close()
            self.session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")
        return self.session

    async def _raise_for_status(self, response: aiohttp.ClientResponse):
        """Convert a non-2xx provider answer into a typed ProviderError"""
        if response.status < 400:
            return
        error_text = await response.text()
        logger.error(f"{self.provider_name} API error: {response.status} {error_text[:500]}")
        raise ProviderError.from_status(
            response.status,
            f"{response.status} {response.reason}: {error_text}".strip(),
            provider=self.provider_name,
        )

    def _wrap_transport_error(self, exc: aiohttp.ClientError) -> ProviderError:
        logger.error(f"{self.provider_name} transport error: {exc}")
        return ProviderError.from_exception(exc, provider=self.provider_name)
