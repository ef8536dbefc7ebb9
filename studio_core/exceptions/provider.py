"""Provider error kinds and classification."""

from enum import Enum
from typing import Optional

from .generation import GenerationError


class ProviderErrorKind(str, Enum):
    """Closed set of provider failure kinds"""
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    PAYMENT_REQUIRED = "payment_required"
    NOT_FOUND = "not_found"
    INVALID_MODEL = "invalid_model"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


KIND_STATUS = {
    ProviderErrorKind.INVALID_INPUT: 400,
    ProviderErrorKind.UNAUTHORIZED: 401,
    ProviderErrorKind.PAYMENT_REQUIRED: 402,
    ProviderErrorKind.NOT_FOUND: 404,
    ProviderErrorKind.INVALID_MODEL: 422,
    ProviderErrorKind.RATE_LIMITED: 429,
    ProviderErrorKind.TIMEOUT: 504,
    ProviderErrorKind.UNKNOWN: 500,
}

STATUS_KIND = {
    400: ProviderErrorKind.INVALID_INPUT,
    401: ProviderErrorKind.UNAUTHORIZED,
    402: ProviderErrorKind.PAYMENT_REQUIRED,
    403: ProviderErrorKind.UNAUTHORIZED,
    404: ProviderErrorKind.NOT_FOUND,
    408: ProviderErrorKind.TIMEOUT,
    422: ProviderErrorKind.INVALID_MODEL,
    429: ProviderErrorKind.RATE_LIMITED,
    504: ProviderErrorKind.TIMEOUT,
}

# Checked in order; first match wins
_TEXT_PATTERNS = [
    (("402", "payment required"), ProviderErrorKind.PAYMENT_REQUIRED),
    (("429", "too many requests"), ProviderErrorKind.RATE_LIMITED),
    (("422", "invalid version", "not permitted"), ProviderErrorKind.INVALID_MODEL),
    (("timeout", "timed out"), ProviderErrorKind.TIMEOUT),
    (("401", "unauthorized", "invalid api key"), ProviderErrorKind.UNAUTHORIZED),
    (("not found",), ProviderErrorKind.NOT_FOUND),
]


def kind_from_status(status: int) -> ProviderErrorKind:
    """Map an HTTP status answered by a provider to an error kind"""
    return STATUS_KIND.get(status, ProviderErrorKind.UNKNOWN)


def classify_error_text(text: str) -> ProviderErrorKind:
    """Last-resort classification of an untyped provider error message"""
    lowered = (text or "").lower()
    for needles, kind in _TEXT_PATTERNS:
        if any(needle in lowered for needle in needles):
            return kind
    return ProviderErrorKind.UNKNOWN


class ProviderError(GenerationError):
    """Raised when an external provider rejects or fails a request."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        provider: str = "provider",
        step: Optional[str] = None,
        status: Optional[int] = None,
    ):
        self.kind = kind
        self.provider = provider
        self.provider_status = status
        super().__init__(message, step=step)

    @property
    def status_code(self) -> int:
        return KIND_STATUS[self.kind]

    @classmethod
    def from_status(cls, status: int, message: str, provider: str = "provider") -> "ProviderError":
        kind = kind_from_status(status)
        if kind is ProviderErrorKind.UNKNOWN:
            kind = classify_error_text(message)
        return cls(kind, message, provider=provider, status=status)

    @classmethod
    def from_exception(cls, exc: BaseException, provider: str = "provider") -> "ProviderError":
        if isinstance(exc, ProviderError):
            return exc
        message = str(exc) or exc.__class__.__name__
        return cls(classify_error_text(message), message, provider=provider)
