"""Generation-related exceptions."""

from typing import Optional


class GenerationError(Exception):
    """Base exception for generation-related errors."""

    status_code = 500

    def __init__(self, message: str, step: Optional[str] = None):
        self.message = message
        self.step = step
        super().__init__(message)


class InvalidInputError(GenerationError):
    """Raised when a required request field is missing or malformed."""

    status_code = 400


class ConfigurationError(GenerationError):
    """Raised when a required provider credential is absent."""

    status_code = 500


class PayloadTooLargeError(InvalidInputError):
    """Raised when an uploaded file exceeds the size limit."""

    status_code = 413

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File too large. Maximum size is {limit // (1024 * 1024)}MB"
        )


class GenerationTimeoutError(GenerationError):
    """Raised when a provider call outlives its deadline."""

    def __init__(
        self,
        operation: str,
        timeout: float,
        status_code: int = 504,
        message: Optional[str] = None,
        step: Optional[str] = None,
    ):
        self.operation = operation
        self.timeout = timeout
        self.status_code = status_code
        super().__init__(
            message or (
                f"The {operation} request timed out after {timeout:g}s. "
                "Try again with a simpler prompt or image."
            ),
            step=step,
        )


class OutputFormatError(GenerationError):
    """Raised when a provider answers with an unusable output shape."""
