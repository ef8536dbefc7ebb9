"""Custom exceptions for studio_core."""

from .generation import (
    GenerationError,
    InvalidInputError,
    ConfigurationError,
    PayloadTooLargeError,
    GenerationTimeoutError,
    OutputFormatError,
)

from .provider import (
    ProviderError,
    ProviderErrorKind,
    classify_error_text,
    kind_from_status,
)

from .persistence import (
    PersistenceError,
    RecordNotFoundError,
)

from .workflow import (
    WorkflowError,
    StepNotReachableError,
    UnknownImageError,
    UnknownSessionError,
)

__all__ = [
    # Generation exceptions
    "GenerationError",
    "InvalidInputError",
    "ConfigurationError",
    "PayloadTooLargeError",
    "GenerationTimeoutError",
    "OutputFormatError",
    # Provider exceptions
    "ProviderError",
    "ProviderErrorKind",
    "classify_error_text",
    "kind_from_status",
    # Persistence exceptions
    "PersistenceError",
    "RecordNotFoundError",
    # Workflow exceptions
    "WorkflowError",
    "StepNotReachableError",
    "UnknownImageError",
    "UnknownSessionError",
]
