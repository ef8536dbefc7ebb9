"""Service modules"""

from .timeout import run_with_deadline, run_for_capability
from .generation_service import (
    GenerationGateway,
    DownloadedImage,
    ThreeDStep,
    extract_model_url,
    validate_image_bytes,
)

__all__ = [
    "run_with_deadline",
    "run_for_capability",
    "GenerationGateway",
    "DownloadedImage",
    "ThreeDStep",
    "extract_model_url",
    "validate_image_bytes",
]
