"""
Core configuration shared between the gateway API and the workflow client
"""

from pathlib import Path
from typing import Dict, Any, List
import os

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("STUDIO_DATA_DIR", str(PROJECT_ROOT / "data")))
BLOB_DIR = DATA_DIR / "blobs"

# Runtime flags
DEV_MODE = os.getenv("STUDIO_DEV_MODE", "").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Provider credentials (environment variable names, read at call time)
PROVIDER_CREDENTIALS = {
    "replicate": "REPLICATE_API_TOKEN",
    "clipdrop": "CLIPDROP_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

PROVIDER_CONFIG = {
    "replicate": {
        "name": "Replicate",
        "base_url": "https://api.replicate.com/v1",
        "poll_interval": 1.0,
    },
    "clipdrop": {
        "name": "Clipdrop",
        "base_url": "https://clipdrop-api.co",
    },
    "anthropic": {
        "name": "Anthropic",
        "base_url": "https://api.anthropic.com/v1",
        "api_version": "2023-06-01",
    },
}

# Model configurations. Handler variants never settled on one version, so
# every capability reads its model from here.
MODEL_CONFIG: Dict[str, Dict[str, Any]] = {
    "image": {
        "name": "Imagen 4 Fast",
        "model_id": os.getenv("IMAGE_MODEL_ID", "google/imagen-4-fast"),
    },
    "image_to_image": {
        "name": "Stability AI SDXL",
        "model_id": os.getenv(
            "IMAGE_TO_IMAGE_MODEL_ID",
            "stability-ai/sdxl:7762fd07cf82c948538e41f63f77d685e02b063e37e496e96eefd46c929f9bdc",
        ),
    },
    "3d": {
        "name": "Hunyuan3D-2",
        "model_id": os.getenv(
            "THREED_MODEL_ID",
            "ndreca/hunyuan3d-2:4ac0c7d1ef7e7dd58bf92364262597272dea79bfdb158b26027f54eb667f28b8",
        ),
    },
    "coloring_book": {
        "name": "SDXL Coloring Book",
        "model_id": os.getenv(
            "COLORING_BOOK_MODEL_ID",
            "pnickolas1/sdxl-coloringbook:d2b110483fdce03119b21786d823f10bb3f5a7c49a7429da784c5017df096d33",
        ),
    },
    "prompt": {
        "name": "Claude 3.5 Sonnet",
        "model_id": os.getenv("PROMPT_MODEL_ID", "claude-3-5-sonnet-20241022"),
        "max_tokens": 4000,
        "temperature": 1.0,
    },
}


def _timeout(env_name: str, default: float) -> float:
    value = os.getenv(env_name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Server-side deadlines for the outbound provider call (seconds)
GATEWAY_TIMEOUTS = {
    "image": _timeout("IMAGE_TIMEOUT", 60.0),
    "image_to_image": _timeout("IMAGE_TO_IMAGE_TIMEOUT", 45.0),
    "3d": _timeout("THREED_TIMEOUT", 840.0),
    "coloring_book": _timeout("COLORING_BOOK_TIMEOUT", 120.0),
    "background_removal": _timeout("BACKGROUND_REMOVAL_TIMEOUT", 60.0),
    "prompt": _timeout("PROMPT_TIMEOUT", 60.0),
    "download": _timeout("DOWNLOAD_TIMEOUT", 30.0),
}

# HTTP status returned when a deadline expires
TIMEOUT_STATUS = {
    "image_to_image": 408,
    "download": 408,
}
DEFAULT_TIMEOUT_STATUS = 504

# Client-side abort-after-deadline values used by the workflow coordinator
CLIENT_TIMEOUTS = {
    "image": 30.0,
    "image_to_image": 60.0,
    "3d": 300.0,
    "coloring_book": 120.0,
    "background_removal": 60.0,
    "prompt": 60.0,
    "download": 30.0,
    "creations": 30.0,
}

# Image generation options
ASPECT_RATIOS = ["1:1", "4:3", "3:4", "16:9", "9:16"]
PERSON_GENERATION_OPTIONS = ["dont_allow", "allow_adult", "allow_all"]

# Image-to-image defaults and provider-safe maximums
IMAGE_TO_IMAGE_DEFAULTS = {
    "strength": 0.8,
    "guidance_scale": 7.5,
    "num_inference_steps": 50,
}
IMAGE_TO_IMAGE_LIMITS = {
    "strength": 0.8,
    "guidance_scale": 7.5,
    "num_inference_steps": 30,
}

COLORING_BOOK_PROMPT = (
    "black and white coloring page, line art, simple outlines, no shading, "
    "coloring book style"
)

PROMPT_SYSTEM_MESSAGE = (
    "You are an expert prompt engineer for AI image generation. Your task is to "
    "create detailed, professional prompts for 3D model generation that will "
    "produce high-quality, photorealistic results. Focus on technical "
    "specifications, lighting, materials, and visual composition that would be "
    "suitable for commercial use."
)

# Upload limits
MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10MB

# Hosts that reject HEAD on stored objects; image URLs there are checked with GET
BLOB_STORAGE_MARKERS = [
    "firebasestorage.googleapis.com",
    "/storage/v1/object/",
]
IMAGE_URL_CHECK_TIMEOUT = _timeout("IMAGE_URL_CHECK_TIMEOUT", 10.0)

# Persistence
SUPABASE_CONFIG = {
    "url_env": "SUPABASE_URL",
    "key_envs": ["SUPABASE_SERVICE_KEY", "SUPABASE_ANON_KEY"],
    "creations_table": "creations",
    "prompts_table": "prompts",
    "bucket": "creations",
}

LOCAL_STORE_LIMIT = 100
LOCAL_STORE_KEYS = {
    "image": "saved-images",
    "3d-model": "saved-models",
    "coloring-book": "saved-coloring-books",
    "background-removed": "saved-background-removed",
}
LOCAL_PROMPTS_KEY = "saved-prompts"

# Workflow sessions
WORKFLOW_SESSION_TTL = _timeout("WORKFLOW_SESSION_TTL", 6 * 60 * 60)
PROMPT_HISTORY_LIMIT = 10

# Identity
AUTH_CONFIG = {
    "secret_env": "AUTH_JWT_SECRET",
    "algorithms": ["HS256"],
    "audience": os.getenv("AUTH_JWT_AUDIENCE") or None,
}


def get_api_key(provider: str) -> str:
    """Return the credential for a provider or raise ConfigurationError"""
    from .exceptions import ConfigurationError

    env_name = PROVIDER_CREDENTIALS[provider]
    value = os.getenv(env_name, "").strip()
    if not value:
        raise ConfigurationError(
            f"API configuration error: {env_name} is not set"
        )
    return value


def get_timeout(capability: str) -> float:
    return GATEWAY_TIMEOUTS[capability]


def get_timeout_status(capability: str) -> int:
    return TIMEOUT_STATUS.get(capability, DEFAULT_TIMEOUT_STATUS)
