"""
Creative Studio Gateway - Main Application
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from studio_core import __version__
from studio_core.config import BLOB_DIR, CORS_ORIGINS, LOG_LEVEL, STORAGE_BACKEND
from studio_backend.api import creations, generation, workflow
from studio_backend.api.errors import register_exception_handlers
from studio_backend.api.middleware.auth import AuthMiddleware
from studio_backend.services import init_services

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Creative Studio Gateway...")
    await init_services()

    yield

    logger.info("Shutting down Creative Studio Gateway...")


app = FastAPI(
    title="Creative Studio Gateway",
    description="""
    Gateway to third-party generative-AI services plus the creative
    workflow state machine.

    ## Features

    * **Image Generation** - Text-to-image and image-to-image
    * **3D Model Generation** - Meshes from a prompt or an image
    * **Background Removal** - Transparent cut-outs of uploaded images
    * **Prompt Enhancement** - LLM-expanded prompt templates
    * **Creations** - Save, list and delete a user's results
    * **Workflow Sessions** - Server-side wizard state

    ## Identity

    Send `Authorization: Bearer <token>` to act as the token's user.
    """,
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Generation", "description": "Provider-backed generation endpoints"},
        {"name": "Creations", "description": "Saved creations and prompts"},
        {"name": "Workflow", "description": "Wizard session state"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuthMiddleware)

register_exception_handlers(app)

# Locally stored blobs
if STORAGE_BACKEND != "supabase":
    BLOB_DIR.mkdir(parents=True, exist_ok=True)
    app.mount("/blobs", StaticFiles(directory=str(BLOB_DIR)), name="blobs")

app.include_router(generation.router, prefix="/api", tags=["Generation"])
app.include_router(creations.router, prefix="/api", tags=["Creations"])
app.include_router(workflow.router, prefix="/api/workflow", tags=["Workflow"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": "Creative Studio Gateway",
        "version": __version__,
        "status": "online",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "storage": STORAGE_BACKEND,
    }


if __name__ == "__main__":
    uvicorn.run(
        "studio_backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
