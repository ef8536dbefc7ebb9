"""
Exception handlers rendering every failure as a JSON error envelope
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studio_core.config import DEV_MODE
from studio_core.exceptions import (
    GenerationError,
    GenerationTimeoutError,
    PersistenceError,
    ProviderError,
    ProviderErrorKind,
    WorkflowError,
)

logger = logging.getLogger(__name__)


def error_envelope(
    message: str,
    status_code: int,
    exc: Optional[BaseException] = None,
    **extra: Any,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    content.update({key: value for key, value in extra.items() if value is not None})
    if DEV_MODE and exc is not None and status_code >= 500:
        content["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=content)


def is_timeout(exc: GenerationError) -> bool:
    """Gateway deadline expiry or a provider that reported its own timeout"""
    if isinstance(exc, GenerationTimeoutError):
        return True
    return isinstance(exc, ProviderError) and exc.kind is ProviderErrorKind.TIMEOUT


async def generation_error_handler(request: Request, exc: GenerationError):
    status_code = exc.status_code
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_envelope(
        exc.message,
        status_code,
        exc,
        isTimeout=True if is_timeout(exc) else None,
        currentStep=exc.step,
    )


async def persistence_error_handler(request: Request, exc: PersistenceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return error_envelope(str(exc), exc.status_code, exc)


async def workflow_error_handler(request: Request, exc: WorkflowError):
    return error_envelope(str(exc), exc.status_code, exc)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return error_envelope("Invalid request body", 400)

    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if first.get("type") == "missing" and location:
        message = f"{location} is required"
    elif location:
        message = f"Invalid {location}: {message}"
    return error_envelope(message, 400)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_envelope(str(exc.detail), exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error on {request.method} {request.url.path}")
    return error_envelope("An unexpected error occurred", 500, exc)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(GenerationError, generation_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(WorkflowError, workflow_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
