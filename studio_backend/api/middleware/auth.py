"""
Identity middleware: resolves the caller's user id from an optional bearer token
"""

import logging
import os
from typing import Optional

from fastapi import HTTPException, Request
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from studio_core.config import AUTH_CONFIG, DEV_MODE

logger = logging.getLogger(__name__)

TEST_USER = {"user_id": "test-user-123", "email": "test@example.com"}


def _secret() -> Optional[str]:
    return os.getenv(AUTH_CONFIG["secret_env"])


def verify_token(token: str) -> Optional[dict]:
    """Decode a bearer token into user claims, or None when it is not valid"""
    if DEV_MODE and token.startswith("test-token"):
        return dict(TEST_USER)

    secret = _secret()
    if not secret:
        logger.warning(f"Bearer token received but {AUTH_CONFIG['secret_env']} is not set")
        return None

    options = {"verify_aud": AUTH_CONFIG["audience"] is not None}
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=AUTH_CONFIG["algorithms"],
            audience=AUTH_CONFIG["audience"],
            options=options,
        )
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id:
        return None
    return {**payload, "user_id": str(user_id)}


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Attaches ``request.state.user`` when a valid bearer token is sent

    Requests without an Authorization header pass through anonymously;
    an invalid token is rejected with 401.
    """

    async def dispatch(self, request: Request, call_next):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return await call_next(request)

        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                status_code=401,
                content={"error": "Missing or invalid authorization header"},
            )

        user = verify_token(auth_header.split(" ", 1)[1].strip())
        if user is None:
            return JSONResponse(
                status_code=401,
                content={"error": "Invalid or expired token"},
            )

        request.state.user = user
        return await call_next(request)


def get_current_user(request: Request) -> Optional[dict]:
    """Authenticated user claims, or None for anonymous requests"""
    return getattr(request.state, "user", None)


def resolve_user_id(request: Request, claimed_user_id: Optional[str]) -> str:
    """
    The user id a request acts for

    An authenticated caller may only act for itself; anonymous callers
    must name the user explicitly.
    """
    user = get_current_user(request)
    if user:
        if claimed_user_id and claimed_user_id != user["user_id"]:
            raise HTTPException(status_code=403, detail="Cannot access another user's data")
        return user["user_id"]

    if not claimed_user_id:
        raise HTTPException(status_code=400, detail="userId is required")
    return claimed_user_id
