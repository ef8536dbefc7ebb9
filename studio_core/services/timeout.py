"""
Deadline wrapper for outbound provider calls
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from ..config import get_timeout, get_timeout_status
from ..exceptions import GenerationTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_deadline(
    awaitable: Awaitable[T],
    seconds: float,
    operation: str,
    status_code: int = 504,
    message: Optional[str] = None,
) -> T:
    """
    Race ``awaitable`` against a deadline

    On expiry the in-flight call is cancelled (clients that support it
    cancel remote work on CancelledError) and GenerationTimeoutError is
    raised. No retry is attempted.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        logger.warning(f"{operation} exceeded its {seconds:g}s deadline")
        raise GenerationTimeoutError(
            operation, seconds, status_code=status_code, message=message
        ) from e


async def run_for_capability(
    awaitable: Awaitable[T],
    capability: str,
    operation: Optional[str] = None,
    message: Optional[str] = None,
) -> T:
    """``run_with_deadline`` using the configured deadline and status for a capability"""
    return await run_with_deadline(
        awaitable,
        get_timeout(capability),
        operation or capability.replace("_", " "),
        status_code=get_timeout_status(capability),
        message=message,
    )
