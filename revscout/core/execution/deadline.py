"""Overall deadline for multi-step operations."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from revscout.core.errors import ClassifiedError
from revscout.core.logging import logger
from revscout.core.operation_config import ErrorKind

T = TypeVar("T")


async def run_with_deadline(
    awaitable: Awaitable[T], timeout: Optional[float], operation: str = "operation"
) -> T:
    """Await ``awaitable`` bounded by ``timeout`` seconds.

    On expiry the inner task is cancelled, so any pending HTTP call, poll
    interval, backoff wait or rate-limit spacing is abandoned.

    Raises:
        ClassifiedError: With kind TIMEOUT when the deadline passes
    """
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning("deadline_exceeded", operation=operation, timeout=timeout)
        raise ClassifiedError(
            ErrorKind.TIMEOUT,
            f"{operation} did not finish within {timeout}s",
            e,
            {"timeout": timeout},
        ) from e
