"""
Async retry and timeout helpers shared by the coordinator and sync service.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from memsync.utils.exceptions import StoreError
from memsync.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: float | None) -> T:
    """
    Await a store call with an upper bound on its duration.

    Args:
        awaitable: Store call to await
        timeout: Seconds to wait, None for no bound

    Returns:
        Result of the awaitable

    Raises:
        asyncio.TimeoutError: If the call does not finish in time
    """
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    max_retries: int = 3,
    retry_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (StoreError, asyncio.TimeoutError),
    context: dict[str, Any] | None = None,
) -> T:
    """
    Retry an async operation with exponential backoff.

    Only errors listed in ``retry_on`` are retried; anything else propagates
    immediately. After the last attempt the original error is re-raised so the
    caller can wrap it in its own taxonomy.

    Args:
        operation: Async callable to retry
        operation_name: Name for logging
        max_retries: Maximum attempts (values below 1 mean a single attempt)
        retry_delay: Base delay in seconds, doubled after each failure
        retry_on: Exception types considered transient
        context: Extra fields attached to the log records (e.g. memory_id)

    Returns:
        Result of operation
    """
    attempts = max(1, max_retries)
    # Caller text stays out of the message; loguru formats messages logged with extra=
    context = {**(context or {}), "operation": operation_name}

    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as e:
            if attempt < attempts - 1:
                delay = retry_delay * (2**attempt)
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} failed, retrying in {delay}s",
                    extra={
                        **context,
                        "attempt": attempt + 1,
                        "error_type": type(e).__name__,
                    },
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    f"Operation failed after {attempts} attempts",
                    extra={
                        **context,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                raise
