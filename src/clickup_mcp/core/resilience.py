"""
Retry primitives for ClickUp operations.

Example usage:

    from clickup_mcp.core.resilience import retry_with_backoff

    task = await retry_with_backoff(
        lambda: client.update_task(task_id, patch),
        max_retries=3,
        base_delay=1.0,
    )
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar
import asyncio
import logging
import random

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = False,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Retry an async operation with exponential backoff.

    Args:
        func: Zero-argument callable returning a fresh awaitable per attempt.
        max_retries: Maximum number of retry attempts after the first (default 3).
        base_delay: Initial delay in seconds (default 1.0).
        max_delay: Maximum delay cap in seconds (default 60.0).
        exponential_base: Multiplier for each retry; 1.0 gives a fixed delay.
        jitter: Add randomness to delay (default False).
        should_retry: Predicate deciding whether an exception is retryable
            (default: every exception).
        sleep: Awaitable sleep function (replaced in tests).

    Returns:
        Result from the operation on success.

    Raises:
        Exception: The last exception if all retries are exhausted or the
            predicate rejects it.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if attempt >= max_retries or (should_retry is not None and not should_retry(e)):
                raise

            delay = min(base_delay * (exponential_base**attempt), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            attempt += 1
            logger.debug(
                "Retrying after %s: attempt %d/%d in %.2fs",
                type(e).__name__,
                attempt,
                max_retries,
                delay,
            )
            if delay > 0:
                await sleep(delay)
