"""
Concurrency limiting for async ClickUp operations.

Example:
    from clickup_mcp.core.concurrency import ConcurrencyLimiter

    limiter = ConcurrencyLimiter(max_concurrent=3)
    result = await limiter.gather([client.get_task(tid) for tid in task_ids],
                                  return_exceptions=True)
    print(f"Completed {result.stats.succeeded}/{result.stats.total}")
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ConcurrencyStats:
    """Statistics from concurrent operation execution.

    Attributes:
        total: Total operations attempted
        succeeded: Operations completed successfully
        failed: Operations that raised exceptions
        cancelled: Operations that were cancelled
        elapsed_seconds: Total execution time
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class GatherResult:
    """Result of a gather operation with per-position status.

    Attributes:
        results: Results in submission order (None for failed operations)
        errors: Errors in submission order (None for successful operations)
        stats: Execution statistics
    """

    results: List[Any] = field(default_factory=list)
    errors: List[Optional[BaseException]] = field(default_factory=list)
    stats: ConcurrencyStats = field(default_factory=ConcurrencyStats)

    @property
    def all_succeeded(self) -> bool:
        return self.stats.failed == 0 and self.stats.cancelled == 0


class ConcurrencyLimiter:
    """Limit concurrent async operations using a semaphore.

    Example:
        >>> limiter = ConcurrencyLimiter(max_concurrent=5)
        >>> result = await limiter.gather([fetch(url) for url in urls])
        >>> async with limiter.acquire():
        ...     await slow_operation()
    """

    def __init__(
        self,
        max_concurrent: int = 10,
        *,
        name: str = "",
        timeout: Optional[float] = None,
    ):
        """Initialize concurrency limiter.

        Args:
            max_concurrent: Maximum number of concurrent operations (default: 10)
            name: Optional name for logging
            timeout: Optional timeout per operation in seconds
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.name = name
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active_count = 0

    @property
    def active_count(self) -> int:
        """Get current number of active operations."""
        return self._active_count

    @asynccontextmanager
    async def acquire(self):
        """Hold a concurrency slot for the duration of the block."""
        async with self._semaphore:
            self._active_count += 1
            try:
                yield
            finally:
                self._active_count -= 1

    async def run(
        self,
        coro: Coroutine[Any, Any, T],
        *,
        timeout: Optional[float] = None,
    ) -> T:
        """Run a coroutine with concurrency limiting.

        Raises:
            asyncio.TimeoutError: If operation times out
        """
        effective_timeout = timeout if timeout is not None else self.timeout

        async with self.acquire():
            if effective_timeout:
                return await asyncio.wait_for(coro, timeout=effective_timeout)
            return await coro

    async def gather(
        self,
        coros: List[Coroutine[Any, Any, T]],
        *,
        return_exceptions: bool = False,
        timeout: Optional[float] = None,
    ) -> GatherResult:
        """Run multiple coroutines with concurrency limiting.

        Unlike asyncio.gather, this limits how many operations run in parallel.

        Args:
            coros: List of coroutines to execute
            return_exceptions: If True, every operation settles and errors are
                captured per position; if False, the first exception cancels
                the remaining operations and propagates
            timeout: Optional timeout per operation

        Returns:
            GatherResult with results, errors, and statistics
        """
        start = time.monotonic()
        stats = ConcurrencyStats(total=len(coros))
        results: List[Any] = [None] * len(coros)
        errors: List[Optional[BaseException]] = [None] * len(coros)

        async def run_one(index: int, coro: Coroutine[Any, Any, T]) -> None:
            try:
                results[index] = await self.run(coro, timeout=timeout)
                stats.succeeded += 1
            except asyncio.CancelledError as e:
                errors[index] = e
                stats.cancelled += 1
                raise
            except Exception as e:
                errors[index] = e
                stats.failed += 1
                if not return_exceptions:
                    raise

        tasks = [asyncio.create_task(run_one(i, coro)) for i, coro in enumerate(coros)]
        try:
            await asyncio.gather(*tasks, return_exceptions=return_exceptions)
        except Exception:
            for task in tasks:
                if not task.done():
                    task.cancel()
            raise
        finally:
            stats.elapsed_seconds = time.monotonic() - start

        if stats.failed:
            logger.debug(
                "Limiter %s: %d/%d operations failed",
                self.name or "-",
                stats.failed,
                stats.total,
            )
        return GatherResult(results=results, errors=errors, stats=stats)

    async def map(
        self,
        func: Callable[[T], Coroutine[Any, Any, Any]],
        items: List[T],
        *,
        return_exceptions: bool = False,
        timeout: Optional[float] = None,
    ) -> GatherResult:
        """Apply an async function to items with concurrency limiting."""
        coros = [func(item) for item in items]
        return await self.gather(
            coros,
            return_exceptions=return_exceptions,
            timeout=timeout,
        )
