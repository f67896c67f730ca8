"""Batch executor for bulk task operations.

``BulkService`` runs one ClickUp operation per item with bounded
concurrency and per-item retries, and reports a ``BatchResult`` split into
``successful`` results and ``failed`` items. It never raises for an item
failure; callers decide what to surface.

Scheduling:
    items are cut into chunks of ``batch_size``; within a chunk at most
    ``concurrency`` operations are in flight. When ``continue_on_error`` is
    off, the first chunk containing a failure ends the run and every later
    item is reported as skipped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Sequence, TypeVar

from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.concurrency import ConcurrencyLimiter
from clickup_mcp.core.errors import (
    BatchItemSkippedError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)
from clickup_mcp.core.models import BatchFailure, BatchResult, BulkOptions, UpdateTaskData
from clickup_mcp.core.resilience import retry_with_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TaskUpdate:
    """One resolved item of a bulk update."""

    id: str
    data: UpdateTaskData


def is_retryable(error: Exception) -> bool:
    """Whether repeating the operation that raised ``error`` may succeed."""
    if isinstance(error, (ValidationError, NotFoundError)):
        return False
    # The client already honoured Retry-After on each of its own attempts
    if isinstance(error, RateLimitError):
        return False
    if isinstance(error, UpstreamError):
        return error.retryable
    return True


class BulkService:
    """Runs bulk create/update/move/delete against a shared client.

    Attributes:
        client: ClickUp client shared with the single-operation handlers
    """

    def __init__(
        self,
        client: ClickUpClient,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self._sleep = sleep

    async def process_batch(
        self,
        items: Sequence[T],
        operation: Callable[[T], Awaitable[Any]],
        options: BulkOptions,
    ) -> BatchResult[T]:
        """Apply ``operation`` to every item according to ``options``.

        Returns:
            BatchResult with successful results in submission order and one
            BatchFailure per item that failed or was skipped
        """
        result: BatchResult[T] = BatchResult(total=len(items))
        if not items:
            return result

        batch_size = max(1, options.batch_size)
        multiplier = 2.0 if options.exponential_backoff else 1.0

        async def attempt(item: T) -> Any:
            return await retry_with_backoff(
                lambda: operation(item),
                max_retries=options.retry_count,
                base_delay=options.retry_delay,
                exponential_base=multiplier,
                should_retry=is_retryable,
                sleep=self._sleep,
            )

        for start in range(0, len(items), batch_size):
            chunk = list(items[start : start + batch_size])
            limiter = ConcurrencyLimiter(options.concurrency, name="bulk")
            gathered = await limiter.map(attempt, chunk, return_exceptions=True)

            for offset, (value, error) in enumerate(zip(gathered.results, gathered.errors)):
                index = start + offset
                if error is None:
                    result.successful.append(value)
                else:
                    result.failed.append(BatchFailure(item=chunk[offset], error=error, index=index))

            logger.debug(
                "Bulk chunk %d-%d: %d succeeded, %d failed",
                start,
                start + len(chunk) - 1,
                gathered.stats.succeeded,
                gathered.stats.failed,
            )

            if gathered.stats.failed and not options.continue_on_error:
                remaining = items[start + len(chunk) :]
                for offset, item in enumerate(remaining):
                    result.failed.append(
                        BatchFailure(
                            item=item,
                            error=BatchItemSkippedError(
                                "Skipped: an earlier item failed and continue_on_error is off"
                            ),
                            index=start + len(chunk) + offset,
                        )
                    )
                break

        return result

    async def create_tasks(
        self,
        list_id: str,
        tasks: Sequence[Mapping[str, Any]],
        options: BulkOptions,
    ) -> BatchResult[Mapping[str, Any]]:
        return await self.process_batch(
            tasks, lambda data: self.client.create_task(list_id, data), options
        )

    async def update_tasks(
        self,
        updates: Sequence[TaskUpdate],
        options: BulkOptions,
    ) -> BatchResult[TaskUpdate]:
        return await self.process_batch(
            updates, lambda update: self.client.update_task(update.id, update.data), options
        )

    async def move_tasks(
        self,
        task_ids: Sequence[str],
        target_list_id: str,
        options: BulkOptions,
    ) -> BatchResult[str]:
        return await self.process_batch(
            task_ids, lambda task_id: self.client.move_task(task_id, target_list_id), options
        )

    async def delete_tasks(
        self,
        task_ids: Sequence[str],
        options: BulkOptions,
    ) -> BatchResult[str]:
        """Delete tasks; ``successful`` holds the IDs that were deleted."""

        async def delete(task_id: str) -> str:
            await self.client.delete_task(task_id)
            return task_id

        return await self.process_batch(task_ids, delete, options)


def summarize_failures(result: BatchResult[Any]) -> List[Dict[str, Any]]:
    """Render failures as plain dicts for logs and responses."""
    return [
        {
            "index": failure.index,
            "error": str(failure.error),
            "error_type": type(failure.error).__name__,
        }
        for failure in result.failed
    ]


__all__ = ["BulkService", "TaskUpdate", "is_retryable", "summarize_failures"]
