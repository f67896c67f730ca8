"""Tests for the bulk batch executor.

Tests cover:
- Result ordering and the successful/failed split
- Per-item retry with fixed and exponential delays
- continue_on_error on and off (skipped items)
- Concurrency bound within a batch
"""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from clickup_mcp.core.bulk import BulkService, TaskUpdate, is_retryable, summarize_failures
from clickup_mcp.core.errors import (
    BatchItemSkippedError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    ValidationError,
)
from clickup_mcp.core.models import BulkOptions
from tests.conftest import no_sleep


def _options(**overrides) -> BulkOptions:
    values = dict(batch_size=10, concurrency=3, retry_count=0, retry_delay=0.0)
    values.update(overrides)
    return BulkOptions(**values)


class TestIsRetryable:
    def test_domain_errors_not_retried(self):
        assert not is_retryable(ValidationError("bad"))
        assert not is_retryable(NotFoundError("missing"))

    def test_rate_limit_not_retried_again(self):
        assert not is_retryable(RateLimitError(retry_after=7.0))

    def test_upstream_follows_flag(self):
        assert is_retryable(UpstreamError("boom", status_code=502, retryable=True))
        assert not is_retryable(UpstreamError("nope", status_code=400))

    def test_unknown_errors_retried(self):
        assert is_retryable(ConnectionError("reset"))


class TestProcessBatch:
    @pytest.mark.asyncio
    async def test_results_in_submission_order(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)

        async def operation(item: int) -> int:
            await asyncio.sleep(0.001 * (5 - item))
            return item * 10

        result = await service.process_batch([1, 2, 3, 4], operation, _options(batch_size=2))

        assert result.successful == [10, 20, 30, 40]
        assert result.failed == []
        assert result.total == 4
        assert result.all_succeeded

    @pytest.mark.asyncio
    async def test_empty_batch(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)

        async def operation(item):
            raise AssertionError("not called")

        result = await service.process_batch([], operation, _options())

        assert result.total == 0
        assert result.successful == []

    @pytest.mark.asyncio
    async def test_retries_with_exponential_backoff(self, mock_client):
        delays: List[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        service = BulkService(mock_client, sleep=record_sleep)
        attempts = {"count": 0}

        async def flaky(item: str) -> str:
            attempts["count"] += 1
            if attempts["count"] < 3:
                raise UpstreamError("503", status_code=503, retryable=True)
            return item

        result = await service.process_batch(
            ["a"], flaky, _options(retry_count=3, retry_delay=1.0, exponential_backoff=True)
        )

        assert result.successful == ["a"]
        assert attempts["count"] == 3
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_fixed_delay_without_exponential_backoff(self, mock_client):
        delays: List[float] = []

        async def record_sleep(delay: float) -> None:
            delays.append(delay)

        service = BulkService(mock_client, sleep=record_sleep)

        async def always_fails(item: str) -> str:
            raise UpstreamError("503", status_code=503, retryable=True)

        result = await service.process_batch(
            ["a"],
            always_fails,
            _options(retry_count=2, retry_delay=0.5, exponential_backoff=False),
        )

        assert delays == [0.5, 0.5]
        assert result.failure_count == 1
        assert isinstance(result.failed[0].error, UpstreamError)

    @pytest.mark.asyncio
    async def test_non_retryable_error_attempted_once(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)
        calls = []

        async def operation(item: str) -> str:
            calls.append(item)
            raise UpstreamError("bad request", status_code=400)

        result = await service.process_batch(["a"], operation, _options(retry_count=3))

        assert calls == ["a"]
        assert result.failed[0].index == 0

    @pytest.mark.asyncio
    async def test_rate_limited_item_not_retried_by_executor(self, mock_client):
        delays = []

        async def sleep(delay: float) -> None:
            delays.append(delay)

        service = BulkService(mock_client, sleep=sleep)
        calls = []

        async def operation(item: str) -> str:
            calls.append(item)
            raise RateLimitError(retry_after=7.0)

        result = await service.process_batch(
            ["a"], operation, _options(retry_count=3, retry_delay=1.0)
        )

        assert calls == ["a"]
        assert delays == []
        assert isinstance(result.failed[0].error, RateLimitError)

    @pytest.mark.asyncio
    async def test_stops_after_failing_batch_when_continue_on_error_off(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)
        attempted = []

        async def operation(item: int) -> int:
            attempted.append(item)
            if item == 1:
                raise UpstreamError("boom", status_code=400)
            return item

        result = await service.process_batch(
            [0, 1, 2, 3, 4], operation, _options(batch_size=2, continue_on_error=False)
        )

        assert sorted(attempted) == [0, 1]
        assert result.successful == [0]
        assert [f.index for f in result.failed] == [1, 2, 3, 4]
        assert all(isinstance(f.error, BatchItemSkippedError) for f in result.failed[1:])
        assert result.total == 5

    @pytest.mark.asyncio
    async def test_continue_on_error_attempts_everything(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)

        async def operation(item: int) -> int:
            if item == 1:
                raise UpstreamError("boom", status_code=400)
            return item

        result = await service.process_batch(
            [0, 1, 2, 3, 4], operation, _options(batch_size=2, continue_on_error=True)
        )

        assert result.successful == [0, 2, 3, 4]
        assert [(f.index, f.item) for f in result.failed] == [(1, 1)]

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, mock_client):
        service = BulkService(mock_client, sleep=no_sleep)
        in_flight = {"now": 0, "max": 0}

        async def operation(item: int) -> int:
            in_flight["now"] += 1
            in_flight["max"] = max(in_flight["max"], in_flight["now"])
            await asyncio.sleep(0.005)
            in_flight["now"] -= 1
            return item

        result = await service.process_batch(
            list(range(8)), operation, _options(batch_size=8, concurrency=2)
        )

        assert result.success_count == 8
        assert in_flight["max"] == 2


class TestBulkOperations:
    @pytest.mark.asyncio
    async def test_create_tasks_targets_one_list(self, mock_client):
        mock_client.create_task.side_effect = lambda list_id, data: {"id": data["name"]}
        service = BulkService(mock_client, sleep=no_sleep)

        result = await service.create_tasks("list-1", [{"name": "a"}, {"name": "b"}], _options())

        assert result.successful == [{"id": "a"}, {"id": "b"}]
        mock_client.create_task.assert_any_await("list-1", {"name": "a"})
        mock_client.create_task.assert_any_await("list-1", {"name": "b"})

    @pytest.mark.asyncio
    async def test_update_tasks_sends_each_patch(self, mock_client):
        mock_client.update_task.side_effect = lambda task_id, data: {"id": task_id, **data}
        service = BulkService(mock_client, sleep=no_sleep)

        result = await service.update_tasks(
            [TaskUpdate(id="t1", data={"status": "done"})], _options()
        )

        assert result.successful == [{"id": "t1", "status": "done"}]

    @pytest.mark.asyncio
    async def test_move_tasks(self, mock_client):
        mock_client.move_task.side_effect = lambda task_id, list_id: {"id": f"{task_id}-new"}
        service = BulkService(mock_client, sleep=no_sleep)

        result = await service.move_tasks(["t1"], "list-2", _options())

        assert result.successful == [{"id": "t1-new"}]
        mock_client.move_task.assert_awaited_once_with("t1", "list-2")

    @pytest.mark.asyncio
    async def test_delete_tasks_reports_deleted_ids(self, mock_client):
        mock_client.delete_task.return_value = None
        service = BulkService(mock_client, sleep=no_sleep)

        result = await service.delete_tasks(["t1", "t2"], _options())

        assert result.successful == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_summarize_failures(self, mock_client):
        mock_client.delete_task.side_effect = UpstreamError("forbidden", status_code=403)
        service = BulkService(mock_client, sleep=no_sleep)

        result = await service.delete_tasks(["t1"], _options(continue_on_error=True))

        assert summarize_failures(result) == [
            {"index": 0, "error": "forbidden", "error_type": "UpstreamError"}
        ]
