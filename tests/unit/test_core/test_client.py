"""Tests for the ClickUp HTTP client using an httpx mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.errors import (
    AuthenticationError,
    RateLimitError,
    ResourceNotFoundError,
    UpstreamError,
)
from clickup_mcp.core.models import TaskFilters


def _client(handler, **kwargs) -> ClickUpClient:
    kwargs.setdefault("team_id", "team-1")
    kwargs.setdefault("max_retries", 1)
    return ClickUpClient("pk_test", transport=httpx.MockTransport(handler), **kwargs)


class TestConstruction:
    def test_token_required(self):
        with pytest.raises(ValueError, match="API token"):
            ClickUpClient("")


class TestRequests:
    @pytest.mark.asyncio
    async def test_auth_header_and_task_path(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "abc"})

        async with _client(handler) as client:
            task = await client.get_task("abc")

        assert task == {"id": "abc"}
        assert seen[0].headers["Authorization"] == "pk_test"
        assert seen[0].url.path.endswith("/task/abc")

    @pytest.mark.asyncio
    async def test_custom_id_lookup_params(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "real-1"})

        async with _client(handler) as client:
            await client.get_task_by_custom_id("DEV-1")

        params = seen[0].url.params
        assert seen[0].url.path.endswith("/task/DEV-1")
        assert params["custom_task_ids"] == "true"
        assert params["team_id"] == "team-1"

    @pytest.mark.asyncio
    async def test_custom_id_without_team_fails(self):
        async with _client(lambda r: httpx.Response(200), team_id=None) as client:
            with pytest.raises(UpstreamError, match="CLICKUP_TEAM_ID"):
                await client.get_task_by_custom_id("DEV-1")

    @pytest.mark.asyncio
    async def test_update_sends_sparse_body(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "abc"})

        async with _client(handler) as client:
            await client.update_task("abc", {"due_date": None})

        assert bodies == [{"due_date": None}]

    @pytest.mark.asyncio
    async def test_list_filters_as_query(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"tasks": [{"id": "t1"}]})

        async with _client(handler) as client:
            tasks = await client.get_tasks("list-1", TaskFilters(statuses=["open", "review"]))

        assert tasks == [{"id": "t1"}]
        assert seen[0].url.params.get_list("statuses[]") == ["open", "review"]

    @pytest.mark.asyncio
    async def test_get_all_tasks_follows_pages(self):
        pages = {
            "0": {"tasks": [{"id": "t1"}], "last_page": False},
            "1": {"tasks": [{"id": "t2"}], "last_page": True},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=pages[request.url.params["page"]])

        async with _client(handler) as client:
            tasks = await client.get_all_tasks("list-1")

        assert [t["id"] for t in tasks] == ["t1", "t2"]

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self):
        async with _client(lambda r: httpx.Response(204)) as client:
            assert await client.delete_task("abc") is None

    @pytest.mark.asyncio
    async def test_workspace_lists_include_folders(self):
        routes = {
            "/api/v2/team/team-1/space": {"spaces": [{"id": "s1"}]},
            "/api/v2/space/s1/list": {"lists": [{"id": "list-1", "name": "Sprint 1"}]},
            "/api/v2/space/s1/folder": {
                "folders": [{"lists": [{"id": "list-2", "name": "Backlog"}]}]
            },
        }

        async with _client(lambda r: httpx.Response(200, json=routes[r.url.path])) as client:
            lists = await client.get_workspace_lists()

        assert [lst["id"] for lst in lists] == ["list-1", "list-2"]

    @pytest.mark.asyncio
    async def test_move_recreates_and_deletes(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path))
            if request.method == "GET":
                return httpx.Response(200, json={"id": "old", "name": "Fix bug", "description": "d"})
            if request.method == "POST":
                assert json.loads(request.content) == {"name": "Fix bug", "description": "d"}
                return httpx.Response(200, json={"id": "new"})
            return httpx.Response(204)

        async with _client(handler) as client:
            moved = await client.move_task("old", "list-2")

        assert moved == {"id": "new"}
        assert calls == [
            ("GET", "/api/v2/task/old"),
            ("POST", "/api/v2/list/list-2/task"),
            ("DELETE", "/api/v2/task/old"),
        ]

    @pytest.mark.asyncio
    async def test_comment_body(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "c1"})

        async with _client(handler) as client:
            await client.create_task_comment("abc", "hi", True, 42)

        assert bodies == [{"comment_text": "hi", "notify_all": True, "assignee": 42}]


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_404(self):
        handler = lambda r: httpx.Response(404, json={"err": "Task not found", "ECODE": "ITEM_013"})
        async with _client(handler) as client:
            with pytest.raises(ResourceNotFoundError) as exc_info:
                await client.get_task("nope")
        assert exc_info.value.error_code == "ITEM_013"
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_401(self):
        async with _client(lambda r: httpx.Response(401, json={"err": "Token invalid"})) as client:
            with pytest.raises(AuthenticationError, match="Token invalid"):
                await client.get_task("abc")

    @pytest.mark.asyncio
    async def test_429_after_retries(self):
        handler = lambda r: httpx.Response(429, headers={"Retry-After": "7"})
        async with _client(handler) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.get_task("abc")
        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    async def test_5xx_is_retryable(self):
        async with _client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.get_task("abc")
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_4xx_not_retryable(self):
        async with _client(lambda r: httpx.Response(400, json={"err": "bad"})) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.update_task("abc", {"priority": 9})
        assert not exc_info.value.retryable


class TestDuplicate:
    @pytest.mark.asyncio
    async def test_copies_fields_into_own_list(self):
        bodies = []
        paths = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append((request.method, request.url.path))
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={
                        "id": "abc",
                        "name": "Fix bug",
                        "list": {"id": "list-1"},
                        "status": {"status": "in progress"},
                        "priority": {"id": "2", "priority": "high"},
                        "due_date": "1714557600000",
                        "tags": [{"name": "backend"}],
                    },
                )
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"id": "copy"})

        async with _client(handler) as client:
            copy = await client.duplicate_task("abc")

        assert copy == {"id": "copy"}
        assert paths[-1] == ("POST", "/api/v2/list/list-1/task")
        assert bodies == [
            {
                "name": "Fix bug (copy)",
                "due_date": "1714557600000",
                "status": "in progress",
                "priority": 2,
                "tags": ["backend"],
            }
        ]
