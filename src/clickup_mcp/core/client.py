"""Async ClickUp API client.

Wraps the ClickUp REST API v2 endpoints used by the task tools: tasks,
lists, workspace hierarchy (for name lookups) and comments.

ClickUp API documentation: https://clickup.com/api/

Example usage:
    async with ClickUpClient(api_token="pk_...", team_id="123") as client:
        task = await client.get_task("86a1b2c3d")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from clickup_mcp.core.errors import (
    AuthenticationError,
    RateLimitError,
    ResourceNotFoundError,
    UpstreamError,
)
from clickup_mcp.core.models import TaskFilters

logger = logging.getLogger(__name__)

CLICKUP_API_BASE_URL = "https://api.clickup.com/api/v2"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3

# Fields carried over when a task is recreated by move/duplicate
_COPIED_FIELDS = ("description", "markdown_description", "due_date", "start_date", "time_estimate")


class ClickUpClient:
    """ClickUp REST API client.

    One instance is created per process and shared by every in-flight tool
    call; it holds a single pooled ``httpx.AsyncClient``.

    Attributes:
        team_id: Workspace ID used for list search and custom task IDs
    """

    def __init__(
        self,
        api_token: Optional[str],
        team_id: Optional[str] = None,
        *,
        base_url: str = CLICKUP_API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_token: ClickUp personal API token
            team_id: Workspace (team) ID
            base_url: API base URL
            timeout: Request timeout in seconds
            max_retries: Attempts for rate-limited or failed transport requests
            transport: Optional httpx transport (used by tests)

        Raises:
            ValueError: If no API token is provided
        """
        if not api_token:
            raise ValueError(
                "ClickUp API token required. Set CLICKUP_API_TOKEN or [clickup].api_token."
            )
        self.team_id = team_id
        self._base_url = base_url.rstrip("/")
        self._max_retries = max(1, max_retries)
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": api_token, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ClickUpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Any] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request with retry on rate limits and transport errors.

        Raises:
            AuthenticationError: 401 (and 403 with an auth ECODE)
            ResourceNotFoundError: 404
            RateLimitError: 429 after all retries
            UpstreamError: any other failure
        """
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                logger.debug("ClickUp %s %s (attempt %d)", method, path, attempt + 1)
                response = await self._http.request(method, path, params=params, json=json)
            except httpx.TimeoutException as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    wait_time = 2**attempt
                    logger.warning(
                        f"ClickUp request timeout, retrying in {wait_time}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(wait_time)
                continue
            except httpx.RequestError as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    wait_time = 2**attempt
                    logger.warning(
                        f"ClickUp request error: {e}, retrying in {wait_time}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(wait_time)
                continue

            if response.status_code == 429:
                retry_after = self._parse_retry_after(response)
                if attempt < self._max_retries - 1:
                    wait_time = retry_after or (2**attempt)
                    logger.warning(
                        f"ClickUp rate limit hit, waiting {wait_time}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(wait_time)
                    continue
                raise RateLimitError(retry_after=retry_after)

            if response.status_code >= 400:
                raise self._error_for(response, method, path)

            if not response.content:
                return {}
            return response.json()

        raise UpstreamError(
            f"ClickUp request {method} {path} failed after {self._max_retries} attempts: {last_error}",
            retryable=True,
        )

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    @staticmethod
    def _error_for(response: httpx.Response, method: str, path: str) -> UpstreamError:
        """Build the exception for a non-2xx response."""
        message = response.reason_phrase or "error"
        error_code: Optional[str] = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("err") or body.get("error") or message)
            error_code = body.get("ECODE")

        status = response.status_code
        if status == 401 or (status == 403 and error_code and error_code.startswith("OAUTH")):
            return AuthenticationError(f"ClickUp authentication failed: {message}", error_code=error_code)
        if status == 404:
            return ResourceNotFoundError(
                f"ClickUp resource not found ({method} {path}): {message}",
                error_code=error_code,
            )
        return UpstreamError(
            f"ClickUp API error {status} ({method} {path}): {message}",
            status_code=status,
            error_code=error_code,
            retryable=status >= 500,
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/task/{task_id}")

    async def get_task_by_custom_id(self, custom_task_id: str) -> Dict[str, Any]:
        """Fetch a task by its custom ID (requires ``team_id``)."""
        if not self.team_id:
            raise UpstreamError(
                "Custom task ID lookup requires a workspace ID. Set CLICKUP_TEAM_ID."
            )
        return await self._request(
            "GET",
            f"/task/{custom_task_id}",
            params={"custom_task_ids": "true", "team_id": self.team_id},
        )

    async def get_tasks(
        self, list_id: str, filters: Optional[TaskFilters] = None
    ) -> List[Dict[str, Any]]:
        params = filters.to_query_params() if filters else None
        data = await self._request("GET", f"/list/{list_id}/task", params=params)
        return list(data.get("tasks", []))

    async def get_all_tasks(self, list_id: str) -> List[Dict[str, Any]]:
        """Every task in a list, following pagination until ``last_page``."""
        tasks: List[Dict[str, Any]] = []
        page = 0
        while True:
            data = await self._request("GET", f"/list/{list_id}/task", params={"page": page})
            batch = data.get("tasks", [])
            tasks.extend(batch)
            if data.get("last_page", True) or not batch:
                return tasks
            page += 1

    async def create_task(self, list_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/list/{list_id}/task", json=dict(data))

    async def update_task(self, task_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/task/{task_id}", json=dict(data))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/task/{task_id}")

    async def move_task(self, task_id: str, list_id: str) -> Dict[str, Any]:
        """Move a task to another list.

        The v2 API has no move endpoint: the task is recreated in the target
        list and the original deleted. The returned task has a new ID.
        """
        original = await self.get_task(task_id)
        created = await self.create_task(list_id, _task_copy(original, name=original.get("name")))
        await self.delete_task(task_id)
        logger.debug("Moved task %s to list %s as %s", task_id, list_id, created.get("id"))
        return created

    async def duplicate_task(self, task_id: str, list_id: Optional[str] = None) -> Dict[str, Any]:
        """Copy a task into ``list_id``, or into its own list when omitted."""
        original = await self.get_task(task_id)
        target_list_id = list_id or (original.get("list") or {}).get("id")
        if not target_list_id:
            raise UpstreamError(f"Task {task_id} has no list to duplicate into")
        return await self.create_task(
            str(target_list_id),
            _task_copy(original, name=f"{original.get('name', '')} (copy)"),
        )

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def get_task_comments(
        self,
        task_id: str,
        start: Optional[int] = None,
        start_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if start is not None:
            params["start"] = start
        if start_id is not None:
            params["start_id"] = start_id
        data = await self._request("GET", f"/task/{task_id}/comment", params=params or None)
        return list(data.get("comments", []))

    async def create_task_comment(
        self,
        task_id: str,
        comment_text: str,
        notify_all: bool = False,
        assignee: Optional[int] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"comment_text": comment_text, "notify_all": notify_all}
        if assignee is not None:
            body["assignee"] = assignee
        return await self._request("POST", f"/task/{task_id}/comment", json=body)

    # ------------------------------------------------------------------
    # Lists / workspace hierarchy
    # ------------------------------------------------------------------

    async def get_workspace_lists(self) -> List[Dict[str, Any]]:
        """Every non-archived list in the workspace, folderless and in folders."""
        if not self.team_id:
            raise UpstreamError("List lookup by name requires a workspace ID. Set CLICKUP_TEAM_ID.")

        spaces = (
            await self._request("GET", f"/team/{self.team_id}/space", params={"archived": "false"})
        ).get("spaces", [])

        per_space = await asyncio.gather(*(self._space_lists(space["id"]) for space in spaces))
        return [lst for lists in per_space for lst in lists]

    async def _space_lists(self, space_id: str) -> List[Dict[str, Any]]:
        folderless, folders = await asyncio.gather(
            self._request("GET", f"/space/{space_id}/list", params={"archived": "false"}),
            self._request("GET", f"/space/{space_id}/folder", params={"archived": "false"}),
        )
        lists: List[Dict[str, Any]] = list(folderless.get("lists", []))
        for folder in folders.get("folders", []):
            lists.extend(folder.get("lists", []))
        return lists


def _task_copy(task: Mapping[str, Any], *, name: Optional[str]) -> Dict[str, Any]:
    """Creation payload reproducing ``task``'s fields under ``name``."""
    data: Dict[str, Any] = {"name": name}
    for key in _COPIED_FIELDS:
        if task.get(key) is not None:
            data[key] = task[key]

    status = task.get("status")
    if isinstance(status, Mapping) and status.get("status"):
        data["status"] = status["status"]

    priority = task.get("priority")
    if isinstance(priority, Mapping) and priority.get("id") is not None:
        data["priority"] = int(priority["id"])

    tags: Sequence[Mapping[str, Any]] = task.get("tags") or []
    if tags:
        data["tags"] = [tag["name"] for tag in tags if tag.get("name")]
    return data


__all__ = ["ClickUpClient", "CLICKUP_API_BASE_URL"]
