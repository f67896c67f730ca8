"""
Root pytest configuration and shared fixtures.

Provides a mocked ClickUp client, handlers wired to it, and helpers for
unpacking tool responses.
"""

import json
from typing import Any, Dict, List, Union
from unittest.mock import MagicMock

import pytest
from mcp.types import TextContent

from clickup_mcp.config import BulkSettings
from clickup_mcp.core.bulk import BulkService
from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.handlers import TaskHandlers
from clickup_mcp.tools.unified import register_unified_tools

# Response contract version from responses.py
RESPONSE_CONTRACT_VERSION = "response-v2"


def extract_response_dict(result: Union[Dict[str, Any], TextContent]) -> Dict[str, Any]:
    """Extract dict from tool result, handling both dict and TextContent.

    Tools wrapped with canonical_tool return TextContent with minified JSON.

    Raises:
        TypeError: If result is neither dict nor TextContent
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, TextContent):
        return json.loads(result.text)
    raise TypeError(f"Expected dict or TextContent, got {type(result).__name__}")


async def no_sleep(delay: float) -> None:
    """Stand-in for asyncio.sleep that returns immediately."""


def make_lists(*entries: tuple) -> List[Dict[str, Any]]:
    """Workspace list entities from (id, name) pairs."""
    return [{"id": list_id, "name": name} for list_id, name in entries]


def make_tasks(*entries: tuple) -> List[Dict[str, Any]]:
    """Task entities from (id, name) pairs."""
    return [{"id": task_id, "name": name} for task_id, name in entries]


@pytest.fixture
def mock_client() -> MagicMock:
    """ClickUp client double; every async method is an AsyncMock."""
    client = MagicMock(spec=ClickUpClient)
    client.team_id = "team-1"
    client.get_workspace_lists.return_value = make_lists(
        ("list-1", "Sprint 1"), ("list-2", "Backlog")
    )
    client.get_all_tasks.return_value = []
    return client


@pytest.fixture
def bulk_defaults() -> BulkSettings:
    return BulkSettings(retry_count=0, retry_delay=0.0)


@pytest.fixture
def bulk_service(mock_client: MagicMock) -> BulkService:
    return BulkService(mock_client, sleep=no_sleep)


@pytest.fixture
def handlers(
    mock_client: MagicMock, bulk_service: BulkService, bulk_defaults: BulkSettings
) -> TaskHandlers:
    return TaskHandlers(mock_client, bulk_service, bulk_defaults=bulk_defaults)


class CapturingMCP:
    """Stand-in for FastMCP that keeps registered tool functions by name."""

    def __init__(self):
        self.tools: Dict[str, Any] = {}

    def tool(self, name: str, **kwargs: Any):
        def decorator(func):
            self.tools[name] = func
            return func

        return decorator


@pytest.fixture
def registered_tools(handlers: TaskHandlers) -> Dict[str, Any]:
    """Unified tools registered against the mocked handlers."""
    mcp = CapturingMCP()
    register_unified_tools(mcp, handlers)
    return mcp.tools
