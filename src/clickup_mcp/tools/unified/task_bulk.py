"""Unified bulk task tool: multi-item create/update/move/delete."""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Union

from mcp.server.fastmcp import FastMCP

from clickup_mcp.core.context import generate_correlation_id, sync_request_context
from clickup_mcp.core.handlers import TaskHandlers
from clickup_mcp.core.naming import canonical_tool
from clickup_mcp.core.payloads import validate_bulk_tasks
from clickup_mcp.core.responses import success_response
from clickup_mcp.tools.unified.common import dispatch_action, drop_unset, request_id
from clickup_mcp.tools.unified.router import ActionDefinition, ActionRouter

logger = logging.getLogger(__name__)


def _submitted(payload: Dict[str, Any]) -> int:
    # The handler has already accepted this batch; tasks may be a JSON string
    return len(validate_bulk_tasks(payload.get("tasks")))


def _bulk_success(results: List[Any], submitted: int) -> dict:
    warnings = []
    if len(results) < submitted:
        warnings.append(
            f"{submitted - len(results)} of {submitted} items failed; see the server log"
        )
    return asdict(
        success_response(
            results=results,
            count=len(results),
            warnings=warnings,
            request_id=request_id(),
        )
    )


def _delete_success(results: List[bool]) -> dict:
    failed = results.count(False)
    warnings = [f"{failed} of {len(results)} deletions failed; see the server log"] if failed else []
    return asdict(
        success_response(
            results=results,
            count=len(results),
            warnings=warnings,
            request_id=request_id(),
        )
    )


async def _handle_create(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    results = await handlers.create_bulk_tasks(payload)
    return _bulk_success(results, _submitted(payload))


async def _handle_update(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    results = await handlers.update_bulk_tasks(payload)
    return _bulk_success(results, _submitted(payload))


async def _handle_move(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    results = await handlers.move_bulk_tasks(payload)
    return _bulk_success(results, _submitted(payload))


async def _handle_delete(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    results = await handlers.delete_bulk_tasks(payload)
    return _delete_success(results)


_ACTION_DEFINITIONS = [
    ActionDefinition(
        name="create",
        handler=_handle_create,
        summary="Create several tasks in one list",
    ),
    ActionDefinition(
        name="update",
        handler=_handle_update,
        summary="Apply a sparse update to each task",
    ),
    ActionDefinition(
        name="move",
        handler=_handle_move,
        summary="Move several tasks to one target list",
    ),
    ActionDefinition(
        name="delete",
        handler=_handle_delete,
        summary="Delete several tasks",
    ),
]

_TASK_BULK_ROUTER = ActionRouter(tool_name="task-bulk", actions=_ACTION_DEFINITIONS)


def register_unified_task_bulk_tool(mcp: FastMCP, handlers: TaskHandlers) -> None:
    """Register the consolidated bulk task tool."""

    @canonical_tool(
        mcp,
        canonical_name="task-bulk",
    )
    async def task_bulk(
        action: str,
        tasks: Optional[Union[List[Dict[str, Any]], str]] = None,
        list_id: Optional[str] = None,
        list_name: Optional[str] = None,
        target_list_id: Optional[str] = None,
        target_list_name: Optional[str] = None,
        options: Optional[Union[Dict[str, Any], str]] = None,
    ) -> dict:
        """Operate on many ClickUp tasks at once.

        Each item in ``tasks`` identifies one task (task_id, custom_task_id,
        or task_name with list_name) and, for update, carries the fields to
        change. create puts every item into list_id / list_name; move sends
        every item to target_list_id / target_list_name. ``options`` sets
        batch_size, concurrency, continue_on_error, retry_count, retry_delay
        and exponential_backoff.
        """
        payload = drop_unset(
            {
                "tasks": tasks,
                "list_id": list_id,
                "list_name": list_name,
                "target_list_id": target_list_id,
                "target_list_name": target_list_name,
                "options": options,
            }
        )
        with sync_request_context(correlation_id=generate_correlation_id(prefix="bulk")):
            return await dispatch_action(
                _TASK_BULK_ROUTER, action=action, handlers=handlers, payload=payload
            )

    logger.debug("Registered unified task-bulk tool")


__all__ = [
    "register_unified_task_bulk_tool",
]
