"""Unified task tool: single-task operations routed by action."""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Union

from mcp.server.fastmcp import FastMCP

from clickup_mcp.core.context import generate_correlation_id, sync_request_context
from clickup_mcp.core.errors import ValidationError
from clickup_mcp.core.handlers import TaskHandlers
from clickup_mcp.core.models import UPDATABLE_FIELDS
from clickup_mcp.core.naming import canonical_tool
from clickup_mcp.core.responses import success_response
from clickup_mcp.tools.unified.common import dispatch_action, drop_unset, request_id
from clickup_mcp.tools.unified.router import ActionDefinition, ActionRouter

logger = logging.getLogger(__name__)


def _apply_clear_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Turn ``clear_fields`` into explicit ``None`` values for the patch."""
    clear_fields = payload.pop("clear_fields", None) or []
    unknown = [name for name in clear_fields if name not in UPDATABLE_FIELDS]
    if unknown:
        raise ValidationError(
            f"Cannot clear {', '.join(unknown)}. Clearable fields: {', '.join(UPDATABLE_FIELDS)}",
            field="clear_fields",
        )
    for name in clear_fields:
        if name in payload:
            raise ValidationError(
                f"'{name}' is both set and listed in clear_fields", field="clear_fields"
            )
        payload[name] = None
    return payload


async def _handle_create(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    task = await handlers.create_task(payload)
    return asdict(success_response(task=task, request_id=request_id()))


async def _handle_get(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    task = await handlers.get_task(payload)
    return asdict(success_response(task=task, request_id=request_id()))


async def _handle_list(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    tasks = await handlers.get_tasks(payload)
    return asdict(success_response(tasks=tasks, count=len(tasks), request_id=request_id()))


async def _handle_update(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    task = await handlers.update_task(_apply_clear_fields(payload))
    return asdict(success_response(task=task, request_id=request_id()))


async def _handle_move(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    task = await handlers.move_task(payload)
    return asdict(
        success_response(
            task=task,
            warnings=["Moving recreates the task: the returned task has a new ID"],
            request_id=request_id(),
        )
    )


async def _handle_duplicate(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    task = await handlers.duplicate_task(payload)
    return asdict(success_response(task=task, request_id=request_id()))


async def _handle_delete(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    deleted = await handlers.delete_task(payload)
    return asdict(success_response(deleted=deleted, request_id=request_id()))


async def _handle_comments(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    comments = await handlers.get_task_comments(payload)
    return asdict(
        success_response(comments=comments, count=len(comments), request_id=request_id())
    )


async def _handle_add_comment(*, handlers: TaskHandlers, payload: Dict[str, Any]) -> dict:
    comment = await handlers.create_task_comment(payload)
    return asdict(success_response(comment=comment, request_id=request_id()))


_ACTION_DEFINITIONS = [
    ActionDefinition(name="create", handler=_handle_create, summary="Create a task in a list"),
    ActionDefinition(name="get", handler=_handle_get, summary="Fetch one task"),
    ActionDefinition(
        name="list",
        handler=_handle_list,
        summary="List a list's tasks with optional filters",
    ),
    ActionDefinition(
        name="update",
        handler=_handle_update,
        summary="Update only the supplied fields of a task",
    ),
    ActionDefinition(name="move", handler=_handle_move, summary="Move a task to another list"),
    ActionDefinition(
        name="duplicate",
        handler=_handle_duplicate,
        summary="Copy a task, in place or into another list",
    ),
    ActionDefinition(name="delete", handler=_handle_delete, summary="Delete a task"),
    ActionDefinition(name="comments", handler=_handle_comments, summary="Read a task's comments"),
    ActionDefinition(
        name="add-comment",
        handler=_handle_add_comment,
        summary="Add a comment to a task",
        aliases=("add_comment",),
    ),
]

_TASK_ROUTER = ActionRouter(tool_name="task", actions=_ACTION_DEFINITIONS)


def register_unified_task_tool(mcp: FastMCP, handlers: TaskHandlers) -> None:
    """Register the consolidated task tool."""

    @canonical_tool(
        mcp,
        canonical_name="task",
    )
    async def task(
        action: str,
        task_id: Optional[str] = None,
        custom_task_id: Optional[str] = None,
        task_name: Optional[str] = None,
        list_id: Optional[str] = None,
        list_name: Optional[str] = None,
        target_list_id: Optional[str] = None,
        target_list_name: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        markdown_description: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[Union[int, str]] = None,
        due_date: Optional[Union[int, str]] = None,
        clear_fields: Optional[List[str]] = None,
        subtasks: Optional[bool] = None,
        statuses: Optional[List[str]] = None,
        page: Optional[int] = None,
        order_by: Optional[str] = None,
        reverse: Optional[bool] = None,
        start: Optional[int] = None,
        start_id: Optional[str] = None,
        comment_text: Optional[str] = None,
        notify_all: Optional[bool] = None,
        assignee: Optional[int] = None,
    ) -> dict:
        """Operate on one ClickUp task.

        Identify a task by task_id, custom_task_id, or task_name with
        list_name. Identify a list by list_id or list_name; move and
        duplicate also accept target_list_id / target_list_name.
        Actions: create, get, list, update, move, duplicate, delete,
        comments, add-comment.
        """
        payload = drop_unset(
            {
                "task_id": task_id,
                "custom_task_id": custom_task_id,
                "task_name": task_name,
                "list_id": list_id,
                "list_name": list_name,
                "target_list_id": target_list_id,
                "target_list_name": target_list_name,
                "name": name,
                "description": description,
                "markdown_description": markdown_description,
                "status": status,
                "priority": priority,
                "due_date": due_date,
                "clear_fields": clear_fields,
                "subtasks": subtasks,
                "statuses": statuses,
                "page": page,
                "order_by": order_by,
                "reverse": reverse,
                "start": start,
                "start_id": start_id,
                "comment_text": comment_text,
                "notify_all": notify_all,
                "assignee": assignee,
            }
        )
        with sync_request_context(correlation_id=generate_correlation_id(prefix="task")):
            return await dispatch_action(
                _TASK_ROUTER, action=action, handlers=handlers, payload=payload
            )

    logger.debug("Registered unified task tool")


__all__ = [
    "register_unified_task_tool",
]
