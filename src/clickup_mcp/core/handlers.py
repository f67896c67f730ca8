"""Single and bulk task operation handlers.

Each single handler runs a fixed pipeline:

    validate -> resolve identity -> build payload -> one client call

and returns the client's result unchanged (delete returns ``True``).

Bulk handlers add a resolution fan-out and delegate execution:

    validate batch -> resolve every item concurrently -> BulkService -> unwrap

Every check that needs no network runs before the first request. A
resolution failure on any item aborts the batch before execution. Per-item
execution failures are logged at WARNING and left out of the return value.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from clickup_mcp.config import BulkSettings
from clickup_mcp.core.bulk import BulkService, TaskUpdate, summarize_failures
from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.errors import (
    AmbiguousMatchError,
    NotFoundError,
    ResourceNotFoundError,
    ValidationError,
)
from clickup_mcp.core.identity import (
    IdentityResolver,
    validate_list_identification,
    validate_task_identification,
)
from clickup_mcp.core.models import (
    BatchResult,
    ListIdentifier,
    TaskFields,
    TaskIdentifier,
    normalize_keys,
)
from clickup_mcp.core.payloads import (
    build_create_data,
    build_task_filters,
    build_update_data,
    parse_bulk_options,
    validate_bulk_tasks,
    validate_task_update_data,
)

logger = logging.getLogger(__name__)


def _destination(params: Mapping[str, Any]) -> ListIdentifier:
    """Destination list for move/duplicate.

    ``target_list_id``/``target_list_name`` win. Otherwise ``list_id`` is
    the destination, and so is ``list_name`` when it is not already scoping
    a task name or custom ID lookup.
    """
    if params.get("target_list_id") or params.get("target_list_name"):
        return ListIdentifier.from_mapping(params, prefix="target_")
    own = ListIdentifier.from_mapping(params)
    if params.get("task_name") or params.get("custom_task_id"):
        return ListIdentifier(list_id=own.list_id)
    return own


def _item_error(index: int, error: ValidationError) -> ValidationError:
    return ValidationError(f"tasks[{index}]: {error}", field=error.field)


class TaskHandlers:
    """Task operations composed from identity resolution, payload building
    and the ClickUp client.

    The client and bulk executor are constructed once by the server and
    shared by all in-flight calls.

    Attributes:
        client: ClickUp client
        bulk: Batch executor for bulk operations
        bulk_defaults: Options used where a bulk caller supplies none
        resolver: Identity resolver bound to ``client``
    """

    def __init__(
        self,
        client: ClickUpClient,
        bulk: BulkService,
        bulk_defaults: Optional[BulkSettings] = None,
    ):
        self.client = client
        self.bulk = bulk
        self.bulk_defaults = bulk_defaults or BulkSettings()
        self.resolver = IdentityResolver(client)

    # ------------------------------------------------------------------
    # Single-task operations
    # ------------------------------------------------------------------

    async def create_task(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        p = normalize_keys(params)
        data = build_create_data(p.get("name"), TaskFields.from_mapping(p))
        list_ident = ListIdentifier.from_mapping(p)
        validate_list_identification(list_ident)

        list_id = await self.resolver.resolve_list_id(list_ident)
        logger.debug("Creating task %r in list %s", data["name"], list_id)
        return await self.client.create_task(list_id, data)

    async def get_task(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        task_id = await self.resolver.get_task_id(TaskIdentifier.from_mapping(params))
        return await self.client.get_task(task_id)

    async def get_tasks(self, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        p = normalize_keys(params)
        list_ident = ListIdentifier.from_mapping(p)
        validate_list_identification(list_ident)
        filters = build_task_filters(p)

        list_id = await self.resolver.resolve_list_id(list_ident)
        return await self.client.get_tasks(list_id, filters)

    async def update_task(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        p = normalize_keys(params)
        ident = TaskIdentifier.from_mapping(p)
        validate_task_identification(ident)
        fields = TaskFields.from_mapping(p)
        validate_task_update_data(fields)
        data = build_update_data(fields)

        task_id = await self.resolver.resolve_task_id(ident)
        logger.debug("Updating task %s fields=%s", task_id, sorted(data))
        return await self.client.update_task(task_id, data)

    async def move_task(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        p = normalize_keys(params)
        ident = TaskIdentifier.from_mapping(p)
        validate_task_identification(ident)
        destination = _destination(p)
        validate_list_identification(destination)

        task_id = await self.resolver.resolve_task_id(ident)
        list_id = await self.resolver.resolve_list_id(destination)
        logger.debug("Moving task %s to list %s", task_id, list_id)
        return await self.client.move_task(task_id, list_id)

    async def duplicate_task(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        p = normalize_keys(params)
        ident = TaskIdentifier.from_mapping(p)
        validate_task_identification(ident)

        task_id = await self.resolver.resolve_task_id(ident)
        destination = _destination(p)
        list_id = None
        if not destination.is_empty:
            list_id = await self.resolver.resolve_list_id(destination)
        logger.debug("Duplicating task %s into %s", task_id, list_id or "its own list")
        return await self.client.duplicate_task(task_id, list_id)

    async def delete_task(self, params: Mapping[str, Any]) -> bool:
        task_id = await self.resolver.get_task_id(TaskIdentifier.from_mapping(params))
        await self.client.delete_task(task_id)
        logger.debug("Deleted task %s", task_id)
        return True

    async def get_task_comments(self, params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        p = normalize_keys(params)
        task_id = await self.resolver.get_task_id(TaskIdentifier.from_mapping(p))
        return await self.client.get_task_comments(task_id, p.get("start"), p.get("start_id"))

    async def create_task_comment(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Add a comment to a task.

        Lookup failures are re-raised with the caller's task name and list
        (or task ID) in the message; any other error propagates unchanged.
        """
        p = normalize_keys(params)
        comment_text = p.get("comment_text")
        if not comment_text:
            raise ValidationError("Comment text is required", field="comment_text")
        ident = TaskIdentifier.from_mapping(p)
        validate_task_identification(ident)

        try:
            task_id = await self.resolver.resolve_task_id(ident)
            return await self.client.create_task_comment(
                task_id,
                comment_text,
                bool(p.get("notify_all", False)),
                p.get("assignee"),
            )
        except AmbiguousMatchError:
            raise
        except (NotFoundError, ResourceNotFoundError) as e:
            if ident.task_name:
                raise NotFoundError(
                    f'Could not find task "{ident.task_name}" in list "{ident.list_name}"',
                    names={"task_name": ident.task_name, "list_name": ident.list_name or ""},
                ) from e
            task_ref = ident.task_id or ident.custom_task_id or ""
            raise NotFoundError(
                f'Task with ID "{task_ref}" not found', names={"task_id": task_ref}
            ) from e

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    async def create_bulk_tasks(self, params: Mapping[str, Any]) -> List[Any]:
        p = normalize_keys(params)
        items = validate_bulk_tasks(p.get("tasks"))
        options = parse_bulk_options(p.get("options"), self.bulk_defaults)
        list_ident = ListIdentifier.from_mapping(p)
        validate_list_identification(list_ident)

        payloads = []
        for index, item in enumerate(items):
            try:
                payloads.append(build_create_data(item.get("name"), TaskFields.from_mapping(item)))
            except ValidationError as e:
                raise _item_error(index, e) from e

        list_id = await self.resolver.resolve_list_id(list_ident)
        logger.debug("Bulk create: %d tasks into list %s", len(payloads), list_id)
        result = await self.bulk.create_tasks(list_id, payloads, options)
        self._log_failures("create", result)
        return result.successful

    async def update_bulk_tasks(self, params: Mapping[str, Any]) -> List[Any]:
        p = normalize_keys(params)
        items = validate_bulk_tasks(p.get("tasks"))
        options = parse_bulk_options(p.get("options"), self.bulk_defaults)

        identifiers = []
        patches = []
        for index, item in enumerate(items):
            try:
                ident = TaskIdentifier.from_mapping(item)
                validate_task_identification(ident)
                fields = TaskFields.from_mapping(item)
                validate_task_update_data(fields)
                patches.append(build_update_data(fields))
            except ValidationError as e:
                raise _item_error(index, e) from e
            identifiers.append(ident)

        task_ids = await self._resolve_all(identifiers)
        updates = [TaskUpdate(id=task_id, data=data) for task_id, data in zip(task_ids, patches)]
        result = await self.bulk.update_tasks(updates, options)
        self._log_failures("update", result)
        return result.successful

    async def move_bulk_tasks(self, params: Mapping[str, Any]) -> List[Any]:
        p = normalize_keys(params)
        items = validate_bulk_tasks(p.get("tasks"))
        if not p.get("target_list_id") and not p.get("target_list_name"):
            raise ValidationError(
                "Either target_list_id or target_list_name must be provided",
                field="target_list_id",
            )
        options = parse_bulk_options(p.get("options"), self.bulk_defaults)
        identifiers = self._task_identifiers(items)

        target_list_id = await self.resolver.resolve_list_id(
            ListIdentifier.from_mapping(p, prefix="target_")
        )
        task_ids = await self._resolve_all(identifiers)
        logger.debug("Bulk move: %d tasks to list %s", len(task_ids), target_list_id)
        result = await self.bulk.move_tasks(task_ids, target_list_id, options)
        self._log_failures("move", result)
        return result.successful

    async def delete_bulk_tasks(self, params: Mapping[str, Any]) -> List[bool]:
        """Delete tasks; one boolean per resolved ID, False where deletion failed."""
        p = normalize_keys(params)
        items = validate_bulk_tasks(p.get("tasks"))
        options = parse_bulk_options(p.get("options"), self.bulk_defaults)
        identifiers = self._task_identifiers(items)

        task_ids = await self._resolve_all(identifiers)
        result = await self.bulk.delete_tasks(task_ids, options)
        self._log_failures("delete", result)
        failed = {failure.index for failure in result.failed}
        return [index not in failed for index in range(len(task_ids))]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _task_identifiers(items: Sequence[Mapping[str, Any]]) -> List[TaskIdentifier]:
        identifiers = []
        for index, item in enumerate(items):
            ident = TaskIdentifier.from_mapping(item)
            try:
                validate_task_identification(ident)
            except ValidationError as e:
                raise _item_error(index, e) from e
            identifiers.append(ident)
        return identifiers

    async def _resolve_all(self, identifiers: Sequence[TaskIdentifier]) -> List[str]:
        """Resolve every identifier concurrently.

        All lookups settle before returning; if any failed, the first
        failure in item order is raised.
        """
        outcomes = await asyncio.gather(
            *(self.resolver.resolve_task_id(ident) for ident in identifiers),
            return_exceptions=True,
        )
        errors = [
            (index, outcome)
            for index, outcome in enumerate(outcomes)
            if isinstance(outcome, BaseException)
        ]
        if errors:
            index, error = errors[0]
            logger.debug(
                "Bulk resolution failed for %d/%d items; first at index %d (%s)",
                len(errors),
                len(identifiers),
                index,
                identifiers[index].describe(),
            )
            raise error
        return list(outcomes)

    @staticmethod
    def _log_failures(operation: str, result: BatchResult[Any]) -> None:
        for failure in summarize_failures(result):
            logger.warning(
                "Bulk %s: item %d failed: %s: %s",
                operation,
                failure["index"],
                failure["error_type"],
                failure["error"],
            )
        if result.failed:
            logger.warning(
                "Bulk %s: %d of %d items failed and were left out of the result",
                operation,
                result.failure_count,
                result.total,
            )


__all__ = ["TaskHandlers"]
