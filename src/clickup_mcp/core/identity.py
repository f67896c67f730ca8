"""Identity validation and resolution for tasks and lists.

Validation is a pure check that runs before any network access.
Resolution turns a validated identifier into a concrete ClickUp ID:

Task precedence:
    1. ``custom_task_id``, or a ``task_id`` shaped like a custom ID
       ("DEV-42"): custom-ID lookup, checked against ``list_name`` if given
    2. ``task_id``: used as-is, no lookup
    3. ``task_name`` + ``list_name``: resolve the list, then exact name match
       among its tasks

List precedence:
    1. ``list_id``: used as-is
    2. ``list_name``: exact name match across the workspace's lists

Zero matches raise ``NotFoundError``; several raise ``AmbiguousMatchError``.
Both messages echo the names the caller supplied.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.errors import (
    AmbiguousMatchError,
    InvalidIdentifierError,
    NotFoundError,
    ResourceNotFoundError,
)
from clickup_mcp.core.models import (
    Ambiguous,
    Found,
    ListIdentifier,
    LookupResult,
    TaskIdentifier,
    match_by_name,
)
from clickup_mcp.core.normalizers import is_custom_task_id

logger = logging.getLogger(__name__)


# =============================================================================
# Validation
# =============================================================================


def validate_task_identification(identifier: TaskIdentifier) -> None:
    """Check that ``identifier`` carries enough to resolve a task.

    Raises:
        InvalidIdentifierError: Naming the combination that is missing
    """
    if identifier.task_id or identifier.custom_task_id:
        return
    if identifier.task_name and identifier.list_name:
        return

    if identifier.task_name:
        message = (
            f'task_name "{identifier.task_name}" alone is not enough: task names are only '
            "unique within a list. Provide list_name as well, or use task_id / custom_task_id"
        )
    elif identifier.list_name:
        message = (
            f'list_name "{identifier.list_name}" alone does not identify a task. '
            "Provide task_name as well, or use task_id / custom_task_id"
        )
    else:
        message = (
            "Task identification required: provide task_id, OR custom_task_id, "
            "OR task_name together with list_name"
        )
    raise InvalidIdentifierError(message, kind="task")


def validate_list_identification(identifier: ListIdentifier) -> None:
    """Check that ``identifier`` carries a list ID or name.

    Raises:
        InvalidIdentifierError: If neither is present
    """
    if identifier.is_empty:
        raise InvalidIdentifierError(
            "List identification required: provide list_id OR list_name", kind="list"
        )


# =============================================================================
# Resolution
# =============================================================================


class IdentityResolver:
    """Resolves task and list identifiers through the ClickUp client.

    Holds no cache: every call performs its lookups afresh.
    """

    def __init__(self, client: ClickUpClient):
        self.client = client

    # -- lookups returning tagged results ----------------------------------

    async def find_list(self, list_name: str) -> LookupResult:
        lists = await self.client.get_workspace_lists()
        return match_by_name(lists, list_name)

    async def find_task_in_list(self, list_id: str, task_name: str) -> LookupResult:
        tasks = await self.client.get_all_tasks(list_id)
        return match_by_name(tasks, task_name)

    # -- resolution ----------------------------------------------------------

    async def resolve_list_id(self, identifier: ListIdentifier) -> str:
        """Return the list ID for a validated list identifier."""
        if identifier.list_id:
            return identifier.list_id

        list_name = identifier.list_name or ""
        outcome = await self.find_list(list_name)
        names = {"list_name": list_name}
        if isinstance(outcome, Found):
            logger.debug('Resolved list "%s" to %s', list_name, outcome.id)
            return outcome.id
        if isinstance(outcome, Ambiguous):
            raise AmbiguousMatchError(
                f'List "{list_name}" is ambiguous: {len(outcome.candidates)} lists share '
                "this name. Use list_id instead",
                names=names,
                candidates=outcome.candidates,
            )
        raise NotFoundError(f'List "{list_name}" not found', names=names)

    async def resolve_task_id(self, identifier: TaskIdentifier) -> str:
        """Return the task ID for a validated task identifier."""
        custom_id = identifier.custom_task_id
        if not custom_id and is_custom_task_id(identifier.task_id):
            custom_id = identifier.task_id
        if custom_id:
            return await self._resolve_custom_id(custom_id, identifier.list_name)

        if identifier.task_id:
            return identifier.task_id

        return await self._resolve_by_name(identifier.task_name or "", identifier.list_name or "")

    async def _resolve_custom_id(self, custom_id: str, list_name: Optional[str]) -> str:
        names: Dict[str, str] = {"custom_task_id": custom_id}
        if list_name:
            names["list_name"] = list_name

        try:
            task = await self.client.get_task_by_custom_id(custom_id)
        except ResourceNotFoundError:
            raise NotFoundError(
                f'Task with custom ID "{custom_id}" not found', names=names
            ) from None

        if list_name:
            list_id = await self.resolve_list_id(ListIdentifier(list_name=list_name))
            task_list_id = str((task.get("list") or {}).get("id", ""))
            if task_list_id != list_id:
                raise NotFoundError(
                    f'Task with custom ID "{custom_id}" not found in list "{list_name}"',
                    names=names,
                )

        logger.debug('Resolved custom task ID "%s" to %s', custom_id, task["id"])
        return str(task["id"])

    async def _resolve_by_name(self, task_name: str, list_name: str) -> str:
        names = {"task_name": task_name, "list_name": list_name}
        list_id = await self.resolve_list_id(ListIdentifier(list_name=list_name))
        outcome = await self.find_task_in_list(list_id, task_name)

        if isinstance(outcome, Found):
            logger.debug('Resolved task "%s" in list "%s" to %s', task_name, list_name, outcome.id)
            return outcome.id
        if isinstance(outcome, Ambiguous):
            raise AmbiguousMatchError(
                f'Task "{task_name}" is ambiguous in list "{list_name}": '
                f"{len(outcome.candidates)} tasks share this name. Use task_id instead",
                names=names,
                candidates=outcome.candidates,
            )
        raise NotFoundError(f'Task "{task_name}" not found in list "{list_name}"', names=names)

    # -- validate + resolve ------------------------------------------------

    async def get_task_id(self, identifier: TaskIdentifier) -> str:
        validate_task_identification(identifier)
        return await self.resolve_task_id(identifier)

    async def get_list_id(self, identifier: ListIdentifier) -> str:
        validate_list_identification(identifier)
        return await self.resolve_list_id(identifier)


__all__ = [
    "validate_task_identification",
    "validate_list_identification",
    "IdentityResolver",
]
