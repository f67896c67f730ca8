"""Data models for task operations.

All of these are transient: built from caller input for one call and
discarded when it returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

T = TypeVar("T")


# =============================================================================
# Presence sentinel
# =============================================================================


class _UnsetType:
    """Marks a field the caller did not supply.

    Distinct from ``None``: ``None`` is a value the caller sent on purpose
    (for example to clear a due date), ``UNSET`` means "leave unchanged".
    """

    _instance: Optional["_UnsetType"] = None

    def __new__(cls) -> "_UnsetType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _UnsetType()


def is_set(value: Any) -> bool:
    return value is not UNSET


# camelCase parameter names accepted alongside snake_case
_FIELD_ALIASES: Dict[str, str] = {
    "taskId": "task_id",
    "customTaskId": "custom_task_id",
    "taskName": "task_name",
    "listId": "list_id",
    "listName": "list_name",
    "dueDate": "due_date",
    "markdownDescription": "markdown_description",
    "targetListId": "target_list_id",
    "targetListName": "target_list_name",
    "commentText": "comment_text",
    "notifyAll": "notify_all",
    "startId": "start_id",
    "orderBy": "order_by",
}


def normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase parameter names to their snake_case equivalents."""
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[_FIELD_ALIASES.get(key, key)] = value
    return normalized


def _present(data: Mapping[str, Any], key: str) -> Any:
    """Return the value under ``key``, or ``UNSET`` if the key is absent.

    An explicit ``None`` is kept: it asks the server to clear the field.
    """
    return data.get(key, UNSET)


# =============================================================================
# Priority
# =============================================================================


class TaskPriority(IntEnum):
    """ClickUp priority levels (1 is most urgent)."""

    URGENT = 1
    HIGH = 2
    NORMAL = 3
    LOW = 4


# =============================================================================
# Identifiers
# =============================================================================


def identifier_text(value: Any) -> Optional[str]:
    """Identifier as a string, or None when not supplied.

    IDs in JSON payloads often arrive as numbers (``12345``).
    """
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class TaskIdentifier:
    """Whatever the caller supplied to point at one task.

    Valid shapes: ``task_id``; ``custom_task_id`` (optionally with
    ``list_name``); or ``task_name`` together with ``list_name``.
    """

    task_id: Optional[str] = None
    custom_task_id: Optional[str] = None
    task_name: Optional[str] = None
    list_name: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskIdentifier":
        params = normalize_keys(data)
        return cls(
            task_id=identifier_text(params.get("task_id")),
            custom_task_id=identifier_text(params.get("custom_task_id")),
            task_name=identifier_text(params.get("task_name")),
            list_name=identifier_text(params.get("list_name")),
        )

    def describe(self) -> str:
        """Human-readable rendering used in log lines and error messages."""
        if self.task_id:
            return f'task "{self.task_id}"'
        if self.custom_task_id:
            return f'custom task "{self.custom_task_id}"'
        if self.task_name:
            return f'task "{self.task_name}" in list "{self.list_name}"'
        return "task <unidentified>"


@dataclass(frozen=True)
class ListIdentifier:
    """``list_id`` or ``list_name``; at least one must be present to resolve."""

    list_id: Optional[str] = None
    list_name: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], prefix: str = "") -> "ListIdentifier":
        """Read ``<prefix>list_id`` and ``<prefix>list_name`` from ``data``."""
        return cls(
            list_id=identifier_text(data.get(f"{prefix}list_id")),
            list_name=identifier_text(data.get(f"{prefix}list_name")),
        )

    @property
    def is_empty(self) -> bool:
        return not self.list_id and not self.list_name


# =============================================================================
# Update fields / sparse patch
# =============================================================================

UpdateTaskData = Dict[str, Any]
"""Sparse patch sent to the update endpoint: only explicitly supplied keys."""

UPDATABLE_FIELDS = (
    "name",
    "description",
    "markdown_description",
    "status",
    "priority",
    "due_date",
)


@dataclass(frozen=True)
class TaskFields:
    """Task fields as supplied by the caller, each possibly ``UNSET``.

    ``due_date`` holds the caller's expression ("tomorrow", an ISO date, a
    timestamp); it is converted when the payload is built.
    """

    name: Any = UNSET
    description: Any = UNSET
    markdown_description: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskFields":
        params = normalize_keys(data)
        return cls(**{name: _present(params, name) for name in UPDATABLE_FIELDS})

    def supplied(self) -> Dict[str, Any]:
        """Only the fields the caller actually provided."""
        return {
            name: getattr(self, name)
            for name in UPDATABLE_FIELDS
            if is_set(getattr(self, name))
        }

    @property
    def is_empty(self) -> bool:
        return not self.supplied()


# =============================================================================
# List query filters
# =============================================================================


@dataclass
class TaskFilters:
    """Optional filters for listing a list's tasks; ``None`` means server default."""

    subtasks: Optional[bool] = None
    statuses: Optional[List[str]] = None
    page: Optional[int] = None
    order_by: Optional[str] = None
    reverse: Optional[bool] = None

    def to_query_params(self) -> List[tuple]:
        """Render as ClickUp query parameters (repeated ``statuses[]`` keys)."""
        params: List[tuple] = []
        if self.subtasks is not None:
            params.append(("subtasks", str(self.subtasks).lower()))
        if self.statuses is not None:
            for status in self.statuses:
                params.append(("statuses[]", status))
        if self.page is not None:
            params.append(("page", str(self.page)))
        if self.order_by is not None:
            params.append(("order_by", self.order_by))
        if self.reverse is not None:
            params.append(("reverse", str(self.reverse).lower()))
        return params


# =============================================================================
# Bulk execution
# =============================================================================


@dataclass(frozen=True)
class BulkOptions:
    """Options handed to the batch executor.

    Attributes:
        batch_size: Items scheduled per batch
        concurrency: Maximum in-flight operations within a batch
        continue_on_error: Keep scheduling after an item exhausts its retries
        retry_count: Retries per item after the first attempt
        retry_delay: Initial delay between retries (seconds)
        exponential_backoff: Double the delay after each retry
    """

    batch_size: int = 10
    concurrency: int = 3
    continue_on_error: bool = False
    retry_count: int = 3
    retry_delay: float = 1.0
    exponential_backoff: bool = True


@dataclass
class BatchFailure(Generic[T]):
    """One item the executor could not process.

    Attributes:
        item: The input item as handed to the executor
        error: The last exception raised for it
        index: Position of the item in the submitted batch
    """

    item: T
    error: BaseException
    index: int


@dataclass
class BatchResult(Generic[T]):
    """Outcome of a batch run: successful results in submission order plus failures."""

    successful: List[Any] = field(default_factory=list)
    failed: List[BatchFailure[T]] = field(default_factory=list)
    total: int = 0

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


# =============================================================================
# Name lookup outcomes
# =============================================================================


@dataclass(frozen=True)
class Found:
    id: str


@dataclass(frozen=True)
class Missing:
    pass


@dataclass(frozen=True)
class Ambiguous:
    candidates: Sequence[str]


LookupResult = Union[Found, Missing, Ambiguous]


def match_by_name(entities: Sequence[Mapping[str, Any]], name: str) -> LookupResult:
    """Exact-name match over API entities carrying ``id`` and ``name``."""
    matches = [str(entity["id"]) for entity in entities if entity.get("name") == name]
    if not matches:
        return Missing()
    if len(matches) > 1:
        return Ambiguous(candidates=tuple(matches))
    return Found(id=matches[0])
