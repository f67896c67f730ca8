"""Payload builders and batch-input checks.

Everything here is pure and runs before the first network call:

- ``build_update_data`` / ``build_create_data``: sparse request bodies
- ``build_task_filters``: list query filters from loose parameters
- ``validate_task_update_data`` / ``validate_bulk_tasks``: input shape checks
- ``parse_bulk_options``: caller options merged over configured defaults
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional, Union

from clickup_mcp.config import BulkSettings
from clickup_mcp.core.errors import ValidationError
from clickup_mcp.core.models import (
    UPDATABLE_FIELDS,
    BulkOptions,
    TaskFields,
    TaskFilters,
    UpdateTaskData,
    normalize_keys,
)
from clickup_mcp.core.normalizers import parse_due_date, to_task_priority


def _convert(name: str, value: Any) -> Any:
    if name == "priority":
        priority = to_task_priority(value)
        return int(priority) if priority is not None else None
    if name == "due_date":
        return parse_due_date(value)
    return value


def build_update_data(fields: TaskFields) -> UpdateTaskData:
    """Sparse patch holding only the fields the caller supplied.

    Unsupplied fields are omitted entirely; a supplied ``None`` or ``""``
    is kept so the server clears the field.

    Raises:
        ValidationError: If priority or due_date cannot be converted
    """
    return {name: _convert(name, value) for name, value in fields.supplied().items()}


def build_create_data(name: Any, fields: TaskFields) -> Dict[str, Any]:
    """Creation body: ``name`` plus whichever optional fields were supplied.

    Optional fields supplied as ``None`` are left out: there is nothing to
    clear on a task that does not exist yet.

    Raises:
        ValidationError: If name is missing or a field cannot be converted
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Task name is required", field="name")

    data: Dict[str, Any] = {"name": name}
    for key, value in fields.supplied().items():
        if key == "name" or value is None:
            continue
        converted = _convert(key, value)
        if converted is not None:
            data[key] = converted
    return data


def build_task_filters(params: Mapping[str, Any]) -> TaskFilters:
    """Collect list-query filters; absent or ``None`` values keep server defaults."""
    statuses = params.get("statuses")
    if isinstance(statuses, str):
        statuses = [statuses]
    elif statuses is not None:
        statuses = [str(status) for status in statuses]

    page = params.get("page")
    if page is not None:
        try:
            page = int(page)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid page: {page!r}", field="page") from None
        if page < 0:
            raise ValidationError("page must be >= 0", field="page")

    subtasks = params.get("subtasks")
    reverse = params.get("reverse")
    return TaskFilters(
        subtasks=bool(subtasks) if subtasks is not None else None,
        statuses=statuses,
        page=page,
        order_by=params.get("order_by"),
        reverse=bool(reverse) if reverse is not None else None,
    )


# =============================================================================
# Input shape checks
# =============================================================================


def validate_task_update_data(fields: TaskFields) -> None:
    """Require at least one updatable field.

    Raises:
        ValidationError: If nothing would be changed
    """
    if fields.is_empty:
        raise ValidationError(
            "At least one field to update is required: " + ", ".join(UPDATABLE_FIELDS)
        )


def validate_bulk_tasks(tasks: Any, *, field: str = "tasks") -> List[Dict[str, Any]]:
    """Check the batch container and return its items with normalized keys.

    Raises:
        ValidationError: If ``tasks`` is not a non-empty list of objects
    """
    if isinstance(tasks, str):
        try:
            tasks = json.loads(tasks)
        except ValueError:
            raise ValidationError(f"{field} must be a JSON array of objects", field=field) from None

    if not isinstance(tasks, (list, tuple)) or not tasks:
        raise ValidationError(f"{field} must be a non-empty array of task objects", field=field)

    items: List[Dict[str, Any]] = []
    for index, item in enumerate(tasks):
        if not isinstance(item, Mapping):
            raise ValidationError(
                f"{field}[{index}] must be an object, got {type(item).__name__}", field=field
            )
        items.append(normalize_keys(item))
    return items


# =============================================================================
# Bulk options
# =============================================================================

_OPTION_ALIASES = {
    "batchSize": "batch_size",
    "continueOnError": "continue_on_error",
    "retryCount": "retry_count",
    "retryDelay": "retry_delay",
    "exponentialBackoff": "exponential_backoff",
}


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ValidationError(f"options.{name} must be a boolean", field="options")


def _as_number(name: str, value: Any, minimum: float, cast: type) -> Any:
    if isinstance(value, bool):
        raise ValidationError(f"options.{name} must be a number", field="options")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"options.{name} must be a number", field="options") from None
    if not math.isfinite(number):
        raise ValidationError(f"options.{name} must be a finite number", field="options")
    if cast is int and not number.is_integer():
        raise ValidationError(f"options.{name} must be a whole number", field="options")
    if number < minimum:
        raise ValidationError(f"options.{name} must be >= {minimum}", field="options")
    return cast(number)


def parse_bulk_options(
    raw: Union[Mapping[str, Any], str, None],
    defaults: Optional[BulkSettings] = None,
) -> BulkOptions:
    """Merge caller-supplied bulk options over ``defaults``.

    Accepts a mapping, a JSON object string, or nothing. camelCase and
    snake_case keys are both recognized; unknown keys are ignored.

    Raises:
        ValidationError: If the options are malformed or out of range
    """
    merged: Dict[str, Any] = asdict(defaults or BulkSettings())

    if raw is None or raw == "":
        return BulkOptions(**merged)

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise ValidationError("options must be a JSON object", field="options") from None
    if not isinstance(raw, Mapping):
        raise ValidationError("options must be an object", field="options")

    for key, value in raw.items():
        name = _OPTION_ALIASES.get(key, key)
        if name not in merged or value is None:
            continue
        if name in ("continue_on_error", "exponential_backoff"):
            merged[name] = _as_bool(name, value)
        elif name in ("batch_size", "concurrency"):
            merged[name] = _as_number(name, value, 1, int)
        elif name == "retry_count":
            merged[name] = _as_number(name, value, 0, int)
        elif name == "retry_delay":
            merged[name] = _as_number(name, value, 0, float)

    return BulkOptions(**merged)


__all__ = [
    "build_update_data",
    "build_create_data",
    "build_task_filters",
    "validate_task_update_data",
    "validate_bulk_tasks",
    "parse_bulk_options",
]
