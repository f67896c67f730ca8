"""Pure conversions for caller-supplied scalars.

- ``to_task_priority``: 1-4, "1"-"4" or a level name -> ``TaskPriority``
- ``parse_due_date``: human/ISO/timestamp expression -> epoch milliseconds
- ``is_custom_task_id``: whether a task ID looks like a custom ID ("DEV-42")
"""

from __future__ import annotations

import re
from calendar import monthrange
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from clickup_mcp.core.errors import ValidationError
from clickup_mcp.core.models import TaskPriority

# Custom IDs are a workspace prefix, a dash and a sequence number: "DEV-1234"
_CUSTOM_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9]*-\d+$")

_RELATIVE_PATTERN = re.compile(
    r"^(?:in\s+)?(?P<amount>\d+)\s+(?P<unit>minute|hour|day|week|month)s?(?:\s+from\s+now)?$"
)

# Values below this are treated as seconds, above as milliseconds
_MS_THRESHOLD = 100_000_000_000

_PRIORITY_NAMES = {p.name.lower(): p for p in TaskPriority}


def is_custom_task_id(value: Optional[str]) -> bool:
    """Return True if ``value`` has the shape of a custom task ID."""
    if not value:
        return False
    return bool(_CUSTOM_ID_PATTERN.match(value.strip()))


def to_task_priority(value: Any, *, field: str = "priority") -> Optional[TaskPriority]:
    """Coerce a caller-supplied priority.

    ``None`` passes through as ``None`` (no priority / clear priority).

    Raises:
        ValidationError: If the value is not a known priority level.
    """
    if value is None:
        return None
    if isinstance(value, TaskPriority):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}. Use 1 (urgent) to 4 (low)", field=field)

    if isinstance(value, str):
        text = value.strip().lower()
        if text in _PRIORITY_NAMES:
            return _PRIORITY_NAMES[text]
        if not text.isdigit():
            raise ValidationError(
                f"Invalid {field}: {value!r}. Use 1 (urgent) to 4 (low)", field=field
            )
        value = int(text)

    if isinstance(value, float) and value.is_integer():
        value = int(value)

    try:
        return TaskPriority(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value!r}. Use 1 (urgent) to 4 (low)", field=field
        ) from None


def _end_of_day(day: date, like: datetime) -> datetime:
    return datetime.combine(day, time(23, 59, 59), tzinfo=like.tzinfo)


def _add_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_due_date(
    expression: Any,
    *,
    now: Optional[datetime] = None,
    field: str = "due_date",
) -> Optional[int]:
    """Convert a due-date expression into epoch milliseconds.

    Accepted forms:
        - ``None`` -> ``None`` (clears the due date)
        - Unix timestamps in seconds or milliseconds (int or digit string)
        - ``datetime``/``date`` objects
        - "now", "today", "tomorrow", "yesterday", "next week", "next month"
        - "in 3 days", "2 hours from now", "in 1 week", "3 months from now"
        - ISO-8601 dates and datetimes ("2024-05-01", "2024-05-01T09:30:00Z")

    Day-level expressions ("today", "tomorrow", ISO dates without a time)
    resolve to 23:59:59 of that day.

    Raises:
        ValidationError: If the expression cannot be parsed.
    """
    if expression is None:
        return None

    current = now or datetime.now()

    if isinstance(expression, bool):
        raise ValidationError(f"Invalid {field}: {expression!r}", field=field)
    if isinstance(expression, datetime):
        return _to_millis(expression)
    if isinstance(expression, date):
        return _to_millis(_end_of_day(expression, current))
    if isinstance(expression, (int, float)):
        return _timestamp_to_millis(expression, field)
    if not isinstance(expression, str):
        raise ValidationError(
            f"Invalid {field}: expected a date expression, got {type(expression).__name__}",
            field=field,
        )

    text = expression.strip().lower()
    if not text:
        raise ValidationError(f"Invalid {field}: empty date expression", field=field)

    if text.isdigit():
        return _timestamp_to_millis(int(text), field)

    if text == "now":
        return _to_millis(current)
    if text == "today":
        return _to_millis(_end_of_day(current.date(), current))
    if text == "tomorrow":
        return _to_millis(_end_of_day(current.date() + timedelta(days=1), current))
    if text == "yesterday":
        return _to_millis(_end_of_day(current.date() - timedelta(days=1), current))
    if text == "next week":
        return _to_millis(_end_of_day(current.date() + timedelta(weeks=1), current))
    if text == "next month":
        return _to_millis(_end_of_day(_add_months(current, 1).date(), current))

    match = _RELATIVE_PATTERN.match(text)
    if match:
        amount = int(match.group("amount"))
        unit = match.group("unit")
        if unit == "month":
            return _to_millis(_add_months(current, amount))
        delta = {
            "minute": timedelta(minutes=amount),
            "hour": timedelta(hours=amount),
            "day": timedelta(days=amount),
            "week": timedelta(weeks=amount),
        }[unit]
        return _to_millis(current + delta)

    return _parse_iso(expression.strip(), current, field)


def _timestamp_to_millis(value: float, field: str) -> int:
    if value < 0:
        raise ValidationError(f"Invalid {field}: negative timestamp {value!r}", field=field)
    if value < _MS_THRESHOLD:
        return int(value * 1000)
    return int(value)


def _parse_iso(text: str, current: datetime, field: str) -> int:
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        if len(candidate) == 10:
            return _to_millis(_end_of_day(date.fromisoformat(candidate), current))
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        raise ValidationError(
            f'Invalid {field}: could not parse "{text}". Use an ISO date, a timestamp, '
            'or an expression like "tomorrow" or "in 3 days"',
            field=field,
        ) from None
    if parsed.tzinfo is None and current.tzinfo is not None:
        parsed = parsed.replace(tzinfo=current.tzinfo)
    return _to_millis(parsed)


__all__ = [
    "is_custom_task_id",
    "to_task_priority",
    "parse_due_date",
]
