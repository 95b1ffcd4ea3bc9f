"""Display order of tasks inside a quadrant."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from eisenhower.dates import parse_date
from eisenhower.tasks.model import Task


def _as_aware(value: datetime) -> datetime:
    # Loose dates are naive local time; compare everything in UTC.
    if value.tzinfo is None:
        return value.astimezone(timezone.utc)
    return value


def sort_key(task: Task) -> tuple:
    """Open before done, dated before undated (soonest first), then by title."""
    due = parse_date(task.due)
    due_key = (0, _as_aware(due).timestamp()) if due else (1, 0.0)
    return (task.done, due_key, task.title.casefold())


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=sort_key)
