"""Export payloads: the lossless JSON snapshot and a Markdown checklist."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from eisenhower.dates import format_date
from eisenhower.sorting import sort_tasks
from eisenhower.tasks.model import QUADRANT_TITLES, Quadrant, Task, TaskMap

EXPORT_VERSION = 2


def create_export_payload(tasks: TaskMap, exported_at: datetime | None = None) -> dict[str, Any]:
    """Build the version 2 export payload, re-importable without loss."""
    stamp = exported_at or datetime.now(timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "exportedAt": stamp.isoformat(),
        "tasks": {task.id: task.snapshot() for task in tasks.values()},
    }


def _format_task(task: Task) -> str:
    status = "x" if task.done else " "
    due = f" _(due {format_date(task.due)})_" if task.due else ""
    return f"- [{status}] {task.title}{due}"


def create_markdown(tasks: Iterable[Task], today: datetime | None = None) -> str:
    """Render tasks grouped by quadrant as a Markdown checklist."""
    grouped: dict[Quadrant, list[Task]] = {q: [] for q in Quadrant}
    for task in tasks:
        grouped[task.quadrant].append(task)

    day = today or datetime.now()
    sections = [f"# Tasks for {day.day} {day.strftime('%B')}"]
    for quadrant, items in grouped.items():
        lines = [_format_task(t) for t in sort_tasks(items)]
        body = "\n".join(lines) if lines else "_No tasks_"
        sections.append(f"## {QUADRANT_TITLES[quadrant]}\n{body}")

    return "\n\n".join(sections)
