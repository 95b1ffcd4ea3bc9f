"""Task reconciler: merges loosely-structured JSON imports into the collection.

Three payload shapes are recognised, in priority order::

    {"tasks": {"<id>": {"title": ..., "quadrant": ..., ...}}}   # export
    {"Q1": {"Title": "1. 10. 2025 at 9:00"}, "Q4": {...}}       # quadrant-grouped
    {"Title": "1. 10. 2025 at 9:00", "Other": ""}               # flat

Every function here is pure: the current collection is never mutated and a
new ``dict`` is returned instead, so a failed import leaves the caller's
state exactly as it was.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable

from eisenhower import log
from eisenhower.dates import normalize_due, now_iso
from eisenhower.errors import ParseError, ShapeError, ValidationError
from eisenhower.tasks.model import (
    ContemplationTag,
    Quadrant,
    Task,
    TaskMap,
    coerce_seconds,
    is_quadrant,
    is_tag,
)

DEFAULT_TITLE = "New task"


class ImportShape(str, Enum):
    EXPORT = "export"
    QUADRANT_GROUPED = "quadrant_grouped"
    FLAT = "flat"


@dataclass(frozen=True)
class Classified:
    shape: ImportShape
    body: dict[str, Any]


@dataclass(frozen=True)
class ImportSummary:
    added: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.added + self.updated


@dataclass(frozen=True)
class ReconcileResult:
    tasks: TaskMap
    summary: ImportSummary


# ── parsing ──────────────────────────────────────────────────────────


def strip_trailing_commas(raw: str) -> str:
    """Drop commas that directly precede ``}`` or ``]``, ignoring string contents."""
    out: list[str] = []
    in_string = False
    escaped = False
    length = len(raw)

    for index, char in enumerate(raw):
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == ",":
            lookahead = index + 1
            while lookahead < length and raw[lookahead].isspace():
                lookahead += 1
            if lookahead < length and raw[lookahead] in "}]":
                continue
        elif char == '"':
            in_string = True
        out.append(char)

    return "".join(out)


def parse_payload(raw: str) -> dict[str, Any]:
    """Parse import text into a top-level object."""
    try:
        payload = json.loads(strip_trailing_commas(raw))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise ParseError("Invalid JSON: nested too deeply") from exc

    if not isinstance(payload, dict):
        raise ShapeError(
            'Expected an object like {"task": "date"} or an exported JSON payload, '
            f"got {type(payload).__name__}."
        )
    return payload


def _is_string_map(value: object) -> bool:
    return isinstance(value, dict) and all(isinstance(v, str) for v in value.values())


def classify(payload: dict[str, Any]) -> Classified:
    """Decide which import shape *payload* is. Total and order-sensitive."""
    tasks = payload.get("tasks")
    if isinstance(tasks, dict):
        return Classified(ImportShape.EXPORT, tasks)

    if payload and all(is_quadrant(k) and _is_string_map(v) for k, v in payload.items()):
        return Classified(ImportShape.QUADRANT_GROUPED, payload)

    return Classified(ImportShape.FLAT, payload)


# ── merging ──────────────────────────────────────────────────────────


def _base(current: TaskMap, reset_quadrants: bool) -> TaskMap:
    if not reset_quadrants:
        return dict(current)
    return {tid: replace(task, quadrant=Quadrant.BACKLOG) for tid, task in current.items()}


def _merge_due_entry(
    base: TaskMap,
    task_id: str,
    due_value: str | None,
    quadrant: Quadrant | None,
) -> bool:
    """Merge one ``title -> due`` entry. Returns ``True`` when it was new."""
    due = normalize_due(due_value)
    current = base.get(task_id)
    if current is None:
        base[task_id] = Task(
            id=task_id,
            title=task_id,
            due=due,
            quadrant=quadrant or Quadrant.BACKLOG,
        )
        return True

    base[task_id] = replace(current, due=due, quadrant=quadrant or current.quadrant)
    return False


def _merge_descriptor(base: TaskMap, task_id: str, descriptor: dict[str, Any]) -> bool:
    """Merge one export-shape descriptor. Absent keys keep the current value."""
    current = base.get(task_id)

    title = descriptor.get("title")
    if isinstance(title, str) and title.strip():
        title = title.strip()
    else:
        title = current.title if current else task_id

    if "due" in descriptor:
        due = normalize_due(descriptor["due"])
    else:
        due = current.due if current else None

    quadrant = descriptor.get("quadrant")
    if is_quadrant(quadrant):
        quadrant = Quadrant(quadrant)
    else:
        quadrant = current.quadrant if current else Quadrant.BACKLOG

    done = descriptor.get("done")
    if not isinstance(done, bool):
        done = current.done if current else False

    created_at = descriptor.get("createdAt")
    if not isinstance(created_at, str) or not created_at.strip():
        created_at = current.created_at if current else ""

    completed_at = descriptor.get("completedAt")
    if not isinstance(completed_at, str) or not completed_at.strip():
        completed_at = current.completed_at if current else None
    if done and not completed_at:
        completed_at = now_iso()

    time_spent = coerce_seconds(descriptor.get("timeSpentSeconds"))
    if time_spent is None:
        time_spent = current.time_spent_seconds if current else 0

    if "contemplationTag" in descriptor and descriptor["contemplationTag"] is None:
        tag = None
    elif is_tag(descriptor.get("contemplationTag")):
        tag = ContemplationTag(descriptor["contemplationTag"])
    else:
        tag = current.contemplation_tag if current else None

    captured = descriptor.get("capturedViaContemplation")
    if not isinstance(captured, bool):
        captured = current.captured_via_contemplation if current else False

    base[task_id] = Task(
        id=task_id,
        title=title,
        due=due,
        quadrant=quadrant,
        done=done,
        created_at=created_at,
        completed_at=completed_at if done else None,
        time_spent_seconds=time_spent,
        contemplation_tag=tag,
        captured_via_contemplation=captured,
    )
    return current is None


def reconcile(
    current: TaskMap,
    raw_text: str,
    reset_quadrants: bool = False,
) -> ReconcileResult:
    """Merge *raw_text* into *current* and return the next collection.

    Raises :class:`~eisenhower.errors.ReconcileError` subclasses on bad input;
    *current* is never modified.
    """
    classified = classify(parse_payload(raw_text))
    body = classified.body

    if classified.shape is ImportShape.FLAT:
        for key, value in body.items():
            if value is not None and not isinstance(value, str):
                raise ValidationError(
                    f"Every value must be a string (it may be empty); {key!r} is "
                    f"{type(value).__name__}.",
                    key=key,
                )

    base = _base(current, reset_quadrants)
    added = 0
    updated = 0

    match classified.shape:
        case ImportShape.EXPORT:
            for task_id, descriptor in body.items():
                if not isinstance(descriptor, dict):
                    log.debug(f"Skipping {task_id!r}: descriptor is not an object")
                    continue
                if _merge_descriptor(base, task_id, descriptor):
                    added += 1
                else:
                    updated += 1
        case ImportShape.QUADRANT_GROUPED:
            for quadrant_key, entries in body.items():
                for task_id, due_value in entries.items():
                    if _merge_due_entry(base, task_id, due_value, Quadrant(quadrant_key)):
                        added += 1
                    else:
                        updated += 1
        case ImportShape.FLAT:
            for task_id, due_value in body.items():
                if _merge_due_entry(base, task_id, due_value, None):
                    added += 1
                else:
                    updated += 1

    summary = ImportSummary(added=added, updated=updated)
    log.debug(
        f"Import ({classified.shape.value}): {summary.added} added, "
        f"{summary.updated} updated, reset={reset_quadrants}"
    )
    return ReconcileResult(tasks=base, summary=summary)


# ── direct operations ────────────────────────────────────────────────


def generate_task_id(existing: TaskMap) -> str:
    candidate = uuid.uuid4().hex
    while candidate in existing:
        candidate = uuid.uuid4().hex
    return candidate


def add_task(
    tasks: TaskMap,
    title: str,
    due: str | None = None,
    quadrant: Quadrant | str = Quadrant.BACKLOG,
    contemplation_tag: ContemplationTag | str | None = None,
    captured_via_contemplation: bool = False,
) -> tuple[TaskMap, Task]:
    """Create a task with a fresh id. Returns the new collection and the task."""
    task = Task(
        id=generate_task_id(tasks),
        title=title.strip() or DEFAULT_TITLE,
        due=normalize_due(due),
        quadrant=Quadrant(quadrant) if is_quadrant(quadrant) else Quadrant.BACKLOG,
        contemplation_tag=ContemplationTag(contemplation_tag) if is_tag(contemplation_tag) else None,
        captured_via_contemplation=captured_via_contemplation,
    )
    return {**tasks, task.id: task}, task


def move_task(tasks: TaskMap, task_id: str, quadrant: Quadrant | str) -> TaskMap:
    current = tasks.get(task_id)
    if current is None or not is_quadrant(quadrant) or current.quadrant == quadrant:
        return tasks
    return {**tasks, task_id: replace(current, quadrant=Quadrant(quadrant))}


def reset_task(tasks: TaskMap, task_id: str) -> TaskMap:
    """Send a task back to the backlog."""
    return move_task(tasks, task_id, Quadrant.BACKLOG)


_UNSET: Any = object()


def update_task(
    tasks: TaskMap,
    task_id: str,
    *,
    title: str | None = None,
    due: str | None = _UNSET,
    done: bool | None = None,
    time_spent_seconds: float | None = None,
    contemplation_tag: ContemplationTag | str | None = _UNSET,
) -> TaskMap:
    """Edit the given fields of one task.

    ``due=None`` and ``contemplation_tag=None`` clear the value; leaving them
    out keeps it. Toggling ``done`` stamps or clears ``completed_at``.
    """
    current = tasks.get(task_id)
    if current is None:
        return tasks

    changes: dict[str, Any] = {}
    if title is not None and title.strip():
        changes["title"] = title.strip()
    if due is not _UNSET:
        changes["due"] = normalize_due(due)
    if done is not None and done != current.done:
        changes["done"] = done
        changes["completed_at"] = now_iso() if done else None
    if time_spent_seconds is not None:
        seconds = coerce_seconds(time_spent_seconds)
        if seconds is not None:
            changes["time_spent_seconds"] = seconds
    if contemplation_tag is not _UNSET:
        changes["contemplation_tag"] = (
            ContemplationTag(contemplation_tag) if is_tag(contemplation_tag) else None
        )

    if not changes:
        return tasks
    return {**tasks, task_id: replace(current, **changes)}


def delete_task(tasks: TaskMap, task_id: str) -> TaskMap:
    if task_id not in tasks:
        return tasks
    return {tid: task for tid, task in tasks.items() if tid != task_id}


def add_time(tasks: TaskMap, task_id: str, seconds: float) -> TaskMap:
    """Add focused time to a task. Non-positive or non-finite amounts are ignored."""
    amount = coerce_seconds(seconds)
    current = tasks.get(task_id)
    if current is None or not amount:
        return tasks
    return {
        **tasks,
        task_id: replace(current, time_spent_seconds=current.time_spent_seconds + amount),
    }


def apply_sessions(tasks: TaskMap, sessions: Iterable[Any]) -> TaskMap:
    """Fold completed focus sessions (``task_id``/``duration_seconds``) into tasks."""
    for session in sessions:
        tasks = add_time(tasks, session.task_id, session.duration_seconds)
    return tasks
