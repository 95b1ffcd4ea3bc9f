"""Canonical task record shared by the reconciler, storage and export."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eisenhower.dates import normalize_due, now_iso


class Quadrant(str, Enum):
    BACKLOG = "backlog"
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"


class ContemplationTag(str, Enum):
    ENERGY_HIGH = "energy_high"
    ENERGY_GENTLE = "energy_gentle"
    MOOD_PLEASANT = "mood_pleasant"
    MOOD_NEUTRAL = "mood_neutral"


QUADRANTS: tuple[str, ...] = tuple(q.value for q in Quadrant)
TAGS: tuple[str, ...] = tuple(t.value for t in ContemplationTag)

QUADRANT_TITLES: dict[Quadrant, str] = {
    Quadrant.BACKLOG: "Backlog",
    Quadrant.Q1: "Q1 - Urgent + Important",
    Quadrant.Q2: "Q2 - Not urgent + Important",
    Quadrant.Q3: "Q3 - Urgent + Not important",
    Quadrant.Q4: "Q4 - Not urgent + Not important",
}

TAG_LABELS: dict[ContemplationTag, str] = {
    ContemplationTag.ENERGY_HIGH: "Needs a lot of energy",
    ContemplationTag.ENERGY_GENTLE: "Gentle start",
    ContemplationTag.MOOD_PLEASANT: "Pleasant to do",
    ContemplationTag.MOOD_NEUTRAL: "Neutral",
}


def is_quadrant(value: object) -> bool:
    return isinstance(value, str) and value in QUADRANTS


def is_tag(value: object) -> bool:
    return isinstance(value, str) and value in TAGS


def finite_number(value: object) -> float | None:
    """*value* as a finite float, or ``None`` for bools, NaN, infinities and oversized ints."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def coerce_seconds(value: object) -> float | None:
    """Return a non-negative duration, or ``None`` when *value* isn't a finite number."""
    if finite_number(value) is None:
        return None
    return max(0, value)


@dataclass
class Task:
    """A single task on the board.

    ``due``, ``created_at`` and ``completed_at`` hold ISO-8601 strings.
    ``completed_at`` is only set while ``done`` is true.
    """

    id: str
    title: str
    due: str | None = None
    quadrant: Quadrant = Quadrant.BACKLOG
    done: bool = False
    created_at: str = ""
    completed_at: str | None = None
    time_spent_seconds: float = 0
    contemplation_tag: ContemplationTag | None = None
    captured_via_contemplation: bool = False

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = now_iso()
        if not self.done:
            self.completed_at = None

    # ── wire form ────────────────────────────────────────────────

    def snapshot(self) -> dict[str, Any]:
        """Export form: every field except ``id``, camelCase keys."""
        return {
            "title": self.title,
            "due": self.due,
            "quadrant": self.quadrant.value,
            "done": self.done,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
            "timeSpentSeconds": self.time_spent_seconds,
            "contemplationTag": self.contemplation_tag.value if self.contemplation_tag else None,
            "capturedViaContemplation": self.captured_via_contemplation,
        }

    def to_dict(self) -> dict[str, Any]:
        """Persistence form: the export snapshot plus ``id``."""
        return {"id": self.id, **self.snapshot()}

    @classmethod
    def from_dict(cls, task_id: str, raw: dict[str, Any]) -> Task:
        """Build a task from a persisted record, backfilling missing fields."""
        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            title = task_id
        quadrant = raw.get("quadrant")
        tag = raw.get("contemplationTag")
        created_at = raw.get("createdAt")
        completed_at = raw.get("completedAt")
        done = raw.get("done") is True
        return cls(
            id=task_id,
            title=title,
            due=normalize_due(raw.get("due")),
            quadrant=Quadrant(quadrant) if is_quadrant(quadrant) else Quadrant.BACKLOG,
            done=done,
            created_at=created_at if isinstance(created_at, str) else "",
            completed_at=completed_at if done and isinstance(completed_at, str) else None,
            time_spent_seconds=coerce_seconds(raw.get("timeSpentSeconds")) or 0,
            contemplation_tag=ContemplationTag(tag) if is_tag(tag) else None,
            captured_via_contemplation=raw.get("capturedViaContemplation") is True,
        )


TaskMap = dict[str, Task]
