"""TaskStore: the single in-memory holder of the task collection."""

from __future__ import annotations

from typing import Iterable

from eisenhower import log, reconciler
from eisenhower.focus import CompletedSession
from eisenhower.reconciler import ImportSummary
from eisenhower.sorting import sort_tasks
from eisenhower.storage import (
    DebouncedSaver,
    KeyValueStore,
    clear_tasks,
    load_tasks,
    save_tasks,
)
from eisenhower.tasks.model import ContemplationTag, Quadrant, Task, TaskMap


class TaskStore:
    """Wraps the pure reconciler operations and persists after every change.

    Usage::

        store = TaskStore(JsonFileStore(path))
        summary = store.import_text(raw, reset_quadrants=False)
        store.move("abc", Quadrant.Q1)
        store.flush()                    # before the process exits
    """

    def __init__(self, kv: KeyValueStore, save_delay: float = 0.2) -> None:
        self._kv = kv
        result = load_tasks(kv)
        self._tasks: TaskMap = result.tasks
        self.load_error = result.error
        if result.error:
            log.warn(f"Could not load saved tasks: {result.error}")
        elif result.migrated_from is not None:
            log.info(f"Migrated saved tasks from version {result.migrated_from}")
        self._saver: DebouncedSaver[TaskMap] = DebouncedSaver(
            lambda tasks: save_tasks(kv, tasks), delay=save_delay
        )

    # ── queries ──────────────────────────────────────────────────

    @property
    def tasks(self) -> TaskMap:
        return self._tasks

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def resolve(self, ref: str) -> Task | None:
        """Find a task by id, unique id prefix, or exact title."""
        if ref in self._tasks:
            return self._tasks[ref]
        by_prefix = [t for tid, t in self._tasks.items() if tid.startswith(ref)]
        if len(by_prefix) == 1:
            return by_prefix[0]
        by_title = [t for t in self._tasks.values() if t.title == ref]
        if len(by_title) == 1:
            return by_title[0]
        return None

    def by_quadrant(self) -> dict[Quadrant, list[Task]]:
        grouped: dict[Quadrant, list[Task]] = {q: [] for q in Quadrant}
        for task in self._tasks.values():
            grouped[task.quadrant].append(task)
        return {q: sort_tasks(items) for q, items in grouped.items()}

    # ── mutations ────────────────────────────────────────────────

    def _commit(self, tasks: TaskMap) -> None:
        if tasks is self._tasks:
            return
        self._tasks = tasks
        self._saver.schedule(tasks)

    def import_text(self, raw_text: str, reset_quadrants: bool = False) -> ImportSummary:
        result = reconciler.reconcile(self._tasks, raw_text, reset_quadrants=reset_quadrants)
        self._commit(result.tasks)
        return result.summary

    def add(
        self,
        title: str,
        due: str | None = None,
        quadrant: Quadrant | str = Quadrant.BACKLOG,
        contemplation_tag: ContemplationTag | str | None = None,
        captured_via_contemplation: bool = False,
    ) -> Task:
        tasks, task = reconciler.add_task(
            self._tasks,
            title,
            due=due,
            quadrant=quadrant,
            contemplation_tag=contemplation_tag,
            captured_via_contemplation=captured_via_contemplation,
        )
        self._commit(tasks)
        return task

    def move(self, task_id: str, quadrant: Quadrant | str) -> None:
        self._commit(reconciler.move_task(self._tasks, task_id, quadrant))

    def reset(self, task_id: str) -> None:
        self._commit(reconciler.reset_task(self._tasks, task_id))

    def update(self, task_id: str, **changes) -> None:
        self._commit(reconciler.update_task(self._tasks, task_id, **changes))

    def delete(self, task_id: str) -> None:
        self._commit(reconciler.delete_task(self._tasks, task_id))

    def add_time(self, task_id: str, seconds: float) -> None:
        self._commit(reconciler.add_time(self._tasks, task_id, seconds))

    def apply_sessions(self, sessions: Iterable[CompletedSession]) -> None:
        self._commit(reconciler.apply_sessions(self._tasks, sessions))

    def clear_corrupted_state(self) -> None:
        """Drop the stored snapshot and start from an empty collection."""
        self._saver.cancel()
        clear_tasks(self._kv)
        self._tasks = {}
        self.load_error = ""

    # ── persistence ──────────────────────────────────────────────

    def flush(self) -> bool:
        return self._saver.flush()
