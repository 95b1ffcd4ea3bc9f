"""Tests for eisenhower.store.TaskStore — collection holder with persistence."""

from __future__ import annotations

import json

import pytest

from eisenhower.errors import ShapeError
from eisenhower.focus import CompletedSession
from eisenhower.storage import TASKS_KEY, MemoryStore, load_tasks
from eisenhower.store import TaskStore
from eisenhower.tasks.model import Quadrant


@pytest.fixture
def store(memory_store) -> TaskStore:
    return TaskStore(memory_store, save_delay=60)


class TestTaskStore:
    def test_import_persists_on_flush(self, store, memory_store):
        summary = store.import_text('{"A": "", "B": "1. 1. 2026"}')
        assert summary.total == 2
        assert memory_store.get(TASKS_KEY) is None
        assert store.flush()
        assert set(load_tasks(memory_store).tasks) == {"A", "B"}

    def test_failed_import_changes_nothing(self, store):
        store.import_text('{"A": ""}')
        store.flush()
        before = store.tasks
        with pytest.raises(ShapeError):
            store.import_text("[]")
        assert store.tasks is before
        assert store.flush() is False

    def test_noop_mutation_schedules_nothing(self, store):
        store.move("missing", Quadrant.Q1)
        assert store.flush() is False

    def test_edit_operations(self, store):
        task = store.add("Write report", due="1. 10. 2025", quadrant=Quadrant.Q1)
        store.move(task.id, Quadrant.Q2)
        store.update(task.id, done=True, title="Write the report")
        store.add_time(task.id, 120)
        current = store.get(task.id)
        assert current.quadrant is Quadrant.Q2
        assert current.done
        assert current.title == "Write the report"
        assert current.time_spent_seconds == 120

        store.reset(task.id)
        assert store.get(task.id).quadrant is Quadrant.BACKLOG
        store.delete(task.id)
        assert store.get(task.id) is None

    def test_apply_sessions(self, store):
        task = store.add("Deep work")
        store.apply_sessions([CompletedSession(task.id, 1500, "2025-01-01T00:00:00+00:00")])
        assert store.get(task.id).time_spent_seconds == 1500

    def test_resolve(self, store):
        store.import_text('{"Alpha": "", "Beta": ""}')
        task = store.add("Gamma")
        assert store.resolve("Alpha").id == "Alpha"
        assert store.resolve(task.id[:10]).id == task.id
        assert store.resolve("Gamma").id == task.id
        assert store.resolve("nothing") is None

    def test_by_quadrant_sorted(self, store):
        store.import_text('{"Q1": {"late": "2. 1. 2026", "early": "1. 1. 2026", "undated": ""}}')
        grouped = store.by_quadrant()
        assert [t.id for t in grouped[Quadrant.Q1]] == ["early", "late", "undated"]
        assert grouped[Quadrant.BACKLOG] == []

    def test_reload_from_disk(self, memory_store):
        first = TaskStore(memory_store)
        first.import_text('{"A": ""}')
        first.flush()
        assert set(TaskStore(memory_store).tasks) == {"A"}


class TestLoadErrors:
    def test_corrupt_snapshot_reported(self):
        kv = MemoryStore({TASKS_KEY: "{nope"})
        store = TaskStore(kv)
        assert store.tasks == {}
        assert store.load_error

    def test_clear_corrupted_state(self):
        kv = MemoryStore({TASKS_KEY: json.dumps({"version": 42, "tasks": {}})})
        store = TaskStore(kv)
        assert store.load_error
        store.clear_corrupted_state()
        assert store.load_error == ""
        assert kv.get(TASKS_KEY) is None
