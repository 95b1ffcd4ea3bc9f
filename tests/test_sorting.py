"""Tests for eisenhower.sorting — order inside a quadrant."""

from __future__ import annotations

from eisenhower.sorting import sort_tasks


class TestSortTasks:
    def test_open_before_done(self, make_task):
        tasks = [make_task("a", title="A", done=True), make_task("b", title="B")]
        assert [t.id for t in sort_tasks(tasks)] == ["b", "a"]

    def test_soonest_due_first_then_undated(self, make_task):
        tasks = [
            make_task("none", title="No date"),
            make_task("late", due="2026-03-01T00:00:00"),
            make_task("early", due="2025-01-01T10:00:00"),
        ]
        assert [t.id for t in sort_tasks(tasks)] == ["early", "late", "none"]

    def test_aware_and_naive_dates_compare(self, make_task):
        tasks = [
            make_task("naive", due="2030-01-02T00:00:00"),
            make_task("utc", due="2030-01-01T00:00:00+00:00"),
        ]
        assert [t.id for t in sort_tasks(tasks)] == ["utc", "naive"]

    def test_title_breaks_ties_case_insensitively(self, make_task):
        tasks = [make_task("1", title="beta"), make_task("2", title="Alpha")]
        assert [t.title for t in sort_tasks(tasks)] == ["Alpha", "beta"]
