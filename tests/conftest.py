"""Shared fixtures for eisenhower tests.

File handling in tests:
- Use tmp_path for any directory or file creation so tests are isolated and cleaned up.
- Use MemoryStore when the test is about logic rather than the filesystem.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from eisenhower.storage import MemoryStore
from eisenhower.tasks.model import Quadrant, Task


def _make_task(
    id: str,
    title: str = "",
    due: str | None = None,
    quadrant: Quadrant = Quadrant.BACKLOG,
    done: bool = False,
    time_spent_seconds: float = 0,
) -> Task:
    return Task(
        id=id,
        title=title or f"Task {id}",
        due=due,
        quadrant=quadrant,
        done=done,
        created_at="2024-01-01T00:00:00+00:00",
        completed_at="2024-01-02T00:00:00+00:00" if done else None,
        time_spent_seconds=time_spent_seconds,
    )


@pytest.fixture
def make_task():
    """Factory fixture that creates Task instances."""
    return _make_task


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated data directory, also exported through EISENHOWER_DATA_DIR."""
    target = tmp_path / "data"
    monkeypatch.setenv("EISENHOWER_DATA_DIR", str(target))
    monkeypatch.setenv("EISENHOWER_NOTIFY", "0")
    return target
