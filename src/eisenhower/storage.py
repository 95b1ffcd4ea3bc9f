"""Persistence helpers (load/save/migrate) over a small key-value store.

Task snapshot layout under ``eisenhower_state``::

    {"version": 3, "tasks": {"<id>": {"id": ..., "title": ..., ...}}}

Older payloads (version 1 and 2 envelopes, or a bare task map without a
version) are backfilled on load; the raw legacy payload is copied to
``eisenhower_state_backup_v<N>`` first so nothing is lost when the next
save overwrites it.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from eisenhower import log
from eisenhower.focus import FocusState
from eisenhower.io_utils import read_text, write_text_atomic
from eisenhower.tasks.model import Task, TaskMap

TASKS_KEY = "eisenhower_state"
FOCUS_KEY = "eisenhower_focus_state"
CURRENT_VERSION = 3
LEGACY_VERSIONS: tuple[int, ...] = (1, 2)


def backup_key(version: int) -> str:
    return f"{TASKS_KEY}_backup_v{version}"


# ── stores ───────────────────────────────────────────────────────────


class KeyValueStore(ABC):
    """String values by key. Implementations must not interpret the values."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per key inside *directory*."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        p = self.path(key)
        if not p.is_file():
            return None
        return read_text(p)

    def set(self, key: str, value: str) -> None:
        write_text_atomic(self.path(key), value)

    def remove(self, key: str) -> None:
        self.path(key).unlink(missing_ok=True)


# ── task snapshot ────────────────────────────────────────────────────


@dataclass
class LoadResult:
    tasks: TaskMap = field(default_factory=dict)
    error: str = ""
    migrated_from: int | None = None


def _tasks_from_map(raw_tasks: object) -> TaskMap:
    if not isinstance(raw_tasks, dict):
        raise ValueError("Task map is not an object")
    tasks: TaskMap = {}
    for task_id, record in raw_tasks.items():
        if not isinstance(record, dict):
            log.debug(f"Dropping stored task {task_id!r}: not an object")
            continue
        tasks[task_id] = Task.from_dict(task_id, record)
    return tasks


def load_tasks(store: KeyValueStore) -> LoadResult:
    """Load the task collection. Failures give an empty collection plus ``error``."""
    try:
        raw = store.get(TASKS_KEY)
        if not raw:
            return LoadResult()
        payload = json.loads(raw)
        if not isinstance(payload, dict):
            raise ValueError("Unexpected storage payload")

        if "version" not in payload:
            store.set(backup_key(0), raw)
            log.debug("Migrating unversioned task map")
            return LoadResult(tasks=_tasks_from_map(payload), migrated_from=0)

        version = payload.get("version")
        if version == CURRENT_VERSION:
            return LoadResult(tasks=_tasks_from_map(payload.get("tasks", {})))

        if version in LEGACY_VERSIONS:
            store.set(backup_key(version), raw)
            log.debug(f"Migrating task snapshot v{version} -> v{CURRENT_VERSION}")
            return LoadResult(
                tasks=_tasks_from_map(payload.get("tasks", {})),
                migrated_from=version,
            )

        store.set(backup_key(version if isinstance(version, int) else 0), raw)
        raise ValueError(f"Unsupported storage version: {version!r}")
    except (ValueError, OSError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors too
        return LoadResult(error=str(exc) or type(exc).__name__)


def serialize_tasks(tasks: TaskMap) -> str:
    payload = {
        "version": CURRENT_VERSION,
        "tasks": {tid: task.to_dict() for tid, task in tasks.items()},
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def save_tasks(store: KeyValueStore, tasks: TaskMap) -> None:
    store.set(TASKS_KEY, serialize_tasks(tasks))


def clear_tasks(store: KeyValueStore) -> None:
    store.remove(TASKS_KEY)


# ── focus state snapshot ─────────────────────────────────────────────


def load_focus_state(store: KeyValueStore) -> FocusState:
    try:
        raw = store.get(FOCUS_KEY)
        if not raw:
            return FocusState.initial()
        payload = json.loads(raw)
    except (ValueError, OSError, RecursionError) as exc:
        log.warn(f"Failed to load focus timer state: {exc}")
        return FocusState.initial()
    if not isinstance(payload, dict):
        log.warn("Failed to load focus timer state: unexpected payload")
        return FocusState.initial()
    return FocusState.from_dict(payload)


def save_focus_state(store: KeyValueStore, state: FocusState) -> None:
    store.set(FOCUS_KEY, json.dumps(state.to_dict(), ensure_ascii=False, indent=2))


# ── debounced writes ─────────────────────────────────────────────────

T = TypeVar("T")


class DebouncedSaver(Generic[T]):
    """Coalesces rapid saves into one write of the latest snapshot.

    Usage::

        saver = DebouncedSaver(lambda tasks: save_tasks(store, tasks), delay=0.2)
        saver.schedule(tasks)   # (re)starts the delay
        saver.flush()           # write now, synchronously
    """

    def __init__(self, save: Callable[[T], None], delay: float = 0.2) -> None:
        self._save = save
        self._delay = delay
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending: Any = None
        self._has_pending = False

    @property
    def pending(self) -> bool:
        return self._has_pending

    def schedule(self, snapshot: T) -> None:
        with self._lock:
            self._pending = snapshot
            self._has_pending = True
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Write the pending snapshot now. Returns ``False`` if nothing was pending."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._has_pending:
                return False
            snapshot = self._pending
            self._pending = None
            self._has_pending = False
            self._save(snapshot)
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            self._has_pending = False
