"""Focus-session state machine (focus intervals, short and long breaks).

The machine is a plain record, :class:`FocusState`, plus one pure function::

    state = FocusState()
    state = transition(state, Start("task-1"))   # idle -> focus/running
    state = transition(state, Tick())            # one second elapsed
    state = transition(state, Pause())           # running -> paused

Nothing here touches a clock or a timer; :mod:`eisenhower.timer` owns the
repeating one-second callback that feeds :class:`Tick` events in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any

from eisenhower import log
from eisenhower.dates import now_iso
from eisenhower.tasks.model import finite_number

SESSION_LOG_LIMIT = 200
MAX_INTERVAL_MINUTES = 24 * 60


class Mode(str, Enum):
    FOCUS = "focus"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"
    IDLE = "idle"


class RunState(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class FocusConfig:
    focus_minutes: float = 25
    short_break_minutes: float = 5
    long_break_minutes: float = 15
    long_break_every: int = 4
    auto_transition: bool = True
    enable_long_break: bool = True

    def duration_seconds(self, mode: Mode) -> int:
        """Length of an interval in *mode*; ``idle`` uses the focus length."""
        match mode:
            case Mode.SHORT_BREAK:
                minutes = self.short_break_minutes
            case Mode.LONG_BREAK:
                minutes = self.long_break_minutes
            case _:
                minutes = self.focus_minutes
        return max(1, round(minutes * 60))

    def merged(self, changes: dict[str, Any]) -> FocusConfig:
        """Return a copy with *changes* applied; invalid values keep the old one."""
        accepted: dict[str, Any] = {}
        for f in fields(self):
            if f.name not in changes:
                continue
            value = changes[f.name]
            previous = getattr(self, f.name)
            if isinstance(previous, bool):
                ok = isinstance(value, bool)
            elif f.name == "long_break_every":
                ok = isinstance(value, int) and not isinstance(value, bool) and value >= 1
            else:
                minutes = finite_number(value)
                ok = minutes is not None and 0 < minutes <= MAX_INTERVAL_MINUTES
            if ok:
                accepted[f.name] = value
            else:
                log.debug(f"Ignoring focus config {f.name}={value!r}")

        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            log.debug(f"Ignoring unknown focus config keys: {', '.join(sorted(unknown))}")
        return replace(self, **accepted)


@dataclass(frozen=True)
class CompletedSession:
    task_id: str
    duration_seconds: int
    completed_at: str


@dataclass(frozen=True)
class FocusStats:
    completed_per_task: dict[str, int] = field(default_factory=dict)
    history: tuple[str, ...] = ()
    completed_sessions: tuple[CompletedSession, ...] = ()
    # Sessions ever credited; keeps counting after the log is capped.
    logged: int = 0


DEFAULT_CONFIG = FocusConfig()


@dataclass(frozen=True)
class FocusState:
    active_task_id: str | None = None
    mode: Mode = Mode.IDLE
    run_state: RunState = RunState.STOPPED
    remaining_seconds: int = DEFAULT_CONFIG.duration_seconds(Mode.FOCUS)
    streak: int = 0
    session_seconds: int = DEFAULT_CONFIG.duration_seconds(Mode.FOCUS)
    config: FocusConfig = field(default_factory=FocusConfig)
    stats: FocusStats = field(default_factory=FocusStats)

    @property
    def is_running(self) -> bool:
        return self.run_state is RunState.RUNNING

    @classmethod
    def initial(cls, config: FocusConfig | None = None) -> FocusState:
        cfg = config or FocusConfig()
        seconds = cfg.duration_seconds(Mode.FOCUS)
        return cls(remaining_seconds=seconds, session_seconds=seconds, config=cfg)

    # ── snapshot ─────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        cfg = self.config
        return {
            "activeTaskId": self.active_task_id,
            "mode": self.mode.value,
            "runState": self.run_state.value,
            "remainingSeconds": self.remaining_seconds,
            "streak": self.streak,
            "sessionSeconds": self.session_seconds,
            "config": {
                "focusMinutes": cfg.focus_minutes,
                "shortBreakMinutes": cfg.short_break_minutes,
                "longBreakMinutes": cfg.long_break_minutes,
                "longBreakEvery": cfg.long_break_every,
                "autoTransition": cfg.auto_transition,
                "enableLongBreak": cfg.enable_long_break,
            },
            "stats": {
                "completedPerTask": dict(self.stats.completed_per_task),
                "history": list(self.stats.history),
                "completedSessions": [
                    {
                        "taskId": s.task_id,
                        "durationSeconds": s.duration_seconds,
                        "completedAt": s.completed_at,
                    }
                    for s in self.stats.completed_sessions
                ],
                "sessionsLogged": self.stats.logged,
            },
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FocusState:
        """Rebuild a state from a snapshot, dropping anything malformed."""
        raw_cfg = raw.get("config") if isinstance(raw.get("config"), dict) else {}
        config = FocusConfig().merged(
            {
                name: raw_cfg[key]
                for key, name in _CONFIG_KEYS.items()
                if key in raw_cfg
            }
        )

        mode = raw.get("mode")
        mode = Mode(mode) if isinstance(mode, str) and mode in _MODES else Mode.IDLE
        run_state = raw.get("runState")
        run_state = (
            RunState(run_state)
            if isinstance(run_state, str) and run_state in _RUN_STATES
            else RunState.STOPPED
        )

        raw_stats = raw.get("stats") if isinstance(raw.get("stats"), dict) else {}
        per_task = raw_stats.get("completedPerTask")
        per_task = {
            k: v
            for k, v in (per_task.items() if isinstance(per_task, dict) else ())
            if isinstance(v, int) and not isinstance(v, bool)
        }
        history = raw_stats.get("history")
        history = tuple(h for h in history if isinstance(h, str)) if isinstance(history, list) else ()
        sessions = raw_stats.get("completedSessions")
        parsed_sessions = []
        for entry in sessions if isinstance(sessions, list) else ():
            if not isinstance(entry, dict):
                continue
            task_id = entry.get("taskId")
            duration = entry.get("durationSeconds")
            completed_at = entry.get("completedAt")
            if (
                isinstance(task_id, str)
                and (finite_number(duration) or 0) > 0
                and isinstance(completed_at, str)
            ):
                parsed_sessions.append(CompletedSession(task_id, int(duration), completed_at))

        active = raw.get("activeTaskId")
        default_seconds = config.duration_seconds(mode)
        return cls(
            active_task_id=active if isinstance(active, str) else None,
            mode=mode,
            run_state=run_state,
            remaining_seconds=_non_negative_int(raw.get("remainingSeconds"), default_seconds),
            streak=_non_negative_int(raw.get("streak"), 0),
            session_seconds=_non_negative_int(raw.get("sessionSeconds"), default_seconds),
            config=config,
            stats=FocusStats(
                completed_per_task=per_task,
                history=history[-SESSION_LOG_LIMIT:],
                completed_sessions=tuple(parsed_sessions[-SESSION_LOG_LIMIT:]),
                logged=max(
                    _non_negative_int(raw_stats.get("sessionsLogged"), 0),
                    len(parsed_sessions[-SESSION_LOG_LIMIT:]),
                ),
            ),
        )


_MODES = {m.value for m in Mode}
_RUN_STATES = {r.value for r in RunState}
_CONFIG_KEYS = {
    "focusMinutes": "focus_minutes",
    "shortBreakMinutes": "short_break_minutes",
    "longBreakMinutes": "long_break_minutes",
    "longBreakEvery": "long_break_every",
    "autoTransition": "auto_transition",
    "enableLongBreak": "enable_long_break",
}


def _non_negative_int(value: object, default: int) -> int:
    number = finite_number(value)
    if number is None:
        return default
    return max(0, int(number))


# ── events ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Start:
    task_id: str


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class ClearTask:
    pass


@dataclass(frozen=True)
class UpdateConfig:
    changes: dict[str, Any]


@dataclass(frozen=True)
class ClearStats:
    pass


Event = Start | Tick | Pause | Resume | Reset | Skip | ClearTask | UpdateConfig | ClearStats


# ── transitions ──────────────────────────────────────────────────────


def _to_idle(state: FocusState) -> FocusState:
    seconds = state.config.duration_seconds(Mode.FOCUS)
    return replace(
        state,
        mode=Mode.IDLE,
        run_state=RunState.STOPPED,
        remaining_seconds=seconds,
        session_seconds=seconds,
        streak=0,
    )


def _enter(state: FocusState, mode: Mode, streak: int) -> FocusState:
    """Start a new interval in *mode*, freezing its length from the current config."""
    seconds = state.config.duration_seconds(mode)
    run_state = RunState.RUNNING if state.config.auto_transition else RunState.PAUSED
    return replace(
        state,
        mode=mode,
        run_state=run_state,
        remaining_seconds=seconds,
        session_seconds=seconds,
        streak=streak,
    )


def _break_after(config: FocusConfig, streak: int) -> Mode:
    if config.enable_long_break and streak % config.long_break_every == 0:
        return Mode.LONG_BREAK
    return Mode.SHORT_BREAK


def _credit(stats: FocusStats, task_id: str, duration: int, now: str) -> FocusStats:
    per_task = dict(stats.completed_per_task)
    per_task[task_id] = per_task.get(task_id, 0) + 1
    session = CompletedSession(task_id=task_id, duration_seconds=duration, completed_at=now)
    return FocusStats(
        completed_per_task=per_task,
        history=(*stats.history, now)[-SESSION_LOG_LIMIT:],
        completed_sessions=(*stats.completed_sessions, session)[-SESSION_LOG_LIMIT:],
        logged=stats.logged + 1,
    )


def _complete_interval(state: FocusState, now: str) -> FocusState:
    if state.mode is Mode.FOCUS:
        streak = state.streak + 1
        stats = state.stats
        if state.active_task_id:
            duration = state.session_seconds or state.config.duration_seconds(Mode.FOCUS)
            stats = _credit(stats, state.active_task_id, duration, now)
        next_mode = _break_after(state.config, streak)
        log.debug(f"Focus interval complete (streak {streak}) -> {next_mode.value}")
        return _enter(replace(state, stats=stats), next_mode, streak)

    if state.active_task_id:
        log.debug(f"{state.mode.value} complete -> focus")
        return _enter(state, Mode.FOCUS, state.streak)
    log.debug(f"{state.mode.value} complete with no active task -> idle")
    return _to_idle(state)


def _skip(state: FocusState) -> FocusState:
    if state.mode is Mode.IDLE:
        return state
    if state.mode is Mode.FOCUS:
        # No credit: the streak stays, only the break length looks ahead.
        return _enter(state, _break_after(state.config, state.streak + 1), state.streak)
    if state.active_task_id:
        return _enter(state, Mode.FOCUS, state.streak)
    return _to_idle(state)


def _update_config(state: FocusState, changes: dict[str, Any]) -> FocusState:
    config = state.config.merged(changes)
    if state.mode is Mode.IDLE and state.run_state is RunState.STOPPED:
        seconds = config.duration_seconds(Mode.FOCUS)
        return replace(state, config=config, remaining_seconds=seconds, session_seconds=seconds)
    return replace(state, config=config)


def transition(state: FocusState, event: Event, now: str | None = None) -> FocusState:
    """Apply one event and return the next state. Meaningless events are no-ops."""
    match event:
        case Start(task_id=task_id):
            seconds = state.config.duration_seconds(Mode.FOCUS)
            return replace(
                state,
                active_task_id=task_id,
                mode=Mode.FOCUS,
                run_state=RunState.RUNNING,
                remaining_seconds=seconds,
                session_seconds=seconds,
            )
        case Tick():
            if state.run_state is not RunState.RUNNING:
                return state
            remaining = max(0, state.remaining_seconds - 1)
            if remaining > 0:
                return replace(state, remaining_seconds=remaining)
            return _complete_interval(state, now or now_iso())
        case Pause():
            if state.run_state is not RunState.RUNNING:
                return state
            return replace(state, run_state=RunState.PAUSED)
        case Resume():
            if not state.active_task_id or state.mode is Mode.IDLE:
                return state
            return replace(state, run_state=RunState.RUNNING)
        case Reset():
            seconds = state.config.duration_seconds(Mode.FOCUS)
            return replace(
                state,
                active_task_id=None,
                mode=Mode.IDLE,
                run_state=RunState.STOPPED,
                remaining_seconds=seconds,
                session_seconds=seconds,
                streak=0,
            )
        case Skip():
            return _skip(state)
        case ClearTask():
            return replace(state, active_task_id=None)
        case UpdateConfig(changes=changes):
            return _update_config(state, changes)
        case ClearStats():
            return replace(state, stats=FocusStats())
        case _:
            raise TypeError(f"Unknown focus event: {event!r}")


def new_sessions(before: FocusState, after: FocusState) -> list[CompletedSession]:
    """Sessions logged by the transition *before* -> *after*, oldest first."""
    count = after.stats.logged - before.stats.logged
    if count <= 0:
        return []
    return list(after.stats.completed_sessions[-count:])
