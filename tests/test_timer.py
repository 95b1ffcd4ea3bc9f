"""Tests for eisenhower.timer — the host loop driving the state machine."""

from __future__ import annotations

from eisenhower.focus import FocusConfig, FocusState, Mode, Pause, RunState, Start
from eisenhower.timer import FocusTimer


def _timer(**config):
    sleeps: list[float] = []
    timer = FocusTimer(FocusState.initial(FocusConfig(**config)), sleep=sleeps.append)
    return timer, sleeps


class TestDispatch:
    def test_listeners_receive_before_and_after(self):
        timer, _ = _timer()
        seen = []
        timer.subscribe(lambda before, after: seen.append((before.mode, after.mode)))
        timer.dispatch(Start("t"))
        assert seen == [(Mode.IDLE, Mode.FOCUS)]
        assert timer.state.active_task_id == "t"

    def test_noop_events_do_not_notify(self):
        timer, _ = _timer()
        seen = []
        timer.subscribe(lambda before, after: seen.append(after))
        timer.dispatch(Pause())
        assert seen == []


class TestRun:
    def test_ticks_once_per_second(self):
        timer, sleeps = _timer()
        timer.dispatch(Start("t"))
        assert timer.run(max_ticks=5) == 5
        assert sleeps == [1] * 5
        assert timer.state.remaining_seconds == 1495

    def test_returns_immediately_when_not_running(self):
        timer, sleeps = _timer()
        assert timer.run() == 0
        assert sleeps == []

    def test_stops_when_interval_ends_paused(self):
        timer, _ = _timer(focus_minutes=1, auto_transition=False)
        timer.dispatch(Start("t"))
        assert timer.run() == 60
        assert timer.state.mode is Mode.SHORT_BREAK
        assert timer.state.run_state is RunState.PAUSED
        assert len(timer.state.stats.completed_sessions) == 1

    def test_keyboard_interrupt_pauses(self):
        def _sleep(_seconds):
            raise KeyboardInterrupt

        timer = FocusTimer(sleep=_sleep)
        timer.dispatch(Start("t"))
        assert timer.run() == 0
        assert timer.state.run_state is RunState.PAUSED
        assert timer.state.remaining_seconds == 1500
