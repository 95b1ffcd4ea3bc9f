"""Host loop for the focus state machine: one tick per second while running."""

from __future__ import annotations

import time
from typing import Callable

from eisenhower import log
from eisenhower.focus import Event, FocusState, Pause, Tick, transition

Listener = Callable[[FocusState, FocusState], None]


class FocusTimer:
    """Single owner of the current :class:`FocusState`.

    Usage::

        timer = FocusTimer(state, listeners=[persist, apply_time])
        timer.dispatch(Start("task-1"))
        timer.run()                      # blocks, ticking until not running

    Listeners receive ``(before, after)`` after every change.
    """

    def __init__(
        self,
        state: FocusState | None = None,
        listeners: list[Listener] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._state = state or FocusState.initial()
        self._listeners: list[Listener] = list(listeners or [])
        self._sleep = sleep or time.sleep

    @property
    def state(self) -> FocusState:
        return self._state

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: Event) -> FocusState:
        before = self._state
        after = transition(before, event)
        if after is before:
            return after
        self._state = after
        for listener in self._listeners:
            listener(before, after)
        return after

    def run(self, max_ticks: int | None = None) -> int:
        """Tick once per second while running. Returns the number of ticks.

        Returns as soon as the machine is paused or stopped, so a paused
        timer has nothing scheduled. Ctrl-C pauses it.
        """
        ticks = 0
        try:
            while self._state.is_running:
                if max_ticks is not None and ticks >= max_ticks:
                    break
                self._sleep(1)
                self.dispatch(Tick())
                ticks += 1
        except KeyboardInterrupt:
            log.warn("Interrupted; pausing the timer")
            self.dispatch(Pause())
        return ticks
