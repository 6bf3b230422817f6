"""Timer state: the brew lifecycle as an immutable value plus pure transitions.

Each transition takes a :class:`TimerManagerState` and returns the next one.
Transitions that are not valid from the current lifecycle raise
:class:`InvalidStateError`; :class:`~pourover.core.manager.TimerManager`
checks the ``can_*`` predicates first and turns those cases into no-ops.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from pourover.core.clock import TimerHandle


class Lifecycle(Enum):
    """Possible states of a brew session."""

    IDLE = "idle"
    COUNTING_DOWN = "counting_down"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class InvalidStateError(Exception):
    """Raised when an invalid state transition is attempted."""


_STARTABLE_STATES = frozenset({Lifecycle.IDLE, Lifecycle.PAUSED})
_ACTIVE_STATES = frozenset({Lifecycle.COUNTING_DOWN, Lifecycle.RUNNING})
_RESETTABLE_STATES = frozenset(Lifecycle) - {Lifecycle.IDLE}


@dataclass(frozen=True)
class TimerManagerState:
    lifecycle: Lifecycle = Lifecycle.IDLE
    elapsed_seconds: int = 0
    has_started_once: bool = False
    countdown_remaining: int | None = None
    active_timer: TimerHandle | None = None

    @property
    def needs_countdown(self) -> bool:
        """Only a fresh start gets the pre-roll; a resume goes straight to running."""
        return not self.has_started_once or self.elapsed_seconds == 0

    @property
    def is_active(self) -> bool:
        return self.lifecycle in _ACTIVE_STATES


# -- predicates --------------------------------------------------------------


def can_start(state: TimerManagerState) -> bool:
    return state.lifecycle in _STARTABLE_STATES


def can_pause(state: TimerManagerState) -> bool:
    return state.lifecycle in _ACTIVE_STATES


def can_skip(state: TimerManagerState) -> bool:
    return state.lifecycle in _ACTIVE_STATES


def can_reset(state: TimerManagerState) -> bool:
    return state.lifecycle in _RESETTABLE_STATES


def _require(state: TimerManagerState, action: str, valid: frozenset[Lifecycle]) -> None:
    if state.lifecycle not in valid:
        raise InvalidStateError(f"{action}() is not valid from {state.lifecycle.value} state")


# -- transitions -------------------------------------------------------------


def begin_countdown(
    state: TimerManagerState, seconds: int, handle: TimerHandle
) -> TimerManagerState:
    """IDLE/PAUSED -> COUNTING_DOWN for a fresh start."""
    _require(state, "begin_countdown", _STARTABLE_STATES)
    return replace(
        state,
        lifecycle=Lifecycle.COUNTING_DOWN,
        elapsed_seconds=0,
        countdown_remaining=seconds,
        active_timer=handle,
    )


def countdown_tick(state: TimerManagerState, remaining: int) -> TimerManagerState:
    _require(state, "countdown_tick", frozenset({Lifecycle.COUNTING_DOWN}))
    return replace(state, countdown_remaining=remaining)


def begin_running(state: TimerManagerState, handle: TimerHandle) -> TimerManagerState:
    """COUNTING_DOWN -> RUNNING at zero, or PAUSED/IDLE -> RUNNING at the kept elapsed."""
    _require(state, "begin_running", _STARTABLE_STATES | {Lifecycle.COUNTING_DOWN})
    if state.lifecycle is Lifecycle.COUNTING_DOWN:
        return replace(
            state,
            lifecycle=Lifecycle.RUNNING,
            elapsed_seconds=0,
            has_started_once=True,
            countdown_remaining=None,
            active_timer=handle,
        )
    return replace(state, lifecycle=Lifecycle.RUNNING, active_timer=handle)


def advance(state: TimerManagerState, elapsed: int) -> TimerManagerState:
    """Record a tick of the running brew; elapsed time never goes backwards."""
    _require(state, "advance", frozenset({Lifecycle.RUNNING}))
    if elapsed < state.elapsed_seconds:
        raise InvalidStateError(
            f"elapsed time cannot go back from {state.elapsed_seconds}s to {elapsed}s"
        )
    return replace(state, elapsed_seconds=elapsed)


def pause(state: TimerManagerState) -> TimerManagerState:
    """COUNTING_DOWN/RUNNING -> PAUSED, keeping the elapsed time."""
    _require(state, "pause", _ACTIVE_STATES)
    return replace(
        state, lifecycle=Lifecycle.PAUSED, countdown_remaining=None, active_timer=None
    )


def complete(
    state: TimerManagerState, total_seconds: int, pending: TimerHandle | None = None
) -> TimerManagerState:
    """COUNTING_DOWN/RUNNING -> COMPLETED with the elapsed time at the schedule's end.

    *pending* is the handle of a delayed completion delivery still owed to
    the caller, if any.
    """
    _require(state, "complete", _ACTIVE_STATES)
    return replace(
        state,
        lifecycle=Lifecycle.COMPLETED,
        elapsed_seconds=total_seconds,
        countdown_remaining=None,
        active_timer=pending,
    )


def release_timer(state: TimerManagerState) -> TimerManagerState:
    return replace(state, active_timer=None)


def reset(state: TimerManagerState) -> TimerManagerState:
    """Any state -> IDLE with everything cleared."""
    _require(state, "reset", _RESETTABLE_STATES)
    return TimerManagerState()
