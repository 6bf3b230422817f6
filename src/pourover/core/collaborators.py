"""Contracts for the collaborators the timer engine talks to.

The engine calls these and never inspects their results.  An exception
raised by an audio player or haptic engine is logged and ignored so the
schedule keeps ticking; progress sinks and lifecycle listeners are not
guarded.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from pourover.core.cues import CueKind
from pourover.core.state import Lifecycle


class HapticStrength(Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    WARNING = "warning"


class AudioPlayer(Protocol):
    def play(self, kind: CueKind) -> None: ...


class HapticEngine(Protocol):
    def pulse(self, strength: HapticStrength) -> None: ...


class ProgressSink:
    """Receives progress updates pushed by the timer.  Every hook is a no-op."""

    def on_tick(self, elapsed_seconds: int) -> None:
        pass

    def on_stage_change(self, stage_index: int, is_waiting: bool) -> None:
        pass

    def on_countdown_change(self, remaining: int | None) -> None:
        pass

    def on_water_change(self, amount: float) -> None:
        pass

    def on_complete(self, total_seconds: int) -> None:
        pass


class SilentAudio:
    def play(self, kind: CueKind) -> None:
        pass


class NoHaptics:
    def pulse(self, strength: HapticStrength) -> None:
        pass


class LifecycleEvent(Enum):
    """Coarse-grained notifications broadcast once per transition."""

    STARTED = "timer:started"
    RUNNING = "timer:running"
    RESUMED = "timer:resumed"
    PAUSED = "timer:paused"
    RESET = "timer:reset"
    COMPLETED = "timer:completed"


@dataclass(frozen=True)
class LifecycleChange:
    event: LifecycleEvent
    previous: Lifecycle
    current: Lifecycle


LifecycleListener = Callable[[LifecycleChange], None]
