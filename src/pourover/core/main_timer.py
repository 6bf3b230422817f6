"""Main timer controller: the 1 Hz loop that walks the brew timeline."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pourover.core.clock import Clock, TimerHandle
from pourover.core.cues import CueEvent, clamp_elapsed, cues_at, is_complete, ordered
from pourover.core.stages import Timeline
from pourover.core.state import InvalidStateError

logger = logging.getLogger(__name__)


class MainTimerController:
    """Advances elapsed time one second per tick and reports cues.

    On every tick the cues for the new second are delivered first, then
    ``on_tick``.  When the schedule is over the elapsed time is clamped to
    the total duration, the loop stops, and ``on_complete`` runs once.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._handle: TimerHandle | None = None
        self._timeline: Timeline = ()
        self._elapsed = 0
        self._completed = False
        self._on_tick: Callable[[int], None] = _ignore
        self._on_complete: Callable[[int], None] = _ignore
        self._on_cue: Callable[[CueEvent], None] = _ignore

    @property
    def elapsed(self) -> int:
        return self._elapsed

    @property
    def handle(self) -> TimerHandle | None:
        return self._handle

    def start(
        self,
        timeline: Timeline,
        initial_elapsed: int = 0,
        on_tick: Callable[[int], None] | None = None,
        on_complete: Callable[[int], None] | None = None,
        on_cue: Callable[[CueEvent], None] | None = None,
    ) -> TimerHandle:
        """Begin ticking from *initial_elapsed*.

        Cues belonging to ticks at or before *initial_elapsed* are not
        replayed, so a resumed brew picks up exactly where it stopped.
        """
        if self._handle is not None:
            raise InvalidStateError("main timer has already been started")
        if initial_elapsed < 0:
            raise ValueError(f"initial_elapsed must be >= 0, got {initial_elapsed}")
        self._timeline = timeline
        self._elapsed = initial_elapsed
        self._on_tick = on_tick or _ignore
        self._on_complete = on_complete or _ignore
        self._on_cue = on_cue or _ignore

        self._handle = self._clock.call_every(1.0, self._tick, name="main-timer")
        logger.debug("Main timer started at %ds", initial_elapsed)
        return self._handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("Main timer cancelled at %ds", self._elapsed)

    def _tick(self) -> None:
        if self._handle is None:
            return
        tick = self._elapsed + 1
        cues = cues_at(self._timeline, tick)
        for cue in ordered(cues):
            if self._handle.cancelled:
                return
            self._on_cue(cue)
        if self._handle.cancelled:
            return

        if not is_complete(cues):
            self._elapsed = tick
            self._on_tick(tick)
            return

        self._handle.cancel()
        self._elapsed = clamp_elapsed(self._timeline, tick)
        self._on_tick(self._elapsed)
        if not self._completed:
            self._completed = True
            logger.debug("Main timer reached the end of the schedule at %ds", self._elapsed)
            self._on_complete(self._elapsed)


def _ignore(_value: object) -> None:
    pass
