"""Countdown controller: the short pre-roll before the brew timer starts."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pourover.core.clock import Clock, TimerHandle
from pourover.core.cues import CueEvent, CueKind
from pourover.core.state import InvalidStateError

logger = logging.getLogger(__name__)

DEFAULT_COUNTDOWN_SECONDS = 3


class CountdownController:
    """Counts down once per second and hands off when it reaches zero.

    Every value above zero is announced with a pre-warning cue; zero is
    announced with a stage ding immediately before ``on_complete`` runs.
    Cue ticks are negative: the brew itself starts at tick 0.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._handle: TimerHandle | None = None
        self._remaining: int | None = None
        self._started = False
        self._on_tick: Callable[[int], None] = _ignore
        self._on_complete: Callable[[], None] = _noop
        self._on_cue: Callable[[CueEvent], None] = _ignore

    @property
    def remaining(self) -> int | None:
        return self._remaining

    @property
    def handle(self) -> TimerHandle | None:
        return self._handle

    def start(
        self,
        initial_value: int = DEFAULT_COUNTDOWN_SECONDS,
        on_tick: Callable[[int], None] | None = None,
        on_complete: Callable[[], None] | None = None,
        on_cue: Callable[[CueEvent], None] | None = None,
    ) -> TimerHandle:
        """Announce *initial_value* now and tick down to zero.

        A controller runs once; starting it again raises
        :class:`InvalidStateError`.
        """
        if self._started:
            raise InvalidStateError("countdown has already been started")
        if initial_value < 1:
            raise ValueError(f"initial_value must be at least 1, got {initial_value}")
        self._started = True
        self._on_tick = on_tick or _ignore
        self._on_complete = on_complete or _noop
        self._on_cue = on_cue or _ignore

        self._handle = self._clock.call_every(1.0, self._tick, name="countdown")
        self._remaining = initial_value
        logger.debug("Countdown started from %d", initial_value)
        self._on_tick(initial_value)
        self._on_cue(CueEvent(CueKind.PRE_WARNING, -initial_value))
        return self._handle

    def cancel(self) -> None:
        """Stop ticking without calling ``on_complete``."""
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("Countdown cancelled at %s", self._remaining)

    def _tick(self) -> None:
        if self._handle is None or self._remaining is None:
            return
        self._remaining -= 1
        self._on_tick(self._remaining)
        if self._remaining > 0:
            self._on_cue(CueEvent(CueKind.PRE_WARNING, -self._remaining))
            return

        self._handle.cancel()
        self._on_cue(CueEvent(CueKind.STAGE_DING, 0))
        logger.debug("Countdown finished")
        self._on_complete()


def _ignore(_value: object) -> None:
    pass


def _noop() -> None:
    pass
