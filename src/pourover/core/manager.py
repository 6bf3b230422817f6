"""Timer manager: orchestrates countdown, main timer, cues, and lifecycle events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from pourover.core import state as transitions
from pourover.core.clock import Clock
from pourover.core.collaborators import (
    AudioPlayer,
    HapticEngine,
    HapticStrength,
    LifecycleChange,
    LifecycleEvent,
    LifecycleListener,
    NoHaptics,
    ProgressSink,
    SilentAudio,
)
from pourover.core.countdown import CountdownController
from pourover.core.cues import CueEvent, CueKind
from pourover.core.main_timer import MainTimerController
from pourover.core.recipe import Recipe, Stage
from pourover.core.settings import Settings
from pourover.core.stages import ExpandedStage, expand, total_duration
from pourover.core.state import InvalidStateError, Lifecycle, TimerManagerState
from pourover.core.water import active_stage_index, water_at

logger = logging.getLogger(__name__)


def _stages_of(source: Recipe | Sequence[Stage]) -> Sequence[Stage]:
    return source.stages if isinstance(source, Recipe) else source


class TimerManager:
    """Owns the brew lifecycle and the single active tick source.

    Redundant calls (``start()`` while running, ``pause()`` while idle, ...)
    are ignored so rapid repeated taps stay harmless.  The recipe is expanded
    on construction, so a malformed recipe fails before any timer exists.
    """

    def __init__(
        self,
        recipe: Recipe | Sequence[Stage],
        clock: Clock,
        settings: Settings | None = None,
        audio: AudioPlayer | None = None,
        haptics: HapticEngine | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        self._recipe = recipe if isinstance(recipe, Recipe) else None
        self._timeline = expand(_stages_of(recipe))
        self._clock = clock
        self._settings = settings if settings is not None else Settings()
        self._audio = audio if audio is not None else SilentAudio()
        self._haptics = haptics if haptics is not None else NoHaptics()
        self._sink = sink if sink is not None else ProgressSink()
        self._state = TimerManagerState()
        self._listeners: list[LifecycleListener] = []
        self._countdown: CountdownController | None = None
        self._main: MainTimerController | None = None
        self._stage_index = -1

    # -- read-only views -----------------------------------------------------

    @property
    def state(self) -> TimerManagerState:
        return self._state

    @property
    def lifecycle(self) -> Lifecycle:
        return self._state.lifecycle

    @property
    def elapsed_seconds(self) -> int:
        return self._state.elapsed_seconds

    @property
    def timeline(self) -> tuple[ExpandedStage, ...]:
        return self._timeline

    @property
    def recipe(self) -> Recipe | None:
        return self._recipe

    @property
    def total_duration(self) -> int:
        return total_duration(self._timeline)

    @property
    def current_water(self) -> float:
        return water_at(self._timeline, self._state.elapsed_seconds)

    # -- subscriptions -------------------------------------------------------

    def subscribe(self, listener: LifecycleListener) -> Callable[[], None]:
        """Register *listener* for lifecycle changes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- public API ----------------------------------------------------------

    def start(self) -> None:
        """Start a fresh brew (with countdown) or resume a paused one."""
        if self._state.is_active:
            logger.debug("start() ignored while %s", self._state.lifecycle.value)
            return
        if self._state.lifecycle is Lifecycle.COMPLETED:
            self.reset()

        previous = self._state.lifecycle
        self._pulse(HapticStrength.MEDIUM)
        if self._state.needs_countdown:
            self._begin_countdown()
            self._emit(LifecycleEvent.STARTED, previous)
        else:
            self._begin_running(self._state.elapsed_seconds)
            self._emit(LifecycleEvent.RESUMED, previous)

    def pause(self) -> None:
        """Stop ticking and keep the elapsed time."""
        if not transitions.can_pause(self._state):
            logger.debug("pause() ignored while %s", self._state.lifecycle.value)
            return
        self._cancel_active()
        previous = self._state.lifecycle
        self._state = transitions.pause(self._state)
        self._pulse(HapticStrength.LIGHT)
        if previous is Lifecycle.COUNTING_DOWN:
            self._sink.on_countdown_change(None)
        self._emit(LifecycleEvent.PAUSED, previous)

    def reset(self) -> None:
        """Abandon the brew and return to IDLE."""
        if not transitions.can_reset(self._state):
            logger.debug("reset() ignored while idle")
            return
        self._cancel_active()
        previous = self._state.lifecycle
        self._state = transitions.reset(self._state)
        self._stage_index = -1
        self._pulse(HapticStrength.WARNING)
        self._sink.on_tick(0)
        self._sink.on_countdown_change(None)
        self._sink.on_water_change(0.0)
        self._emit(LifecycleEvent.RESET, previous)

    def skip(self) -> None:
        """Jump to the end of the schedule.

        The state is COMPLETED immediately; the completion callback follows
        after ``settings.skip_delay`` so the final frame can be shown first.
        """
        if not transitions.can_skip(self._state):
            logger.debug("skip() ignored while %s", self._state.lifecycle.value)
            return
        self._cancel_active()
        previous = self._state.lifecycle
        total = self.total_duration
        pending = self._clock.call_later(
            self._settings.skip_delay, self._deliver_skipped_completion, name="skip"
        )
        self._state = transitions.complete(self._state, total, pending=pending)
        if previous is Lifecycle.COUNTING_DOWN:
            self._sink.on_countdown_change(None)
        self._sink.on_tick(total)
        self._publish_progress(total)
        self._emit(LifecycleEvent.COMPLETED, previous)

    def update_recipe(self, recipe: Recipe | Sequence[Stage]) -> None:
        """Swap in an edited recipe and re-expand the timeline.

        Refused while a countdown or brew is ticking, since the live schedule
        must not change under it.
        """
        if self._state.is_active:
            raise InvalidStateError(
                f"cannot change the recipe while {self._state.lifecycle.value}"
            )
        self._timeline = expand(_stages_of(recipe))
        self._recipe = recipe if isinstance(recipe, Recipe) else None
        logger.info("Recipe updated: %d sub-stages, %ds", len(self._timeline), self.total_duration)

    # -- countdown -----------------------------------------------------------

    def _begin_countdown(self) -> None:
        seconds = self._settings.countdown_seconds
        countdown = CountdownController(self._clock)
        self._countdown = countdown
        handle = countdown.start(
            seconds,
            on_tick=self._on_countdown_tick,
            on_complete=self._on_countdown_complete,
            on_cue=self._deliver_cue,
        )
        self._state = transitions.begin_countdown(self._state, seconds, handle)

    def _on_countdown_tick(self, remaining: int) -> None:
        # The first value is announced before the state has moved to COUNTING_DOWN.
        if self._state.lifecycle is Lifecycle.COUNTING_DOWN:
            self._state = transitions.countdown_tick(self._state, remaining)
        if remaining > 0:
            self._sink.on_countdown_change(remaining)

    def _on_countdown_complete(self) -> None:
        if self._state.lifecycle is not Lifecycle.COUNTING_DOWN:
            return
        self._countdown = None
        self._sink.on_countdown_change(None)
        self._begin_running(0)
        self._emit(LifecycleEvent.RUNNING, Lifecycle.COUNTING_DOWN)

    # -- main timer ----------------------------------------------------------

    def _begin_running(self, initial_elapsed: int) -> None:
        main = MainTimerController(self._clock)
        self._main = main
        handle = main.start(
            self._timeline,
            initial_elapsed,
            on_tick=self._on_main_tick,
            on_complete=self._on_main_complete,
            on_cue=self._deliver_cue,
        )
        self._state = transitions.begin_running(self._state, handle)
        self._sink.on_tick(self._state.elapsed_seconds)
        self._publish_progress(self._state.elapsed_seconds)

    def _on_main_tick(self, elapsed: int) -> None:
        if self._state.lifecycle is not Lifecycle.RUNNING:
            return
        self._state = transitions.advance(self._state, elapsed)
        self._sink.on_tick(elapsed)
        self._publish_progress(elapsed)

    def _on_main_complete(self, total: int) -> None:
        if self._state.lifecycle is not Lifecycle.RUNNING:
            return
        self._main = None
        self._state = transitions.complete(self._state, total)
        self._sink.on_complete(total)
        self._emit(LifecycleEvent.COMPLETED, Lifecycle.RUNNING)

    def _deliver_skipped_completion(self) -> None:
        if self._state.lifecycle is not Lifecycle.COMPLETED:
            return
        self._state = transitions.release_timer(self._state)
        total = self._state.elapsed_seconds
        self._deliver_cue(CueEvent(CueKind.COMPLETE, total + 1))
        self._sink.on_complete(total)

    # -- helpers -------------------------------------------------------------

    def _cancel_active(self) -> None:
        """Invalidate the live tick source before any other part of a transition."""
        if self._countdown is not None:
            self._countdown.cancel()
        if self._main is not None:
            self._main.cancel()
        handle = self._state.active_timer
        if handle is not None:
            handle.cancel()
        self._countdown = None
        self._main = None

    def _publish_progress(self, elapsed: int) -> None:
        index = active_stage_index(self._timeline, elapsed)
        if index != self._stage_index:
            self._stage_index = index
            self._sink.on_stage_change(index, not self._timeline[index].is_pour)
        self._sink.on_water_change(water_at(self._timeline, elapsed))

    def _deliver_cue(self, cue: CueEvent) -> None:
        logger.debug("Cue %s at %ds", cue.kind.value, cue.tick)
        if self._settings.notification_sound:
            try:
                self._audio.play(cue.kind)
            except Exception:
                logger.exception("Audio cue %s failed", cue.kind.value)
        if cue.kind is CueKind.POUR_END_DING:
            self._pulse(HapticStrength.MEDIUM)

    def _pulse(self, strength: HapticStrength) -> None:
        if not self._settings.haptic_feedback:
            return
        try:
            self._haptics.pulse(strength)
        except Exception:
            logger.exception("Haptic pulse %s failed", strength.value)

    def _emit(self, event: LifecycleEvent, previous: Lifecycle) -> None:
        change = LifecycleChange(event, previous, self._state.lifecycle)
        logger.info("%s (%s -> %s)", event.value, previous.value, change.current.value)
        for listener in list(self._listeners):
            listener(change)
