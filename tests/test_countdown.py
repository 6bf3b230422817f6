"""Tests for the pre-roll countdown."""

from unittest.mock import MagicMock

import pytest

from pourover.core.clock import VirtualClock
from pourover.core.countdown import CountdownController
from pourover.core.cues import CueEvent, CueKind
from pourover.core.state import InvalidStateError


def _start(clock: VirtualClock, initial_value: int = 3):
    events: list[tuple] = []
    controller = CountdownController(clock)
    controller.start(
        initial_value,
        on_tick=lambda remaining: events.append(("tick", remaining)),
        on_complete=lambda: events.append(("complete",)),
        on_cue=lambda cue: events.append(("cue", cue.kind)),
    )
    return controller, events


class TestCountdown:
    def test_announces_initial_value_immediately(self) -> None:
        clock = VirtualClock()
        _, events = _start(clock)
        assert events == [("tick", 3), ("cue", CueKind.PRE_WARNING)]

    def test_full_sequence(self) -> None:
        clock = VirtualClock()
        controller, events = _start(clock)
        clock.advance(3)
        assert events == [
            ("tick", 3),
            ("cue", CueKind.PRE_WARNING),
            ("tick", 2),
            ("cue", CueKind.PRE_WARNING),
            ("tick", 1),
            ("cue", CueKind.PRE_WARNING),
            ("tick", 0),
            ("cue", CueKind.STAGE_DING),
            ("complete",),
        ]
        assert controller.remaining == 0

    def test_stops_after_completion(self) -> None:
        clock = VirtualClock()
        controller, events = _start(clock)
        clock.advance(10)
        assert events.count(("complete",)) == 1
        assert controller.handle is not None and controller.handle.cancelled
        assert clock.pending == 0

    def test_custom_initial_value(self) -> None:
        clock = VirtualClock()
        _, events = _start(clock, initial_value=5)
        clock.advance(4)
        assert ("complete",) not in events
        clock.advance(1)
        assert events[-1] == ("complete",)

    def test_cue_ticks_count_up_to_zero(self) -> None:
        clock = VirtualClock()
        cues: list[CueEvent] = []
        CountdownController(clock).start(3, on_cue=cues.append)
        clock.advance(3)
        assert [cue.tick for cue in cues] == [-3, -2, -1, 0]


class TestCountdownCancel:
    def test_cancel_skips_on_complete(self) -> None:
        clock = VirtualClock()
        on_complete = MagicMock()
        controller = CountdownController(clock)
        controller.start(3, on_complete=on_complete)
        clock.advance(1)
        controller.cancel()
        clock.advance(10)
        on_complete.assert_not_called()
        assert controller.remaining == 2

    def test_cancel_before_start_is_harmless(self) -> None:
        CountdownController(VirtualClock()).cancel()


class TestCountdownInvalid:
    def test_start_twice_raises(self) -> None:
        controller = CountdownController(VirtualClock())
        controller.start()
        with pytest.raises(InvalidStateError):
            controller.start()

    def test_zero_initial_value_raises(self) -> None:
        with pytest.raises(ValueError):
            CountdownController(VirtualClock()).start(0)
