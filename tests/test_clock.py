"""Tests for the virtual and real-time clocks."""

from unittest.mock import patch

import pytest

from pourover.core.clock import RealtimeClock, TimerHandle, VirtualClock


class TestTimerHandle:
    def test_starts_active(self) -> None:
        assert not TimerHandle().cancelled

    def test_cancel(self) -> None:
        handle = TimerHandle("tick")
        handle.cancel()
        assert handle.cancelled
        assert "cancelled" in repr(handle)


# ---------------------------------------------------------------------------
# VirtualClock
# ---------------------------------------------------------------------------


class TestVirtualClock:
    def test_call_later_fires_once_at_deadline(self) -> None:
        clock = VirtualClock()
        calls: list[float] = []
        clock.call_later(0.3, lambda: calls.append(clock.now()))
        clock.advance(0.2)
        assert calls == []
        clock.advance(0.1)
        assert calls == [pytest.approx(0.3)]
        clock.advance(5)
        assert len(calls) == 1

    def test_call_every_fires_each_interval(self) -> None:
        clock = VirtualClock()
        calls: list[float] = []
        clock.call_every(1.0, lambda: calls.append(clock.now()))
        clock.advance(3)
        assert calls == [1.0, 2.0, 3.0]

    def test_deadlines_are_anchored_to_origin(self) -> None:
        clock = VirtualClock(start=100.0)
        calls: list[float] = []
        clock.call_every(0.1, lambda: calls.append(clock.now()))
        clock.advance(100)
        assert len(calls) == 1000
        assert calls[-1] == pytest.approx(200.0)

    def test_cancelled_handle_never_fires(self) -> None:
        clock = VirtualClock()
        calls: list[int] = []
        handle = clock.call_every(1.0, lambda: calls.append(1))
        clock.advance(2)
        handle.cancel()
        clock.advance(5)
        assert calls == [1, 1]
        assert clock.pending == 0

    def test_raising_periodic_callback_stays_scheduled(self) -> None:
        clock = VirtualClock()
        calls: list[float] = []

        def tick() -> None:
            calls.append(clock.now())
            if len(calls) == 2:
                raise OSError("speaker unplugged")

        clock.call_every(1.0, tick)
        with pytest.raises(OSError):
            clock.advance(5)
        assert clock.pending == 1
        clock.advance(3)
        assert calls == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_callback_can_cancel_a_tick_due_at_the_same_time(self) -> None:
        clock = VirtualClock()
        calls: list[str] = []
        second: list[TimerHandle] = []

        def first() -> None:
            calls.append("first")
            second[0].cancel()

        clock.call_later(1.0, first)
        second.append(clock.call_later(1.0, lambda: calls.append("second")))
        clock.advance(1)
        assert calls == ["first"]

    def test_callbacks_run_in_deadline_order(self) -> None:
        clock = VirtualClock()
        calls: list[str] = []
        clock.call_later(2.0, lambda: calls.append("late"))
        clock.call_later(1.0, lambda: calls.append("early"))
        clock.call_later(1.0, lambda: calls.append("early-second"))
        clock.advance(3)
        assert calls == ["early", "early-second", "late"]

    def test_callback_scheduled_during_advance_fires_in_same_advance(self) -> None:
        clock = VirtualClock()
        calls: list[float] = []
        clock.call_later(1.0, lambda: clock.call_later(1.0, lambda: calls.append(clock.now())))
        clock.advance(5)
        assert calls == [2.0]

    def test_now_ends_at_target(self) -> None:
        clock = VirtualClock()
        clock.advance(2.5)
        assert clock.now() == 2.5

    def test_advance_backwards_raises(self) -> None:
        with pytest.raises(ValueError):
            VirtualClock().advance(-1)

    def test_non_positive_interval_raises(self) -> None:
        with pytest.raises(ValueError):
            VirtualClock().call_every(0, lambda: None)


# ---------------------------------------------------------------------------
# RealtimeClock
# ---------------------------------------------------------------------------


class TestRealtimeClock:
    def test_sleeps_until_each_deadline(self) -> None:
        with patch("pourover.core.clock.time") as mock_time:
            now = [10.0]
            mock_time.monotonic.side_effect = lambda: now[0]

            def fake_sleep(seconds: float) -> None:
                now[0] += seconds

            mock_time.sleep.side_effect = fake_sleep

            clock = RealtimeClock()
            ticks: list[float] = []
            handle = clock.call_every(1.0, lambda: ticks.append(now[0]))
            clock.run_until(lambda: len(ticks) >= 3)
            handle.cancel()

            assert ticks == [pytest.approx(11.0), pytest.approx(12.0), pytest.approx(13.0)]

    def test_slow_callback_does_not_drift(self) -> None:
        with patch("pourover.core.clock.time") as mock_time:
            now = [0.0]
            mock_time.monotonic.side_effect = lambda: now[0]

            def fake_sleep(seconds: float) -> None:
                now[0] += seconds

            mock_time.sleep.side_effect = fake_sleep

            clock = RealtimeClock()
            ticks: list[float] = []

            def slow_tick() -> None:
                ticks.append(now[0])
                now[0] += 0.25  # work inside the tick

            clock.call_every(1.0, slow_tick)
            clock.run_until(lambda: len(ticks) >= 4)

            assert ticks == [pytest.approx(float(n)) for n in (1, 2, 3, 4)]

    def test_returns_when_nothing_is_scheduled(self) -> None:
        clock = RealtimeClock()
        clock.run_until(lambda: False)
        assert clock.pending == 0
