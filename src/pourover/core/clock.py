"""Clock: schedules tick callbacks for the countdown and main timers.

Both clocks keep a heap of deadlines and run callbacks in deadline order on
the caller's thread.  Periodic deadlines are computed from a fixed origin
(``origin + n * interval``) so a long brew does not drift.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle:
    """Cancellable reference to a scheduled callback."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cancelled = False

    def cancel(self) -> None:
        """Stop the callback from firing again, including a tick already due."""
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<TimerHandle {self.name or hex(id(self))} {state}>"


@dataclass(order=True)
class _Entry:
    deadline: float
    seq: int
    handle: TimerHandle = field(compare=False)
    callback: Callback = field(compare=False)
    interval: float | None = field(default=None, compare=False)
    origin: float = field(default=0.0, compare=False)
    count: int = field(default=1, compare=False)


class Clock(ABC):
    """Capability to schedule one-shot and periodic callbacks."""

    def __init__(self) -> None:
        self._queue: list[_Entry] = []
        self._seq = itertools.count()

    @abstractmethod
    def now(self) -> float:
        """Return the current time in seconds."""

    # -- scheduling ----------------------------------------------------------

    def call_later(self, delay: float, callback: Callback, name: str = "") -> TimerHandle:
        """Run *callback* once, *delay* seconds from now."""
        handle = TimerHandle(name)
        self._push(_Entry(self.now() + delay, next(self._seq), handle, callback))
        return handle

    def call_every(self, interval: float, callback: Callback, name: str = "") -> TimerHandle:
        """Run *callback* every *interval* seconds, first one *interval* from now."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = TimerHandle(name)
        origin = self.now()
        self._push(
            _Entry(origin + interval, next(self._seq), handle, callback, interval, origin)
        )
        return handle

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        return sum(1 for entry in self._queue if not entry.handle.cancelled)

    # -- internals -----------------------------------------------------------

    def _push(self, entry: _Entry) -> None:
        heapq.heappush(self._queue, entry)

    def _next_deadline(self) -> float | None:
        while self._queue and self._queue[0].handle.cancelled:
            heapq.heappop(self._queue)
        return self._queue[0].deadline if self._queue else None

    def _fire_next(self) -> None:
        entry = heapq.heappop(self._queue)
        if entry.handle.cancelled:
            return
        self._before_fire(entry.deadline)
        try:
            entry.callback()
        finally:
            # A periodic entry stays armed even when its callback raises.
            if entry.interval is not None and not entry.handle.cancelled:
                entry.count += 1
                entry.deadline = entry.origin + entry.count * entry.interval
                entry.seq = next(self._seq)
                self._push(entry)

    def _before_fire(self, deadline: float) -> None:
        """Hook run just before a callback scheduled for *deadline* fires."""


class VirtualClock(Clock):
    """Simulated clock for tests; time moves only through :meth:`advance`."""

    def __init__(self, start: float = 0.0) -> None:
        super().__init__()
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every callback that falls due on the way."""
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        target = self._now + seconds
        while True:
            deadline = self._next_deadline()
            if deadline is None or deadline > target:
                break
            self._fire_next()
        self._now = target

    def _before_fire(self, deadline: float) -> None:
        self._now = max(self._now, deadline)


class RealtimeClock(Clock):
    """Wall-clock driven loop based on ``time.monotonic()``."""

    def now(self) -> float:
        return time.monotonic()

    def run_until(self, done: Callable[[], bool]) -> None:
        """Sleep between deadlines and fire callbacks until *done()* is true
        or nothing is left to run."""
        while not done():
            deadline = self._next_deadline()
            if deadline is None:
                logger.debug("Clock idle; nothing left to run")
                return
            delay = deadline - self.now()
            if delay > 0:
                time.sleep(delay)
            self._fire_next()
