"""Cue evaluation: which sounds and haptics fire at a given tick."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pourover.core.stages import Timeline, total_duration


class CueKind(Enum):
    """Audible/haptic signals emitted while brewing."""

    STAGE_DING = "stage_ding"
    PRE_WARNING = "pre_warning"
    POUR_END_DING = "pour_end_ding"
    COMPLETE = "complete"


@dataclass(frozen=True)
class CueEvent:
    kind: CueKind
    tick: int


PRE_WARNING_OFFSETS = (2, 1)


def cues_at(timeline: Timeline, tick: int) -> frozenset[CueEvent]:
    """Return every cue that fires at *tick* on *timeline*.

    Rules are evaluated independently for each sub-stage, so one tick may
    carry several cues, e.g. the start of one sub-stage together with the
    pour-end ding of the one before it.
    """
    if not timeline:
        return frozenset()

    kinds: set[CueKind] = set()
    for sub in timeline:
        if tick == sub.start_time:
            kinds.add(CueKind.STAGE_DING)
        if any(tick == sub.end_time - offset for offset in PRE_WARNING_OFFSETS):
            kinds.add(CueKind.PRE_WARNING)
        if sub.is_pour and tick == sub.end_time:
            kinds.add(CueKind.POUR_END_DING)

    if tick > total_duration(timeline):
        kinds.add(CueKind.COMPLETE)

    return frozenset(CueEvent(kind, tick) for kind in kinds)


def is_complete(cues: frozenset[CueEvent]) -> bool:
    return any(cue.kind is CueKind.COMPLETE for cue in cues)


def clamp_elapsed(timeline: Timeline, tick: int) -> int:
    """Clamp a visible elapsed time so it never passes the end of the schedule."""
    return min(tick, total_duration(timeline))


_KIND_ORDER = {kind: position for position, kind in enumerate(CueKind)}


def ordered(cues: frozenset[CueEvent]) -> list[CueEvent]:
    """Return *cues* in a stable delivery order (``CueKind`` declaration order)."""
    return sorted(cues, key=lambda cue: (cue.tick, _KIND_ORDER[cue.kind]))
