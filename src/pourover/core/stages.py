"""Stage expansion: turns recipe stages into a timeline of pour and wait sub-stages."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from pourover.core.recipe import (
    EmptyRecipe,
    InvalidPourTime,
    InvalidStageOrder,
    Stage,
    parse_amount,
)


class StageKind(Enum):
    """What the brewer is doing during a sub-stage."""

    POUR = "pour"
    WAIT = "wait"


@dataclass(frozen=True)
class ExpandedStage:
    """A pour or wait interval ``[start_time, end_time)`` on the brew timeline."""

    kind: StageKind
    label: str
    start_time: int
    end_time: int
    pour_time: int
    target_water: str
    detail: str
    source_stage_index: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    @property
    def is_pour(self) -> bool:
        return self.kind is StageKind.POUR

    @property
    def target_water_amount(self) -> float:
        return parse_amount(self.target_water)


Timeline = Sequence[ExpandedStage]


def default_pour_time(segment_seconds: int) -> int:
    """Return the pour duration used when a stage does not specify one.

    The first third of every stage is spent pouring, the rest waiting for
    the bed to drain.
    """
    return segment_seconds // 3


def _pour_time_for(stage: Stage, index: int, segment: int) -> int:
    if stage.pour_time is None:
        return default_pour_time(segment)
    if not 0 <= stage.pour_time <= segment:
        raise InvalidPourTime(
            f"stage {index + 1} pour time {stage.pour_time}s does not fit in its {segment}s segment"
        )
    return stage.pour_time


def expand(stages: Sequence[Stage]) -> tuple[ExpandedStage, ...]:
    """Expand *stages* into consecutive pour and wait sub-stages.

    Each stage becomes a pour sub-stage followed, when time remains, by a
    wait sub-stage ending at the stage's target time.  A zero-second pour is
    elided; its wait sub-stage then starts the stage.

    Raises :class:`EmptyRecipe` for an empty list and
    :class:`InvalidStageOrder` when target times do not strictly increase.
    """
    if not stages:
        raise EmptyRecipe("recipe has no stages")

    timeline: list[ExpandedStage] = []
    prev_end = 0
    for index, stage in enumerate(stages):
        if stage.target_time <= prev_end:
            raise InvalidStageOrder(
                f"stage {index + 1} ends at {stage.target_time}s, "
                f"which is not after the previous stage ({prev_end}s)"
            )
        segment = stage.target_time - prev_end
        pour_time = _pour_time_for(stage, index, segment)
        pour_end = prev_end + pour_time

        if pour_time > 0:
            timeline.append(
                ExpandedStage(
                    kind=StageKind.POUR,
                    label=stage.label,
                    start_time=prev_end,
                    end_time=pour_end,
                    pour_time=pour_time,
                    target_water=stage.target_water,
                    detail=stage.detail,
                    source_stage_index=index,
                )
            )
        if pour_end < stage.target_time:
            timeline.append(
                ExpandedStage(
                    kind=StageKind.WAIT,
                    label=stage.label,
                    start_time=pour_end,
                    end_time=stage.target_time,
                    pour_time=0,
                    target_water=stage.target_water,
                    detail=stage.detail,
                    source_stage_index=index,
                )
            )
        prev_end = stage.target_time

    return tuple(timeline)


def total_duration(timeline: Timeline) -> int:
    """Return the end time of the last sub-stage (0 for an empty timeline)."""
    return timeline[-1].end_time if timeline else 0
