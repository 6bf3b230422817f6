"""Water interpolation: how much water should be in the brewer right now."""

from __future__ import annotations

from pourover.core.stages import Timeline, total_duration


def active_stage_index(timeline: Timeline, elapsed: float) -> int:
    """Return the index of the sub-stage containing *elapsed*.

    Once the schedule is over the last sub-stage stays active.  Returns -1
    for an empty timeline.
    """
    if timeline and elapsed < timeline[0].start_time:
        return 0
    for index, sub in enumerate(timeline):
        if sub.start_time <= elapsed < sub.end_time:
            return index
    return len(timeline) - 1


def _water_before(timeline: Timeline, index: int) -> float:
    # A wait holds its own stage target, so the preceding sub-stage of either
    # kind gives the level a pour starts from.
    return timeline[index - 1].target_water_amount if index > 0 else 0.0


def water_at(timeline: Timeline, elapsed: float) -> float:
    """Return the cumulative water (in the recipe's unit) poured at *elapsed*.

    During a pour the amount rises linearly from the level held by the
    preceding sub-stage to this pour's target.  During a wait it holds at
    the stage's target.
    """
    if not timeline:
        return 0.0
    if elapsed >= total_duration(timeline):
        return timeline[-1].target_water_amount

    index = active_stage_index(timeline, elapsed)
    sub = timeline[index]
    if not sub.is_pour:
        return sub.target_water_amount

    start_water = _water_before(timeline, index)
    fraction = (elapsed - sub.start_time) / sub.pour_time
    fraction = min(max(fraction, 0.0), 1.0)
    return start_water + (sub.target_water_amount - start_water) * fraction
