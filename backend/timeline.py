import math

from requirements import CREDITS_PER_SEMESTER, GRADUATION_CREDITS
from schedule import ScheduleState


def estimate_graduation(
    state: ScheduleState,
    credits_per_semester: int = CREDITS_PER_SEMESTER,
) -> dict:
    """
    Rough graduation estimate from scheduled credits.

    Counts forward from the current semester by the number of average-load
    semesters still needed. The projection is None when it falls past the
    last semester in the plan.

    Returns:
        {
          "total_credits": 64,
          "remaining_credits": 64,
          "semesters_needed": 5,
          "projected_semester": "Spring2029" | None,
          "projected_label": "Spring 2029" | None,
        }
    """
    total = state.total_credits()
    remaining = max(0, GRADUATION_CREDITS - total)
    semesters_needed = math.ceil(remaining / credits_per_semester) if remaining > 0 else 0

    projected = None
    current = state.current_slot()
    if current is not None:
        graduation_index = current.sequence_index + semesters_needed
        if graduation_index < len(state.slots):
            projected = state.slots[graduation_index]

    return {
        "total_credits": _plain(total),
        "remaining_credits": _plain(remaining),
        "semesters_needed": semesters_needed,
        "projected_semester": projected.semester_id if projected else None,
        "projected_label": projected.label if projected else None,
    }


def progress_summary(state: ScheduleState) -> dict:
    """Credit progress toward graduation plus the projection above."""
    total = state.total_credits()
    percentage = min(total / GRADUATION_CREDITS * 100, 100) if GRADUATION_CREDITS else 100
    out = estimate_graduation(state)
    out["graduation_credits"] = GRADUATION_CREDITS
    out["percent_complete"] = round(percentage)
    return out


def _plain(value: float):
    return int(value) if float(value).is_integer() else value
