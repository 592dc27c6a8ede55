"""
Elective quota tracking.

Counts are never stored; every function walks the scheduled courses of a
ScheduleState. exclude_id drops one course from a count, which answers
"what would the count be without this course" when validating a move.
"""

from catalog import Catalog
from requirements import (
    FREE_ELECTIVE_PLACEHOLDERS,
    GEN_ED_PLACEHOLDERS,
    GRADUATION_CREDITS,
    MATH_ELECTIVE_CAP,
    MATH_ELECTIVES,
    REQUIRED_STATISTICS,
    SCIENCE_ELECTIVE_CAP,
    SCIENCE_ELECTIVES,
    TECHNICAL_ELECTIVE_CAP,
    TECHNICAL_ELECTIVES,
)
from schedule import ScheduleState


def math_elective_ids(state: ScheduleState) -> list[str]:
    """Fixed math electives plus any discovered through audit import."""
    return list(dict.fromkeys(list(MATH_ELECTIVES) + state.discovered_math_electives))


def technical_elective_ids(state: ScheduleState) -> list[str]:
    return list(dict.fromkeys(list(TECHNICAL_ELECTIVES) + state.discovered_tech_electives))


def is_math_elective(course_id: str, state: ScheduleState) -> bool:
    return course_id in MATH_ELECTIVES or course_id in state.discovered_math_electives


def is_required_statistics(course_id: str) -> bool:
    return course_id in REQUIRED_STATISTICS


def is_science_elective(course_id: str) -> bool:
    return course_id in SCIENCE_ELECTIVES


def is_technical_elective(course_id: str, state: ScheduleState) -> bool:
    return course_id in TECHNICAL_ELECTIVES or course_id in state.discovered_tech_electives


def _count_members(state: ScheduleState, members, exclude_id: str | None) -> int:
    member_set = set(members)
    count = 0
    for course_id in state.scheduled_course_ids():
        if exclude_id and course_id == exclude_id:
            continue
        if course_id in member_set:
            count += 1
    return count


def count_math_electives(state: ScheduleState, exclude_id: str | None = None) -> int:
    """Math electives plus required statistics; both share the 3-course cap."""
    return _count_members(
        state,
        math_elective_ids(state) + list(REQUIRED_STATISTICS),
        exclude_id,
    )


def count_science_electives(state: ScheduleState, exclude_id: str | None = None) -> int:
    return _count_members(state, SCIENCE_ELECTIVES, exclude_id)


def count_technical_electives(state: ScheduleState, exclude_id: str | None = None) -> int:
    return _count_members(state, technical_elective_ids(state), exclude_id)


def has_required_statistics(state: ScheduleState) -> bool:
    scheduled = set(state.scheduled_course_ids())
    return any(c in scheduled for c in REQUIRED_STATISTICS)


def scheduled_required_statistics(state: ScheduleState) -> list[str]:
    scheduled = set(state.scheduled_course_ids())
    return [c for c in REQUIRED_STATISTICS if c in scheduled]


def total_math_elective_credits(
    state: ScheduleState,
    catalog: Catalog,
    exclude_id: str | None = None,
) -> float:
    """Credits of scheduled math electives (required statistics not included)."""
    members = set(math_elective_ids(state))
    total = 0.0
    for course_id in state.scheduled_course_ids():
        if exclude_id and course_id == exclude_id:
            continue
        if course_id in members:
            total += catalog.credits_of(course_id)
    return total


def quota_summary(state: ScheduleState) -> dict:
    """
    Returns:
      {
        "math":      {"count": 2, "cap": 3},
        "science":   {"count": 0, "cap": 2},
        "technical": {"count": 4, "cap": 6},
        "required_statistics": ["STAT381"],
      }
    """
    return {
        "math": {"count": count_math_electives(state), "cap": MATH_ELECTIVE_CAP},
        "science": {"count": count_science_electives(state), "cap": SCIENCE_ELECTIVE_CAP},
        "technical": {"count": count_technical_electives(state), "cap": TECHNICAL_ELECTIVE_CAP},
        "required_statistics": scheduled_required_statistics(state),
    }


def gen_ed_placeholder_satisfied(placeholder_id: str, state: ScheduleState) -> bool:
    """A gen-ed placeholder is satisfied once a real course is mapped onto it."""
    real = state.placeholder_map.get(placeholder_id)
    return bool(real) and state.is_scheduled(real)


def should_hide_from_browser(course_id: str, state: ScheduleState, catalog: Catalog) -> bool:
    """
    True when listing the course as unscheduled would mislead: its elective
    cap is met, it is the other required statistics course, it is a gen-ed
    placeholder already satisfied, or it is a free-elective placeholder that
    is already scheduled or no longer needed.
    """
    if catalog.get(course_id) is None:
        return False

    if is_math_elective(course_id, state) or is_required_statistics(course_id):
        if count_math_electives(state) >= MATH_ELECTIVE_CAP:
            return True

    if is_required_statistics(course_id):
        scheduled = set(state.scheduled_course_ids())
        if any(c in scheduled for c in REQUIRED_STATISTICS if c != course_id):
            return True

    if is_science_elective(course_id):
        if count_science_electives(state) >= SCIENCE_ELECTIVE_CAP:
            return True

    if is_technical_elective(course_id, state):
        if count_technical_electives(state) >= TECHNICAL_ELECTIVE_CAP:
            return True

    if course_id in GEN_ED_PLACEHOLDERS and gen_ed_placeholder_satisfied(course_id, state):
        return True

    if course_id in FREE_ELECTIVE_PLACEHOLDERS:
        if state.total_credits() >= GRADUATION_CREDITS:
            return True
        if state.is_scheduled(course_id):
            return True

    return False
