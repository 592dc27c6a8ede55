from catalog import Catalog, Course
from quotas import should_hide_from_browser
from schedule import ScheduleState
from unlocks import build_reverse_prereq_map, get_direct_unlocks


def can_take_course(course_id: str, state: ScheduleState, catalog: Catalog) -> bool:
    """
    Visual indicator only: every prerequisite is scheduled somewhere in the
    plan. Concurrent prerequisites never block here; placement validation
    checks their position when the course is dropped into a semester.
    """
    course = catalog.get(course_id)
    if course is None:
        return False
    scheduled = set(state.scheduled_course_ids())
    return all(p in scheduled for p in course.prerequisites)


def _matches(course: Course, search: str, category: str) -> bool:
    term = (search or "").strip().lower()
    matches_search = (
        not term
        or term in course.code.lower()
        or term in course.name.lower()
        or term in course.course_id.lower()
    )
    cat = (category or "all").strip().lower()
    matches_category = cat == "all" or course.category == cat
    return matches_search and matches_category


def list_available_courses(
    state: ScheduleState,
    catalog: Catalog,
    search: str = "",
    category: str = "all",
    include_hidden: bool = False,
) -> list[dict]:
    """
    Unscheduled courses for the course browser, in catalog order.

    Each item is the course record plus:
      {"can_take": bool, "hidden": bool, "unlocks": [str]}

    Scheduled courses are never listed. Hidden courses (quota met, satisfied
    placeholder) are dropped unless include_hidden is set.
    """
    scheduled = set(state.scheduled_course_ids())
    reverse_map = build_reverse_prereq_map(catalog)
    out: list[dict] = []
    for course in catalog:
        if course.course_id in scheduled:
            continue
        if not _matches(course, search, category):
            continue
        hidden = should_hide_from_browser(course.course_id, state, catalog)
        if hidden and not include_hidden:
            continue
        row = course.to_dict()
        row["can_take"] = can_take_course(course.course_id, state, catalog)
        row["hidden"] = hidden
        row["unlocks"] = get_direct_unlocks(course.course_id, reverse_map)
        out.append(row)
    return out
