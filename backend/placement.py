"""
Placement validation.

validate_placement() decides whether a course may occupy a semester slot.
It is a pure function of (course, semester, schedule, catalog): nothing is
mutated, and the same inputs always give the same answer. Rules run in a
fixed order and the first failure wins:

  1. course and semester exist
  2. the semester is not completed
  3. elective quotas (math incl. required statistics, science, technical)
  4. prerequisites sit in a strictly earlier semester
  5. concurrent prerequisites, when scheduled, sit in the same or an earlier one
  6. courses that depend on this one stay correctly ordered after a move

Ordering compares Slot.sequence_index only; dates are never compared.
"""

from catalog import Catalog, Course
from errors import NotFoundError, ValidationRejection
from quotas import (
    count_math_electives,
    count_science_electives,
    count_technical_electives,
    is_math_elective,
    is_required_statistics,
    is_science_elective,
    is_technical_elective,
)
from requirements import (
    MATH_ELECTIVE_CAP,
    REQUIRED_STATISTICS,
    SCIENCE_ELECTIVE_CAP,
    TECHNICAL_ELECTIVE_CAP,
)
from schedule import ScheduleState
from semesters import Slot
from unlocks import build_reverse_prereq_map


def _result(accepted: bool, course_id: str, semester_id: str, **extra) -> dict:
    out = {
        "accepted": accepted,
        "course_id": course_id,
        "semester_id": semester_id,
        "reason": None,
        "message": None,
        "rule": None,
    }
    out.update(extra)
    return out


def _codes(catalog: Catalog, course_ids) -> str:
    return ", ".join(catalog.display(c) for c in course_ids)


# ── Individual rules ──────────────────────────────────────────────────────────

def _check_exists(course_id: str, semester_id: str, state: ScheduleState, catalog: Catalog) -> tuple[Course, Slot]:
    course = catalog.get(course_id)
    if course is None:
        raise NotFoundError("course", course_id)
    slot = state.get_slot(semester_id)
    if slot is None:
        raise NotFoundError("semester", semester_id)
    return course, slot


def _check_not_completed(slot: Slot) -> None:
    if slot.status == "completed":
        raise ValidationRejection(
            f"Cannot modify completed semesters ({slot.label} is completed).",
            rule="completed_semester",
        )


def _check_quotas(course: Course, state: ScheduleState, catalog: Catalog) -> None:
    course_id = course.course_id
    # A course already in the plan is being moved, not added.
    exclude = course_id if state.is_scheduled(course_id) else None

    if is_math_elective(course_id, state) or is_required_statistics(course_id):
        count = count_math_electives(state, exclude)
        if count >= MATH_ELECTIVE_CAP:
            raise ValidationRejection(
                f"You have already selected {count} math elective courses "
                f"(including required statistics). Maximum allowed: "
                f"{MATH_ELECTIVE_CAP} courses total.",
                rule="math_elective_cap",
            )

    if is_required_statistics(course_id):
        others = [
            c for c in REQUIRED_STATISTICS
            if c != course_id and state.is_scheduled(c)
        ]
        if others:
            raise ValidationRejection(
                f"You must take only ONE of {' or '.join(catalog.display(c) for c in REQUIRED_STATISTICS)}. "
                f"You have already selected {_codes(catalog, others)}.",
                rule="required_statistics",
            )

    if is_science_elective(course_id):
        count = count_science_electives(state, exclude)
        if count >= SCIENCE_ELECTIVE_CAP:
            raise ValidationRejection(
                f"You have already selected {count} science elective courses. "
                f"Maximum allowed: {SCIENCE_ELECTIVE_CAP} courses total.",
                rule="science_elective_cap",
            )

    if is_technical_elective(course_id, state):
        count = count_technical_electives(state, exclude)
        if count >= TECHNICAL_ELECTIVE_CAP:
            raise ValidationRejection(
                f"You have already selected {count} CS elective courses. "
                f"Maximum allowed: {TECHNICAL_ELECTIVE_CAP} courses total.",
                rule="technical_elective_cap",
            )


def missing_prerequisites(course: Course, target_index: int, state: ScheduleState) -> list[str]:
    """Prerequisites not scheduled strictly before target_index (unscheduled counts as missing)."""
    missing = []
    for prereq in course.prerequisites:
        prereq_index = state.course_index(prereq)
        if prereq_index is None or prereq_index >= target_index:
            missing.append(prereq)
    return missing


def late_concurrent_prerequisites(course: Course, target_index: int, state: ScheduleState) -> list[str]:
    """Concurrent prerequisites scheduled after target_index. Unscheduled ones are fine."""
    late = []
    for prereq in course.concurrent_prerequisites:
        prereq_index = state.course_index(prereq)
        if prereq_index is not None and prereq_index > target_index:
            late.append(prereq)
    return late


def _check_prerequisites(course: Course, slot: Slot, state: ScheduleState, catalog: Catalog) -> None:
    missing = missing_prerequisites(course, slot.sequence_index, state)
    if missing:
        raise ValidationRejection(
            f"{course.code} requires {_codes(catalog, missing)} to be completed first",
            rule="prerequisite",
        )

    late = late_concurrent_prerequisites(course, slot.sequence_index, state)
    if late:
        raise ValidationRejection(
            f"{course.code} requires {_codes(catalog, late)} to be taken concurrently "
            f"(same semester) or completed first",
            rule="concurrent_prerequisite",
        )


def _check_dependents(course: Course, slot: Slot, state: ScheduleState, catalog: Catalog) -> None:
    reverse_map = build_reverse_prereq_map(catalog)
    for dependent in reverse_map.get(course.course_id, []):
        dependent_id = dependent["course_id"]
        dependent_sem = state.find_course_semester(dependent_id)
        if dependent_sem is None:
            continue
        dependent_slot = state.get_slot(dependent_sem)
        dependent_code = catalog.display(dependent_id)

        if dependent["concurrent"]:
            if dependent_slot.sequence_index < slot.sequence_index:
                raise ValidationRejection(
                    f"{dependent_code} requires {course.code} to be taken concurrently "
                    f"(same semester) or completed first, but {dependent_code} is "
                    f"scheduled in {dependent_slot.label}",
                    rule="dependent_order",
                )
        elif dependent_slot.sequence_index <= slot.sequence_index:
            raise ValidationRejection(
                f"{dependent_code} requires {course.code} to be completed first, "
                f"but {dependent_code} is scheduled in {dependent_slot.label}",
                rule="dependent_order",
            )


# ── Public API ────────────────────────────────────────────────────────────────

def validate_placement(
    course_id: str,
    semester_id: str,
    state: ScheduleState,
    catalog: Catalog,
) -> dict:
    """
    Returns a placement decision for one course and one semester.

    Returns:
    {
      "accepted": True | False,
      "course_id": "CS251",
      "semester_id": "Fall2026",
      "reason": str | None,     # why it was rejected, names the broken rule
      "message": str | None,    # confirmation on acceptance
      "rule": str | None,       # machine-readable rule name on rejection
    }
    """
    try:
        course, slot = _check_exists(course_id, semester_id, state, catalog)
        _check_not_completed(slot)
        _check_quotas(course, state, catalog)
        _check_prerequisites(course, slot, state, catalog)
        _check_dependents(course, slot, state, catalog)
    except NotFoundError as exc:
        return _result(False, course_id, semester_id, reason=exc.message, rule="not_found")
    except ValidationRejection as exc:
        return _result(False, course_id, semester_id, reason=exc.reason, rule=exc.rule)

    return _result(
        True,
        course_id,
        semester_id,
        message=f"{course.code} added to {slot.label}",
    )


def find_ordering_violations(state: ScheduleState, catalog: Catalog) -> list[dict]:
    """
    Scan the whole plan for prerequisite ordering problems.

    Each item:
      {"course_id": str, "semester_id": str, "missing_prereqs": [str], "late_concurrent": [str]}

    Unknown course ids in the plan are skipped.
    """
    issues: list[dict] = []
    for slot in state.slots:
        for course_id in slot.courses:
            course = catalog.get(course_id)
            if course is None:
                continue
            missing = missing_prerequisites(course, slot.sequence_index, state)
            late = late_concurrent_prerequisites(course, slot.sequence_index, state)
            if missing or late:
                issues.append({
                    "course_id": course_id,
                    "semester_id": slot.semester_id,
                    "missing_prereqs": missing,
                    "late_concurrent": late,
                })
    return issues
