"""
Degree-audit reconciliation.

Merges course history parsed from a third-party degree audit into the plan.
The audit document itself is parsed elsewhere; this module consumes

    {"FA23": [{"code": "HIST 103", "credits": 3, "name": "...",
               "grade": "A", "requirement": "Understanding the Past"}, ...],
     "SP24": [...]}

Semester keys may be audit term codes (FA/WS, SP, SU, WI + 2-digit year) or
internal ids ("Fall2023"). The whole structure may also be wrapped as
{"semesters": {...}, "excluded": ["CS 100", ...]} to carry the document's
own exclusion list.

Reconciliation works on copies. build_reconciliation() never touches the
caller's state or catalog; reconcile_audit() applies the synthesized catalog
entries only after every step has succeeded.
"""

import sys
from dataclasses import dataclass, field

from catalog import Catalog, Course, synthesize_course
from errors import MalformedAuditRecord
from normalizer import normalize_audit_term, normalize_code, split_code
from quotas import count_math_electives
from requirements import (
    CORE_MATH,
    FREE_ELECTIVE_PLACEHOLDERS,
    GRADUATION_CREDITS,
    MATH_ELECTIVE_DEPARTMENTS,
    MATH_ELECTIVE_MIN_NUMBER,
    MATH_ELECTIVE_PLACEHOLDERS,
    MATH_ELECTIVES,
    REQUIRED_STATISTICS,
    TECH_ELECTIVE_DEPARTMENT,
    TECH_ELECTIVE_MAX_NUMBER,
    TECH_ELECTIVE_MIN_NUMBER,
    TECHNICAL_ELECTIVES,
    gen_ed_category_for_label,
    is_withdrawal_grade,
    placeholder_ids,
    placeholders_for_category,
)
from schedule import (
    ScheduleState,
    add_course_to_semester,
    append_next_slot,
    recompute_credits,
    remove_course_from_semester,
)
from semesters import chronological_key, generate_from_observed_semesters


@dataclass
class AuditRecord:
    course_id: str
    semester_id: str
    credits: float
    name: str = ""
    grade: str = ""
    requirement: str = ""
    display_code: str = ""


@dataclass
class AuditResult:
    state: ScheduleState
    synthesized: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    dropped_rows: list = field(default_factory=list)
    dropped_assignments: list = field(default_factory=list)
    placed: list = field(default_factory=list)

    def summary(self) -> dict:
        return {
            "placed": list(self.placed),
            "synthesized": [c.course_id for c in self.synthesized],
            "warnings": list(self.warnings),
            "dropped_rows": list(self.dropped_rows),
            "dropped_assignments": list(self.dropped_assignments),
            "placeholder_map": dict(self.state.placeholder_map),
        }


def _warn(warnings: list, message: str) -> None:
    print(f"[WARN] {message}", file=sys.stderr)
    warnings.append(message)


# ── Input normalization ───────────────────────────────────────────────────────

def normalize_audit_semester(key) -> str:
    """Audit semester key -> internal id. Raises MalformedAuditRecord."""
    sem_id = normalize_audit_term(key)
    if sem_id is None:
        raise MalformedAuditRecord(f"Unrecognized audit term code: {key!r}")
    return sem_id


def _parse_record(row, sem_id: str) -> AuditRecord:
    if not isinstance(row, dict):
        raise MalformedAuditRecord(f"{sem_id}: audit row is not an object: {row!r}")
    raw_code = row.get("code") or row.get("originalDisplayCode")
    course_id = normalize_code(raw_code)
    if course_id is None:
        raise MalformedAuditRecord(f"{sem_id}: audit row has no usable course code: {row!r}")
    try:
        credits = float(row.get("credits"))
    except (TypeError, ValueError) as exc:
        raise MalformedAuditRecord(
            f"{sem_id}: {course_id} has missing or non-numeric credits: {row.get('credits')!r}"
        ) from exc
    if credits < 0:
        raise MalformedAuditRecord(f"{sem_id}: {course_id} has negative credits")
    return AuditRecord(
        course_id=course_id,
        semester_id=sem_id,
        credits=credits,
        name=str(row.get("name") or "").strip(),
        grade=str(row.get("grade") or "").strip(),
        requirement=str(row.get("requirement") or "").strip(),
        display_code=str(row.get("originalDisplayCode") or raw_code or "").strip(),
    )


def _unwrap(parsed) -> tuple[dict, set]:
    """Accept the bare {semester: rows} map or the wrapped form."""
    if not isinstance(parsed, dict):
        raise MalformedAuditRecord("Audit data must be an object keyed by semester")
    if isinstance(parsed.get("semesters"), dict):
        excluded = {
            normalize_code(c) or str(c).strip().upper()
            for c in parsed.get("excluded", []) or []
        }
        return parsed["semesters"], excluded
    return parsed, set()


def filter_audit_rows(parsed, excluded_codes=None) -> tuple[list[AuditRecord], list[dict], list[str]]:
    """
    Normalize audit rows and drop the ones that earn no degree credit.

    Returns (records, dropped_rows, warnings). Withdrawn rows and rows the
    document excludes are dropped; malformed rows and unknown term codes are
    skipped with a warning. A course seen in several semesters keeps only
    its latest occurrence.
    """
    by_semester, doc_excluded = _unwrap(parsed)
    excluded = set(doc_excluded)
    for c in excluded_codes or []:
        excluded.add(normalize_code(c) or str(c).strip().upper())

    records: list[AuditRecord] = []
    dropped: list[dict] = []
    warnings: list[str] = []

    for key, rows in by_semester.items():
        try:
            sem_id = normalize_audit_semester(key)
        except MalformedAuditRecord as exc:
            _warn(warnings, exc.message)
            continue
        if not isinstance(rows, list):
            _warn(warnings, f"{sem_id}: expected a list of course rows")
            continue
        for row in rows:
            try:
                record = _parse_record(row, sem_id)
            except MalformedAuditRecord as exc:
                _warn(warnings, exc.message)
                continue
            if is_withdrawal_grade(record.grade):
                dropped.append({"course_id": record.course_id, "semester_id": sem_id, "why": "withdrawn"})
                continue
            if record.course_id in excluded or bool(row.get("excluded")):
                dropped.append({"course_id": record.course_id, "semester_id": sem_id, "why": "excluded"})
                continue
            records.append(record)

    records.sort(key=lambda r: chronological_key(r.semester_id))
    latest: dict[str, AuditRecord] = {}
    for record in records:
        if record.course_id in latest:
            _warn(
                warnings,
                f"{record.course_id} appears in {latest[record.course_id].semester_id} and "
                f"{record.semester_id}; keeping {record.semester_id}",
            )
        latest[record.course_id] = record
    kept = [r for r in records if latest[r.course_id] is r]
    return kept, dropped, warnings


# ── Classification ────────────────────────────────────────────────────────────

def _is_tech_elective_code(course_id: str) -> bool:
    parts = split_code(course_id)
    if parts is None:
        return False
    dept, number = parts
    return dept == TECH_ELECTIVE_DEPARTMENT and TECH_ELECTIVE_MIN_NUMBER <= number <= TECH_ELECTIVE_MAX_NUMBER


def _looks_like_math_elective(record: AuditRecord) -> bool:
    label = record.requirement.lower()
    if "math" in label and "elective" in label:
        return True
    parts = split_code(record.course_id)
    if parts is None:
        return False
    dept, number = parts
    return dept in MATH_ELECTIVE_DEPARTMENTS and number >= MATH_ELECTIVE_MIN_NUMBER


def _category_from_label(label: str) -> str:
    raw = label.lower()
    if gen_ed_category_for_label(label) is not None or "general education" in raw:
        return "general"
    if "math" in raw:
        return "math"
    if "science" in raw and "computer" not in raw:
        return "science"
    return "elective"


def _resolve(record: AuditRecord, working: Catalog, warnings: list) -> Course | None:
    course = working.get(record.course_id)
    if course is not None:
        return course
    if _is_tech_elective_code(record.course_id):
        course = synthesize_course(record.course_id, record.name, record.credits, "elective")
    elif record.name:
        course = synthesize_course(
            record.course_id, record.name, record.credits, _category_from_label(record.requirement)
        )
    else:
        _warn(warnings, f"{record.semester_id}: {record.course_id} is not in the catalog and has no name; skipped")
        return None
    working.add_synthesized(course)
    return course


# ── Reconciliation ────────────────────────────────────────────────────────────

def _rebuild_slots(records: list[AuditRecord], prior: ScheduleState, result: AuditResult) -> ScheduleState:
    observed = {r.semester_id for r in records}
    slots = generate_from_observed_semesters(observed)
    surviving = {s.semester_id for s in slots}

    for slot in slots:
        old = prior.get_slot(slot.semester_id)
        if old is not None:
            slot.courses = list(old.courses)
    for old in prior.slots:
        if old.semester_id not in surviving:
            for course_id in old.courses:
                result.dropped_assignments.append({"course_id": course_id, "semester_id": old.semester_id})

    earliest = slots[0]
    return ScheduleState(
        slots,
        start_semester={
            "term": earliest.term,
            "year": earliest.year,
            "include_summer": any(s.term == "Summer" for s in slots),
            "from_audit": True,
        },
        discovered_math_electives=prior.discovered_math_electives,
        discovered_tech_electives=prior.discovered_tech_electives,
        placeholder_map=prior.placeholder_map,
        transfer_credits=prior.transfer_credits,
        profile=prior.profile,
    )


def _merge_discovered(state: ScheduleState, placed: list[tuple[AuditRecord, Course]]) -> None:
    placeholders = placeholder_ids()
    for record, course in placed:
        cid = course.course_id
        if cid in placeholders:
            continue
        if (
            cid not in MATH_ELECTIVES
            and cid not in REQUIRED_STATISTICS
            and cid not in CORE_MATH
            and course.category != "core"
            and _looks_like_math_elective(record)
            and cid not in state.discovered_math_electives
        ):
            state.discovered_math_electives.append(cid)
        if (
            _is_tech_elective_code(cid)
            and course.category != "core"
            and cid not in TECHNICAL_ELECTIVES
            and cid not in state.discovered_tech_electives
        ):
            state.discovered_tech_electives.append(cid)


def _map_gen_eds(state: ScheduleState, placed: list, working: Catalog) -> set[str]:
    """Map real courses onto gen-ed placeholders. Returns the mapped course ids."""
    mapped_courses: set[str] = set()
    mapped_here: set[str] = set()
    for record, course in placed:
        category = gen_ed_category_for_label(record.requirement)
        if category is None or course.course_id in placeholder_ids():
            continue
        free = [p for p in placeholders_for_category(category) if p not in mapped_here]
        if not free:
            continue
        placeholder = free[0]
        mapped_here.add(placeholder)
        mapped_courses.add(course.course_id)
        state.placeholder_map[placeholder] = course.course_id
        remove_course_from_semester(state, placeholder, working)
        add_course_to_semester(state, course.course_id, record.semester_id, working)
    return mapped_courses


def _drop_unused_placeholders(state: ScheduleState, placed: list, gen_ed_courses: set, working: Catalog) -> None:
    placeholders = placeholder_ids()
    free_courses = []
    for record, course in placed:
        cid = course.course_id
        if cid in placeholders or cid in gen_ed_courses:
            continue
        if "free elective" in record.requirement.lower():
            free_courses.append(cid)
        elif (
            course.synthesized
            and course.category in ("elective", "general")
            and cid not in state.discovered_tech_electives
            and cid not in state.discovered_math_electives
        ):
            free_courses.append(cid)

    free_slots = [p for p in FREE_ELECTIVE_PLACEHOLDERS if p not in state.placeholder_map]
    for placeholder, cid in zip(free_slots, free_courses):
        state.placeholder_map[placeholder] = cid
        remove_course_from_semester(state, placeholder, working)

    # One math placeholder retires per real math elective in the plan.
    real_math = count_math_electives(state)
    for placeholder in MATH_ELECTIVE_PLACEHOLDERS[:real_math]:
        remove_course_from_semester(state, placeholder, working)


def _mark_statuses(state: ScheduleState, result: AuditResult) -> None:
    last_with_courses = -1
    for slot in state.slots:
        if slot.courses:
            last_with_courses = slot.sequence_index
    for slot in state.slots:
        slot.status = "completed" if slot.sequence_index <= last_with_courses else "planned"

    nxt = last_with_courses + 1
    if nxt < len(state.slots):
        state.slots[nxt].status = "current"
        return
    if state.total_credits() < GRADUATION_CREDITS:
        added = append_next_slot(state)
        if added is not None:
            added.status = "current"
            return
        _warn(result.warnings, "Could not add a semester after the audit history")
    if state.slots:
        state.slots[-1].status = "current"


def build_reconciliation(parsed, state: ScheduleState, catalog: Catalog, excluded_codes=None) -> AuditResult:
    """
    Reconcile an audit against a plan without touching either input.

    Returns an AuditResult whose .state is the reconciled plan and whose
    .synthesized lists catalog entries the caller must add to the overlay.
    """
    records, dropped, warnings = filter_audit_rows(parsed, excluded_codes)
    if not records:
        result = AuditResult(state=state.copy(), dropped_rows=dropped, warnings=warnings)
        _warn(result.warnings, "Audit contained no usable course records; plan unchanged")
        return result

    working = catalog.fork()
    prior = state.copy()
    result = AuditResult(state=prior, dropped_rows=dropped, warnings=warnings)
    new_state = _rebuild_slots(records, prior, result)
    result.state = new_state

    placed: list[tuple[AuditRecord, Course]] = []
    for record in records:
        course = _resolve(record, working, result.warnings)
        if course is None:
            continue
        add_course_to_semester(new_state, course.course_id, record.semester_id, working)
        placed.append((record, course))
        result.placed.append({"course_id": course.course_id, "semester_id": record.semester_id})

    _merge_discovered(new_state, placed)
    gen_ed_courses = _map_gen_eds(new_state, placed, working)
    _drop_unused_placeholders(new_state, placed, gen_ed_courses, working)
    recompute_credits(new_state, working)
    _mark_statuses(new_state, result)

    before = catalog.overlay()
    result.synthesized = [
        c for cid, c in working.overlay().items() if cid not in before
    ]
    return result


def reconcile_audit(parsed, state: ScheduleState, catalog: Catalog, excluded_codes=None) -> ScheduleState:
    """
    Reconcile and commit synthesized catalog entries. Returns the new plan.

    The input state object is left as it was; callers replace their plan
    with the returned one.
    """
    result = build_reconciliation(parsed, state, catalog, excluded_codes)
    catalog.apply_overlay(result.synthesized)
    return result.state

