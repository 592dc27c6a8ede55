"""
Schedule state: the ordered semester slots and the profile data that travels
with them. All placement mutations go through the helpers here so the
exclusivity invariant (a course sits in at most one slot) and the running
credit totals stay correct.
"""

import copy as _copy
import sys

from catalog import Catalog
from errors import StateCorruption
from requirements import (
    DEFAULT_CURRENT_SEMESTER,
    DEFAULT_START_TERM,
    DEFAULT_START_YEAR,
    MAX_APPEND_ATTEMPTS,
    TERMS,
)
from semesters import Slot, generate_semesters, next_semester, semester_id


class ScheduleState:
    """The live plan owned by one planning session."""

    def __init__(
        self,
        slots: list[Slot],
        start_semester: dict | None = None,
        discovered_math_electives: list[str] | None = None,
        discovered_tech_electives: list[str] | None = None,
        placeholder_map: dict[str, str] | None = None,
        transfer_credits: list[dict] | None = None,
        profile: dict | None = None,
    ):
        self.slots: list[Slot] = list(slots)
        self.start_semester = dict(start_semester or {
            "term": DEFAULT_START_TERM,
            "year": DEFAULT_START_YEAR,
            "include_summer": False,
            "from_audit": False,
        })
        self.discovered_math_electives = list(discovered_math_electives or [])
        self.discovered_tech_electives = list(discovered_tech_electives or [])
        self.placeholder_map = dict(placeholder_map or {})
        self.transfer_credits = list(transfer_credits or [])
        self.profile = dict(profile or {})
        self.reindex()

    # ── Lookups ────────────────────────────────────────────────────────────
    def reindex(self) -> None:
        """Sort by sequence_index and renumber 0..n-1."""
        self.slots.sort(key=lambda s: s.sequence_index)
        for i, slot in enumerate(self.slots):
            slot.sequence_index = i

    def get_slot(self, sem_id: str) -> Slot | None:
        for slot in self.slots:
            if slot.semester_id == sem_id:
                return slot
        return None

    def index_of(self, sem_id: str) -> int | None:
        slot = self.get_slot(sem_id)
        return slot.sequence_index if slot is not None else None

    def semester_ids(self) -> list[str]:
        return [s.semester_id for s in self.slots]

    def find_course_semester(self, course_id: str) -> str | None:
        for slot in self.slots:
            if course_id in slot.courses:
                return slot.semester_id
        return None

    def course_index(self, course_id: str) -> int | None:
        sem_id = self.find_course_semester(course_id)
        return self.index_of(sem_id) if sem_id is not None else None

    def scheduled_course_ids(self) -> list[str]:
        return [c for slot in self.slots for c in slot.courses]

    def is_scheduled(self, course_id: str) -> bool:
        return self.find_course_semester(course_id) is not None

    def total_credits(self) -> float:
        return sum(slot.credits for slot in self.slots)

    def current_slot(self) -> Slot | None:
        for slot in self.slots:
            if slot.status == "current":
                return slot
        return None

    def last_slot(self) -> Slot | None:
        return self.slots[-1] if self.slots else None

    def has_summer(self) -> bool:
        return any(slot.term == "Summer" for slot in self.slots)

    def copy(self) -> "ScheduleState":
        return _copy.deepcopy(self)

    # ── Serialization ──────────────────────────────────────────────────────
    def to_dict(self) -> dict:
        current = self.current_slot()
        return {
            **self.profile,
            "currentSemester": current.semester_id if current else None,
            "startSemester": dict(self.start_semester),
            "semesters": [slot.to_dict() for slot in self.slots],
            "discoveredMathElectives": list(self.discovered_math_electives),
            "discoveredTechElectives": list(self.discovered_tech_electives),
            "placeholderMap": dict(self.placeholder_map),
            "transferCredits": [dict(t) for t in self.transfer_credits],
            "totalCredits": _plain_number(self.total_credits()),
        }

    @classmethod
    def from_dict(cls, raw) -> "ScheduleState":
        """
        Rebuild a state from its persisted form.

        Raises StateCorruption when the blob's structure cannot be trusted:
        missing semesters, a bad slot record, duplicate slot ids, or (for a
        plan not built from an audit) fewer slots than its start semester
        generates.
        """
        if not isinstance(raw, dict):
            raise StateCorruption("saved plan is not an object")
        records = raw.get("semesters")
        if not isinstance(records, list) or not records:
            raise StateCorruption("saved plan has no semesters")

        slots = []
        for i, record in enumerate(records):
            try:
                slots.append(Slot.from_dict(record, i))
            except ValueError as exc:
                raise StateCorruption(f"bad semester record: {exc}") from exc
        ids = [s.semester_id for s in slots]
        if len(set(ids)) != len(ids):
            raise StateCorruption("saved plan has duplicate semester ids")
        courses = [c for s in slots for c in s.courses]
        if len(set(courses)) != len(courses):
            raise StateCorruption("saved plan has a course in more than one semester")
        if sum(1 for s in slots if s.status == "current") > 1:
            raise StateCorruption("saved plan has more than one current semester")

        start = parse_start_semester(raw.get("startSemester"))
        if not start["from_audit"]:
            expected = 12 if start["include_summer"] else 8
            if len(slots) < expected:
                raise StateCorruption(
                    f"saved plan has {len(slots)} semesters, expected at least {expected}"
                )

        return cls(
            slots,
            start_semester=start,
            profile={k: raw[k] for k in PROFILE_FIELDS if k in raw},
            **auxiliary_fields(raw),
        )


PROFILE_FIELDS = ("userId", "year", "major")


def _plain_number(value: float):
    return int(value) if float(value).is_integer() else value


def _str_list(raw) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(x) for x in raw]


def _str_dict(raw) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): str(v) for k, v in raw.items()}


def auxiliary_fields(raw: dict) -> dict:
    """
    Audit-derived lists, placeholder map and transfer credits from a saved
    blob, as ScheduleState keyword arguments. Wrong-typed values read as empty.
    """
    transfers = raw.get("transferCredits")
    return {
        "discovered_math_electives": _str_list(raw.get("discoveredMathElectives")),
        "discovered_tech_electives": _str_list(raw.get("discoveredTechElectives")),
        "placeholder_map": _str_dict(raw.get("placeholderMap")),
        "transfer_credits": [
            dict(t) for t in transfers if isinstance(t, dict)
        ] if isinstance(transfers, list) else [],
    }


def parse_start_semester(raw) -> dict:
    """Persisted startSemester -> {term, year, include_summer, from_audit}, with defaults."""
    raw = raw if isinstance(raw, dict) else {}
    term = raw.get("term") if raw.get("term") in TERMS else DEFAULT_START_TERM
    try:
        year = int(raw.get("year", DEFAULT_START_YEAR))
    except (TypeError, ValueError):
        year = DEFAULT_START_YEAR
    return {
        "term": term,
        "year": year,
        "include_summer": bool(raw.get("include_summer", False)),
        "from_audit": bool(raw.get("from_audit", False)),
    }


def default_profile() -> dict:
    return {
        "userId": "aisha_rahman",
        "year": "Freshman",
        "major": "Computer Science",
    }


def default_state() -> ScheduleState:
    """Fresh 8-semester plan starting Fall 2025 with Spring 2026 current."""
    slots = generate_semesters(DEFAULT_START_YEAR, DEFAULT_START_TERM, False)
    for slot in slots:
        slot.status = "current" if slot.semester_id == DEFAULT_CURRENT_SEMESTER else "planned"
    return ScheduleState(slots, profile=default_profile())


# ── Course placement ──────────────────────────────────────────────────────────

def remove_course_from_semester(state: ScheduleState, course_id: str, catalog: Catalog) -> str | None:
    """Remove a course from whichever slot holds it. Returns that slot's id."""
    removed_from = None
    for slot in state.slots:
        if course_id in slot.courses:
            slot.courses.remove(course_id)
            slot.credits = max(0, slot.credits - catalog.credits_of(course_id))
            removed_from = slot.semester_id
    return removed_from


def add_course_to_semester(state: ScheduleState, course_id: str, sem_id: str, catalog: Catalog) -> bool:
    """
    Place a course in a slot, moving it out of any slot that already holds it.

    Does not validate; callers run placement validation first.
    """
    target = state.get_slot(sem_id)
    if target is None:
        return False
    remove_course_from_semester(state, course_id, catalog)
    if course_id not in target.courses:
        target.courses.append(course_id)
        target.credits += catalog.credits_of(course_id)
    return True


def recompute_credits(state: ScheduleState, catalog: Catalog) -> None:
    """Rebuild every slot's credit total from the catalog."""
    for slot in state.slots:
        slot.credits = sum(catalog.credits_of(c) for c in slot.courses)


# ── Adding and removing semesters ─────────────────────────────────────────────

def _infer_include_summer(state: ScheduleState) -> bool:
    """
    Summer is part of the cycle when a Summer slot already follows a Spring
    slot somewhere in the plan.
    """
    for prev, slot in zip(state.slots, state.slots[1:]):
        if slot.term == "Summer" and prev.term == "Spring":
            return True
    return False


def append_next_slot(state: ScheduleState) -> Slot | None:
    """
    Append the semester after the last slot in sequence order.

    Tries up to MAX_APPEND_ATTEMPTS successors, skipping ids already in the
    plan. Returns None when every candidate is taken.
    """
    last = state.last_slot()
    if last is None:
        slot = generate_semesters(DEFAULT_START_YEAR, DEFAULT_START_TERM, False)[0]
        state.slots.append(slot)
        state.reindex()
        return slot

    include_summer = _infer_include_summer(state)
    existing = set(state.semester_ids())
    term, year = last.term, last.year
    for _ in range(MAX_APPEND_ATTEMPTS):
        term, year = next_semester(term, year, include_summer)
        candidate = semester_id(term, year)
        if candidate in existing:
            continue
        slot = Slot(
            semester_id=candidate,
            term=term,
            year=year,
            status="planned",
            sequence_index=last.sequence_index + 1,
        )
        state.slots.append(slot)
        state.reindex()
        return slot

    print(
        f"[WARN] No free semester after {last.semester_id} "
        f"within {MAX_APPEND_ATTEMPTS} attempts.",
        file=sys.stderr,
    )
    return None


def remove_slot(state: ScheduleState, sem_id: str) -> Slot | None:
    """
    Delete a semester. Courses in it are dropped with it.

    If it was the current semester, the first planned slot becomes current,
    or the last slot when none is planned.
    """
    slot = state.get_slot(sem_id)
    if slot is None:
        return None
    state.slots.remove(slot)
    state.reindex()
    if slot.status == "current" and state.slots:
        replacement = next((s for s in state.slots if s.status == "planned"), state.slots[-1])
        replacement.status = "current"
    return slot
