"""
JSON file store for the plan.

The blob is ScheduleState.to_dict(). Loading never fails: a missing file
gives the default plan, unreadable JSON gives the default plan with a
warning, and a structurally broken blob is repaired by regenerating the
semester run from its start semester and merging saved courses back in by
semester id.
"""

import json
import os
import sys

from catalog import Catalog, course_from_dict
from errors import StateCorruption
from schedule import (
    PROFILE_FIELDS,
    ScheduleState,
    auxiliary_fields,
    default_profile,
    default_state,
    parse_start_semester,
    recompute_credits,
)
from semesters import Slot, chronological_key, generate_semesters


def recover_state(raw: dict, catalog: Catalog) -> ScheduleState:
    """
    Rebuild a usable plan from a blob that failed ScheduleState.from_dict().

    Saved slots that still parse contribute their courses and status to the
    regenerated slot with the same id; parseable slots outside the generated
    run are kept and slotted in by calendar order. A course saved in several
    slots keeps its first. Discovered electives, the placeholder map and
    transfer credits are carried over from the blob.
    """
    raw = raw if isinstance(raw, dict) else {}
    start = parse_start_semester(raw.get("startSemester"))
    slots = generate_semesters(start["year"], start["term"], start["include_summer"])
    for slot in slots:
        slot.status = "planned"
    by_id = {s.semester_id: s for s in slots}

    records = raw.get("semesters") if isinstance(raw.get("semesters"), list) else []
    seen_courses: set[str] = set()
    for record in records:
        try:
            saved = Slot.from_dict(record, len(by_id))
        except ValueError as exc:
            print(f"[WARN] Dropping unreadable saved semester: {exc}", file=sys.stderr)
            continue
        target = by_id.get(saved.semester_id)
        if target is None:
            target = saved
            target.courses = []
            slots.append(target)
            by_id[target.semester_id] = target
        target.status = saved.status
        for course_id in saved.courses:
            if course_id in seen_courses or course_id in target.courses:
                continue
            seen_courses.add(course_id)
            target.courses.append(course_id)

    for i, slot in enumerate(sorted(slots, key=lambda s: chronological_key(s.semester_id))):
        slot.sequence_index = i

    profile = {k: raw[k] for k in PROFILE_FIELDS if k in raw} or default_profile()
    state = ScheduleState(slots, start_semester=start, profile=profile, **auxiliary_fields(raw))
    currents = [s for s in state.slots if s.status == "current"]
    for extra in currents[1:]:
        extra.status = "planned"
    if not currents:
        first_planned = next((s for s in state.slots if s.status == "planned"), state.slots[-1])
        first_planned.status = "current"
    recompute_credits(state, catalog)
    return state


def _restore_imported_courses(raw, catalog: Catalog) -> None:
    if not isinstance(raw, dict):
        return
    for record in raw.get("importedCourses") or []:
        try:
            catalog.add_synthesized(course_from_dict(record))
        except (TypeError, ValueError) as exc:
            print(f"[WARN] Skipping saved imported course: {exc}", file=sys.stderr)


class StateStore:
    """Reads and writes one plan file."""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def load(self, catalog: Catalog) -> ScheduleState:
        if not self.exists():
            return default_state()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            print(f"[WARN] Could not read saved plan {self.path}; starting fresh: {exc}", file=sys.stderr)
            return default_state()

        _restore_imported_courses(raw, catalog)
        try:
            state = ScheduleState.from_dict(raw)
        except StateCorruption as exc:
            print(f"[WARN] Saved plan is inconsistent ({exc.message}); rebuilding.", file=sys.stderr)
            return recover_state(raw, catalog)
        recompute_credits(state, catalog)
        return state

    def save(self, state: ScheduleState, catalog: Catalog | None = None) -> None:
        """
        Writes through a temp file renamed into place. Synthesized catalog
        entries ride along so imported courses survive a restart.
        """
        blob = state.to_dict()
        if catalog is not None:
            blob["importedCourses"] = [c.to_dict() for c in catalog.overlay().values()]
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(blob, f, indent=2)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        if self.exists():
            os.remove(self.path)
