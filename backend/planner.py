"""
PlannerSession: the one object that owns a live plan.

Every mutation goes validate -> mutate -> persist. Callers (the Flask app,
the import script, tests) hold a session instead of a module-level plan.
"""

import uuid

from audit import AuditResult, build_reconciliation
from catalog import Catalog
from eligibility import list_available_courses
from errors import NotFoundError
from normalizer import normalize_code
from placement import find_ordering_violations, validate_placement
from quotas import quota_summary
from schedule import (
    ScheduleState,
    add_course_to_semester,
    append_next_slot,
    default_state,
    remove_course_from_semester,
    remove_slot,
)
from semesters import Slot
from storage import StateStore
from timeline import progress_summary


def _course_key(raw) -> str:
    """Accept 'CS 251', 'cs-251' or a placeholder id like 'GEN103'."""
    return normalize_code(raw) or str(raw or "").strip().upper()


class PlannerSession:
    def __init__(self, catalog: Catalog, store: StateStore | None = None, state: ScheduleState | None = None):
        self.catalog = catalog
        self.store = store
        if state is not None:
            self.state = state
        elif store is not None:
            self.state = store.load(catalog)
        else:
            self.state = default_state()

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.state, self.catalog)

    # ── Placement ──────────────────────────────────────────────────────────
    def validate_placement(self, course_id, semester_id) -> dict:
        return validate_placement(_course_key(course_id), str(semester_id or "").strip(), self.state, self.catalog)

    def commit_placement(self, course_id, semester_id) -> dict:
        """Validate, then place and persist on acceptance. Returns the decision."""
        decision = self.validate_placement(course_id, semester_id)
        if decision["accepted"]:
            add_course_to_semester(self.state, decision["course_id"], decision["semester_id"], self.catalog)
            self._persist()
        return decision

    def remove_course(self, course_id) -> dict:
        """
        Take a course out of the plan.

        Returns:
          {"removed": bool, "course_id": str, "semester_id": str | None,
           "reason": str | None, "violations": [...]}
        """
        key = _course_key(course_id)
        sem_id = self.state.find_course_semester(key)
        out = {"removed": False, "course_id": key, "semester_id": sem_id, "reason": None, "violations": []}
        if sem_id is None:
            out["reason"] = f"{self.catalog.display(key)} is not in the plan"
            return out
        slot = self.state.get_slot(sem_id)
        if slot.status == "completed":
            out["reason"] = f"Cannot modify completed semesters ({slot.label} is completed)."
            return out

        remove_course_from_semester(self.state, key, self.catalog)
        self._persist()
        out["removed"] = True
        # Removing a prerequisite can strand courses scheduled after it.
        out["violations"] = find_ordering_violations(self.state, self.catalog)
        return out

    # ── Semesters ──────────────────────────────────────────────────────────
    def append_next_slot(self) -> Slot | None:
        slot = append_next_slot(self.state)
        if slot is not None:
            self._persist()
        return slot

    def remove_slot(self, semester_id) -> Slot | None:
        slot = remove_slot(self.state, str(semester_id or "").strip())
        if slot is not None:
            self._persist()
        return slot

    # ── Audit import ───────────────────────────────────────────────────────
    def reconcile_audit(self, parsed, excluded_codes=None) -> AuditResult:
        """
        Replace the plan with one reconciled against an audit.

        Nothing changes unless reconciliation completes: the new state and
        the synthesized catalog entries are committed together at the end.
        """
        result = build_reconciliation(parsed, self.state, self.catalog, excluded_codes)
        self.catalog.apply_overlay(result.synthesized)
        self.state = result.state
        self._persist()
        print(
            f"[INFO] Audit imported: {len(result.placed)} course(s) placed, "
            f"{len(result.synthesized)} synthesized, {len(result.warnings)} warning(s)"
        )
        return result

    # ── Transfer credit ────────────────────────────────────────────────────
    def add_transfer_credit(self, external_course: str, equivalent, credits=None, status: str = "approved") -> dict:
        equivalent_id = _course_key(equivalent)
        course = self.catalog.require(equivalent_id)
        record = {
            "id": f"transfer{uuid.uuid4().hex[:8]}",
            "external_course": str(external_course or "").strip() or course.code,
            "equivalent": equivalent_id,
            "status": status,
            "credits": credits if credits is not None else course.credits,
            "mapped": False,
        }
        self.state.transfer_credits.append(record)
        self._persist()
        return record

    def unmapped_transfer_credits(self) -> list[dict]:
        return [t for t in self.state.transfer_credits if not t.get("mapped")]

    def map_transfer_credit(self, transfer_id: str) -> dict:
        """
        Put an approved transfer course's equivalent into the first planned
        semester. Raises NotFoundError for an unknown transfer id.
        """
        transfer = next((t for t in self.state.transfer_credits if t.get("id") == transfer_id), None)
        if transfer is None:
            raise NotFoundError("transfer credit", transfer_id)
        out = {"mapped": False, "transfer_id": transfer_id, "semester_id": None, "reason": None, "message": None}
        if transfer.get("mapped"):
            out["reason"] = f"{transfer.get('external_course')} is already mapped"
            return out

        equivalent = transfer.get("equivalent")
        if self.catalog.get(equivalent) is None:
            raise NotFoundError("course", equivalent)
        held_in = self.state.get_slot(self.state.find_course_semester(equivalent) or "")
        if held_in is not None and held_in.status == "completed":
            out["reason"] = (
                f"{self.catalog.display(equivalent)} is already in {held_in.label}, "
                "which is completed"
            )
            return out
        target = next((s for s in self.state.slots if s.status == "planned"), None)
        if target is None:
            out["reason"] = "No planned semester to map into"
            return out

        add_course_to_semester(self.state, equivalent, target.semester_id, self.catalog)
        transfer["mapped"] = True
        self._persist()
        out.update(
            mapped=True,
            semester_id=target.semester_id,
            message=f"{transfer.get('external_course')} mapped to {target.label}",
        )
        return out

    # ── Views ──────────────────────────────────────────────────────────────
    def progress(self) -> dict:
        out = progress_summary(self.state)
        out["quotas"] = quota_summary(self.state)
        out["ordering_issues"] = find_ordering_violations(self.state, self.catalog)
        out["unmapped_transfer_credits"] = len(self.unmapped_transfer_credits())
        return out

    def available_courses(self, search: str = "", category: str = "all", include_hidden: bool = False) -> list[dict]:
        return list_available_courses(self.state, self.catalog, search, category, include_hidden)

    def plan_view(self) -> dict:
        out = self.state.to_dict()
        out["progress"] = self.progress()
        return out

    def reset(self) -> ScheduleState:
        """Back to the default plan. Imported catalog entries are discarded too."""
        self.state = default_state()
        self.catalog.clear_overlay()
        self._persist()
        print("[INFO] Plan reset to default")
        return self.state
