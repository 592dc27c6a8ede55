"""
Import a parsed degree audit (JSON) into a saved plan file.

The audit JSON is keyed by semester, each value a list of course rows:

    {"FA23": [{"code": "CS 111", "credits": 3, "grade": "A"}, ...], ...}

or wrapped as {"semesters": {...}, "excluded": ["CS 100"]}.

Usage:
    python scripts/import_audit.py --audit audit.json
    python scripts/import_audit.py --audit audit.json --state data/plan_state.json
    python scripts/import_audit.py --audit audit.json --dry-run
"""

import argparse
import json
import os
import sys

REPO_ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")


def _print_summary(summary: dict, plan: dict) -> None:
    print(f"[OK] Placed {len(summary['placed'])} course(s)")
    if summary["synthesized"]:
        print(f"[INFO] Added to catalog: {', '.join(summary['synthesized'])}")
    for row in summary["dropped_rows"]:
        print(f"[INFO] Dropped {row['course_id']} ({row['semester_id']}): {row['why']}")
    for row in summary["dropped_assignments"]:
        print(f"[INFO] Unscheduled {row['course_id']} (semester {row['semester_id']} not in audit)")
    for pid, cid in sorted(summary["placeholder_map"].items()):
        print(f"[INFO] {pid} -> {cid}")
    if summary["warnings"]:
        print(f"[INFO] {len(summary['warnings'])} row(s) skipped with warnings (see above)")
    print(f"[OK] Current semester: {plan.get('currentSemester')}  total credits: {plan.get('totalCredits')}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Reconcile a parsed degree audit into a saved plan.",
    )
    parser.add_argument("--audit", type=str, required=True, help="Path to the parsed audit JSON.")
    parser.add_argument(
        "--state", type=str,
        default=os.path.join(REPO_ROOT, "data", "plan_state.json"),
        help="Plan state file to read and update.",
    )
    parser.add_argument(
        "--data", type=str,
        default=os.path.join(REPO_ROOT, "data", "courses.csv"),
        help="Catalog CSV (or workbook) path.",
    )
    parser.add_argument(
        "--exclude", type=str, action="append", default=[],
        help="Course code to leave out (repeatable).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Show the result without saving.")
    opts = parser.parse_args(args)

    backend_dir = os.path.join(REPO_ROOT, "backend")
    sys.path.insert(0, backend_dir)
    from audit import build_reconciliation
    from data_loader import load_data
    from errors import MalformedAuditRecord
    from storage import StateStore

    try:
        with open(opts.audit, "r", encoding="utf-8") as f:
            parsed = json.load(f)
    except (OSError, ValueError) as exc:
        print(f"[FATAL] Could not read audit file {opts.audit}: {exc}", file=sys.stderr)
        return 1

    catalog = load_data(opts.data)["catalog"]
    store = StateStore(opts.state)
    state = store.load(catalog)

    try:
        result = build_reconciliation(parsed, state, catalog, opts.exclude)
    except MalformedAuditRecord as exc:
        print(f"[FATAL] {exc.message}", file=sys.stderr)
        return 1

    _print_summary(result.summary(), result.state.to_dict())
    if opts.dry_run:
        print("[INFO] Dry run; nothing written.")
        return 0

    catalog.apply_overlay(result.synthesized)
    store.save(result.state, catalog)
    print(f"[OK] Saved plan to {opts.state}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
