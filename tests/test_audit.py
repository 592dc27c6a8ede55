import pytest
from audit import (
    build_reconciliation,
    filter_audit_rows,
    normalize_audit_semester,
    reconcile_audit,
)
from errors import MalformedAuditRecord
from schedule import add_course_to_semester


def row(code, credits=3, **extra):
    out = {"code": code, "credits": credits}
    out.update(extra)
    return out


@pytest.fixture
def gen103_state(state, catalog):
    add_course_to_semester(state, "GEN103", "Fall2025", catalog)
    return state


@pytest.fixture
def history_audit():
    return {
        "FA23": [row("HIST 103", name="American History to 1877", grade="A",
                     requirement="Understanding the Past")],
        "FA25": [row("CS 111", grade="")],
    }


# ── Row filtering ─────────────────────────────────────────────────────────────

class TestNormalizeAuditSemester:
    @pytest.mark.parametrize("raw,expected", [
        ("FA23", "Fall2023"),
        ("WS23", "Fall2023"),
        ("SP24", "Spring2024"),
        ("SU22", "Summer2022"),
        ("WI21", "Winter2021"),
        ("Fall2023", "Fall2023"),
        ("spring 2024", "Spring2024"),
    ])
    def test_known_codes(self, raw, expected):
        assert normalize_audit_semester(raw) == expected

    def test_unknown_prefix(self):
        with pytest.raises(MalformedAuditRecord):
            normalize_audit_semester("XX23")


class TestFilterAuditRows:
    def test_withdrawals_dropped(self):
        records, dropped, _ = filter_audit_rows({
            "FA23": [row("CS 111", grade="W"), row("CS 141", grade="WF"), row("MATH 180", grade="B")],
        })
        assert [r.course_id for r in records] == ["MATH180"]
        assert {d["course_id"] for d in dropped} == {"CS111", "CS141"}
        assert all(d["why"] == "withdrawn" for d in dropped)

    def test_exclusions_from_argument_row_and_document(self):
        parsed = {
            "semesters": {
                "FA23": [row("CS 111"), row("CS 141", excluded=True), row("MATH 180"), row("ENGL 160")],
            },
            "excluded": ["MATH 180"],
        }
        records, dropped, _ = filter_audit_rows(parsed, excluded_codes=["engl-160"])
        assert [r.course_id for r in records] == ["CS111"]
        assert {d["course_id"] for d in dropped} == {"CS141", "MATH180", "ENGL160"}

    def test_malformed_rows_skipped_with_warning(self, capsys):
        records, _, warnings = filter_audit_rows({
            "FA23": [row("CS 111"), {"credits": 3}, row("CS 141", credits="three"), "junk"],
        })
        assert [r.course_id for r in records] == ["CS111"]
        assert len(warnings) == 3
        assert "[WARN]" in capsys.readouterr().err

    def test_unknown_term_skips_its_rows(self):
        records, _, warnings = filter_audit_rows({"XX23": [row("CS 111")], "FA23": [row("CS 141")]})
        assert [r.course_id for r in records] == ["CS141"]
        assert any("XX23" in w for w in warnings)

    def test_original_display_code_fallback(self):
        records, _, _ = filter_audit_rows({"FA23": [{"originalDisplayCode": "CS 111", "credits": 3}]})
        assert records[0].course_id == "CS111"

    def test_retake_keeps_latest(self):
        records, _, warnings = filter_audit_rows({
            "SP24": [row("MATH 180", grade="A")],
            "FA23": [row("MATH 180", grade="D")],
        })
        assert [(r.course_id, r.semester_id) for r in records] == [("MATH180", "Spring2024")]
        assert warnings

    def test_chronological_order(self):
        records, _, _ = filter_audit_rows({"SP24": [row("CS 141")], "FA23": [row("CS 111")]})
        assert [r.semester_id for r in records] == ["Fall2023", "Spring2024"]

    def test_not_an_object(self):
        with pytest.raises(MalformedAuditRecord):
            filter_audit_rows(["FA23"])


# ── Reconciliation ────────────────────────────────────────────────────────────

class TestPlaceholderReplacement:
    def test_gen103_replaced_by_real_course(self, gen103_state, catalog, history_audit):
        result = build_reconciliation(history_audit, gen103_state, catalog)
        new = result.state
        assert "GEN103" not in new.scheduled_course_ids()
        assert new.find_course_semester("HIST103") == "Fall2023"
        assert new.placeholder_map["GEN103"] == "HIST103"

    def test_inputs_untouched(self, gen103_state, catalog, history_audit):
        base_before = catalog.base_ids()
        plan_before = gen103_state.to_dict()
        result = build_reconciliation(history_audit, gen103_state, catalog)
        assert [c.course_id for c in result.synthesized] == ["HIST103"]
        assert "HIST103" not in catalog
        assert catalog.base_ids() == base_before
        assert gen103_state.to_dict() == plan_before

    def test_reconcile_commits_overlay_only(self, gen103_state, catalog, history_audit):
        base_before = catalog.base_ids()
        new = reconcile_audit(history_audit, gen103_state, catalog)
        assert catalog.get("HIST103").synthesized is True
        assert catalog.get("HIST103").category == "general"
        assert "HIST103" not in catalog.base_ids()
        assert catalog.base_ids() == base_before
        assert new.get_slot("Fall2023").credits == 3

    def test_additional_electives_fill_two_placeholders(self, state, catalog):
        label = "Humanities/Social Sciences/Art Electives"
        parsed = {"FA23": [
            row("ART 101", name="Intro to Art", requirement=label),
            row("MUS 100", name="Music Theory", requirement=label),
            row("PHIL 102", name="Logic", requirement=label),
        ]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.placeholder_map["GEN106"] == "ART101"
        assert new.placeholder_map["GEN107"] == "MUS100"
        assert "PHIL102" not in (new.placeholder_map.get("GEN106"), new.placeholder_map.get("GEN107"))

    def test_alias_label(self, state, catalog):
        parsed = {"FA23": [row("AH 110", name="World Art", requirement="Gen Ed: World Cultures")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.placeholder_map["GEN101"] == "AH110"

    def test_free_elective_placeholder_consumed(self, state, catalog):
        add_course_to_semester(state, "FREE001", "Fall2025", catalog)
        add_course_to_semester(state, "FREE002", "Fall2025", catalog)
        parsed = {"FA25": [row("DANC 101", name="Modern Dance")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert not new.is_scheduled("FREE001")
        assert new.is_scheduled("FREE002")
        assert new.placeholder_map["FREE001"] == "DANC101"

    def test_math_placeholders_retire_per_real_elective(self, state, catalog):
        add_course_to_semester(state, "MATHEL1", "Fall2025", catalog)
        add_course_to_semester(state, "MATHEL2", "Fall2025", catalog)
        parsed = {"FA25": [row("MATH 215")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert not new.is_scheduled("MATHEL1")
        assert new.is_scheduled("MATHEL2")


class TestCourseResolution:
    def test_known_course_uses_catalog_credits(self, state, catalog):
        new = build_reconciliation({"FA23": [row("CS 251", credits=3)]}, state, catalog).state
        assert new.get_slot("Fall2023").credits == 4

    def test_unknown_cs_elective_synthesized_without_name(self, state, catalog):
        result = build_reconciliation({"FA23": [row("CS 480")]}, state, catalog)
        course = next(c for c in result.synthesized if c.course_id == "CS480")
        assert course.category == "elective"
        assert course.code == "CS 480"
        assert "CS480" in result.state.discovered_tech_electives

    def test_unknown_without_name_skipped(self, state, catalog):
        result = build_reconciliation({"FA23": [row("ANTH 101"), row("CS 111")]}, state, catalog)
        assert not result.state.is_scheduled("ANTH101")
        assert result.state.is_scheduled("CS111")
        assert any("ANTH101" in w for w in result.warnings)

    def test_discovered_math_elective(self, state, catalog):
        parsed = {"FA23": [row("MATH 310", name="Applied Linear Algebra"), row("MATH 180")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.discovered_math_electives == ["MATH310"]

    def test_math_elective_from_requirement_label(self, state, catalog):
        parsed = {"FA23": [row("PHYS 220", name="Math Physics", requirement="Math Elective")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert "PHYS220" in new.discovered_math_electives

    def test_core_cs_not_discovered(self, state, catalog):
        new = build_reconciliation({"FA23": [row("CS 301")]}, state, catalog).state
        assert new.discovered_tech_electives == []

    def test_fixed_elective_not_rediscovered(self, state, catalog):
        new = build_reconciliation({"FA23": [row("CS 411"), row("MATH 215")]}, state, catalog).state
        assert new.discovered_tech_electives == []
        assert new.discovered_math_electives == []


class TestSemesterRebuild:
    def test_only_observed_semesters_plus_successor(self, state, catalog):
        parsed = {"FA23": [row("CS 111")], "SP24": [row("CS 141")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.semester_ids() == ["Fall2023", "Spring2024", "Fall2024"]

    def test_statuses(self, state, catalog):
        parsed = {"FA23": [row("CS 111")], "SP24": [row("CS 141")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert [s.status for s in new.slots] == ["completed", "completed", "current"]

    def test_summer_history_sets_start_semester(self, state, catalog):
        parsed = {"SU24": [row("CS 141")], "FA23": [row("CS 111")], "SP24": [row("MATH 180")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.semester_ids()[:3] == ["Fall2023", "Spring2024", "Summer2024"]
        assert new.semester_ids()[-1] == "Fall2024"
        assert new.start_semester == {"term": "Fall", "year": 2023, "include_summer": True, "from_audit": True}

    def test_enough_credits_keeps_last_slot_current(self, state, catalog):
        parsed = {"FA23": [row("CS 111")], "SP24": [row("XYZ 499", credits=130, name="Everything")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.semester_ids() == ["Fall2023", "Spring2024"]
        assert new.current_slot().semester_id == "Spring2024"

    def test_prior_assignments_kept_for_surviving_slots(self, state, catalog):
        add_course_to_semester(state, "ENGL160", "Fall2025", catalog)
        add_course_to_semester(state, "CS141", "Fall2026", catalog)
        result = build_reconciliation({"FA25": [row("CS 111")]}, state, catalog)
        assert result.state.find_course_semester("ENGL160") == "Fall2025"
        assert result.dropped_assignments == [{"course_id": "CS141", "semester_id": "Fall2026"}]

    def test_audit_moves_previously_planned_course(self, state, catalog):
        add_course_to_semester(state, "CS111", "Fall2025", catalog)
        parsed = {"FA23": [row("CS 111")], "FA25": [row("MATH 180")]}
        new = build_reconciliation(parsed, state, catalog).state
        assert new.find_course_semester("CS111") == "Fall2023"
        assert new.scheduled_course_ids().count("CS111") == 1

    def test_no_usable_rows_leaves_plan(self, state, catalog):
        result = build_reconciliation({"FA23": [row("CS 111", grade="W")]}, state, catalog)
        assert result.state.to_dict() == state.to_dict()
        assert result.state is not state
        assert result.warnings

    def test_summary(self, gen103_state, catalog, history_audit):
        summary = build_reconciliation(history_audit, gen103_state, catalog).summary()
        assert summary["synthesized"] == ["HIST103"]
        assert {"course_id": "HIST103", "semester_id": "Fall2023"} in summary["placed"]
        assert summary["placeholder_map"]["GEN103"] == "HIST103"
