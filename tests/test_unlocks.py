from unlocks import build_reverse_prereq_map, get_direct_unlocks


class TestBuildReversePrereqMap:
    def test_regular_dependents(self, catalog):
        reverse = build_reverse_prereq_map(catalog)
        dependents = [d["course_id"] for d in reverse["CS111"]]
        assert dependents[:2] == ["CS141", "CS151"]
        assert "MCS471" in dependents
        assert all(d["concurrent"] is False for d in reverse["CS111"])

    def test_concurrent_dependents_flagged(self, catalog):
        reverse = build_reverse_prereq_map(catalog)
        entry = next(d for d in reverse["MATH180"] if d["course_id"] == "PHYS141")
        assert entry["concurrent"] is True

    def test_no_dependents(self, catalog):
        assert "CS440" not in build_reverse_prereq_map(catalog)


class TestGetDirectUnlocks:
    def test_limit(self, catalog):
        reverse = build_reverse_prereq_map(catalog)
        assert get_direct_unlocks("CS251", reverse) == ["CS301", "CS341", "CS342"]
        assert len(get_direct_unlocks("CS251", reverse, limit=10)) > 3

    def test_unknown_course(self, catalog):
        assert get_direct_unlocks("XYZ999", build_reverse_prereq_map(catalog)) == []
