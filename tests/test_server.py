"""
Flask API tests.

Each test gets a fresh PlannerSession backed by a temp state file, so the
shipped data/plan_state.json is never touched.
"""

import json

import pytest
import server
from planner import PlannerSession
from storage import StateStore


@pytest.fixture
def session(catalog, tmp_path, monkeypatch):
    s = PlannerSession(catalog, StateStore(str(tmp_path / "plan_state.json")))
    monkeypatch.setattr(server, "_session", s)
    monkeypatch.setattr(server, "_data_file_mtime", lambda _path: None)
    return s


@pytest.fixture
def client(session):
    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c


def post(client, path, payload):
    resp = client.post(path, data=json.dumps(payload), content_type="application/json")
    return resp.status_code, resp.get_json()


class TestHealth:
    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    def test_health(self, client, path):
        resp = client.get(path)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert data["courses"] > 0

    def test_security_headers(self, client):
        resp = client.get("/health")
        assert resp.headers.get("X-Frame-Options") == "DENY"
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Referrer-Policy") == "same-origin"


class TestReadEndpoints:
    def test_plan(self, client):
        data = client.get("/api/plan").get_json()
        assert len(data["semesters"]) == 8
        assert data["currentSemester"] == "Spring2026"
        assert data["progress"]["graduation_credits"] == 128

    def test_courses_search(self, client):
        data = client.get("/api/courses", query_string={"search": "data structures"}).get_json()
        ids = [c["id"] for c in data["courses"]]
        assert "CS251" in ids

    def test_courses_category(self, client):
        data = client.get("/api/courses?category=science").get_json()
        assert data["courses"]
        assert all(c["category"] == "science" for c in data["courses"])


class TestPlacementEndpoints:
    def test_validate_does_not_place(self, client, session):
        status, data = post(client, "/api/validate", {"course_id": "CS 111", "semester_id": "Fall2025"})
        assert status == 200
        assert data["accepted"] is True
        assert not session.state.is_scheduled("CS111")

    def test_place_accepted(self, client, session):
        status, data = post(client, "/api/place", {"course_id": "CS 111", "semester_id": "Fall2025"})
        assert status == 200
        assert data["decision"]["accepted"] is True
        assert data["plan"]["semesters"][0]["courses"] == ["CS111"]
        assert session.store.exists()

    def test_place_rejected_is_still_200(self, client):
        status, data = post(client, "/api/place", {"course_id": "CS251", "semester_id": "Fall2025"})
        assert status == 200
        assert data["decision"]["accepted"] is False
        assert data["decision"]["rule"] == "prerequisite"

    @pytest.mark.parametrize("payload", [
        {"semester_id": "Fall2025"},
        {"course_id": "CS111"},
        {"course_id": "CS111", "semester_id": "Autumn2025"},
    ])
    def test_bad_placement_body(self, client, payload):
        status, data = post(client, "/api/place", payload)
        assert status == 400
        assert data["mode"] == "error"
        assert data["error"]["error_code"] == "INVALID_INPUT"

    def test_non_object_body(self, client):
        status, data = post(client, "/api/validate", ["CS111"])
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_INPUT"

    def test_remove_course(self, client, session):
        post(client, "/api/place", {"course_id": "CS111", "semester_id": "Fall2025"})
        status, data = post(client, "/api/remove-course", {"course_id": "CS111"})
        assert status == 200
        assert data["result"]["removed"] is True
        assert data["plan"]["semesters"][0]["courses"] == []

    def test_remove_course_requires_id(self, client):
        status, _ = post(client, "/api/remove-course", {})
        assert status == 400


class TestSemesterEndpoints:
    def test_add_semester(self, client):
        resp = client.post("/api/semesters")
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["semester"]["id"] == "Fall2029"
        assert len(data["plan"]["semesters"]) == 9

    def test_add_semester_none_free(self, client, monkeypatch, session):
        monkeypatch.setattr(session, "append_next_slot", lambda: None)
        resp = client.post("/api/semesters")
        assert resp.status_code == 409
        assert resp.get_json()["error"]["error_code"] == "NO_FREE_SEMESTER"

    def test_remove_semester(self, client):
        resp = client.delete("/api/semesters/Fall2026")
        assert resp.status_code == 200
        assert "Fall2026" not in [s["id"] for s in resp.get_json()["plan"]["semesters"]]

    def test_remove_unknown_semester(self, client):
        resp = client.delete("/api/semesters/Fall2040")
        assert resp.status_code == 404
        data = resp.get_json()
        assert data["error"]["error_code"] == "NOT_FOUND"
        assert data["error"]["message"] == "Semester not found: Fall2040"


class TestAuditEndpoint:
    AUDIT = {
        "FA23": [{"code": "HIST 103", "credits": 3, "name": "American History",
                  "requirement": "Understanding the Past"}],
        "SP24": [{"code": "CS 111", "credits": 3}, {"code": "MATH 180", "credits": 4}],
    }

    def test_wrapped_audit(self, client):
        status, data = post(client, "/api/audit", {"audit": self.AUDIT})
        assert status == 200
        assert data["audit"]["synthesized"] == ["HIST103"]
        assert [s["id"] for s in data["plan"]["semesters"]] == ["Fall2023", "Spring2024", "Fall2024"]

    def test_bare_map_with_exclusions(self, client, session):
        payload = dict(self.AUDIT, excluded_codes=["MATH 180"])
        status, data = post(client, "/api/audit", payload)
        assert status == 200
        assert not session.state.is_scheduled("MATH180")
        assert data["audit"]["dropped_rows"][0]["course_id"] == "MATH180"

    def test_exclusions_must_be_a_list(self, client):
        status, data = post(client, "/api/audit", {"audit": self.AUDIT, "excluded_codes": "MATH 180"})
        assert status == 400
        assert data["error"]["error_code"] == "INVALID_INPUT"

    def test_malformed_audit(self, client, session):
        before = session.state.to_dict()
        status, data = post(client, "/api/audit", {"audit": ["FA23"]})
        assert status == 400
        assert data["error"]["error_code"] == "MALFORMED_AUDIT"
        assert session.state.to_dict() == before


class TestTransferEndpoints:
    def test_add_and_map(self, client, session):
        resp = client.post("/api/transfer", json={"external_course": "Intro Programming", "equivalent": "CS 111"})
        assert resp.status_code == 201
        transfer = resp.get_json()["transfer"]
        assert transfer["equivalent"] == "CS111"

        status, data = post(client, f"/api/transfer/{transfer['id']}/map", {})
        assert status == 200
        assert data["result"]["mapped"] is True
        assert session.state.find_course_semester("CS111") == "Fall2025"

    def test_equivalent_required(self, client):
        status, _ = post(client, "/api/transfer", {"external_course": "Intro"})
        assert status == 400

    def test_unknown_equivalent(self, client):
        status, data = post(client, "/api/transfer", {"equivalent": "ART 999"})
        assert status == 404
        assert data["error"]["message"] == "Course not found: ART999"

    def test_unknown_transfer(self, client):
        status, data = post(client, "/api/transfer/transfer-nope/map", {})
        assert status == 404
        assert data["error"]["error_code"] == "NOT_FOUND"


class TestResetAndFallbacks:
    def test_reset(self, client, session):
        post(client, "/api/place", {"course_id": "CS111", "semester_id": "Fall2025"})
        resp = client.post("/api/reset")
        assert resp.status_code == 200
        assert resp.get_json()["totalCredits"] == 0

    def test_unknown_api_route(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "/api/nope not found"}

    def test_unexpected_error_is_json(self, client, monkeypatch, session):
        def boom():
            raise RuntimeError("kaput")

        monkeypatch.setattr(session, "plan_view", boom)
        resp = client.get("/api/plan")
        assert resp.status_code == 500
        assert resp.get_json()["error"]["error_code"] == "SERVER_ERROR"


class TestDataReload:
    def test_reload_keeps_imported_courses(self, session, monkeypatch):
        from catalog import synthesize_course

        session.catalog.add_synthesized(synthesize_course("HIST103", "American History", 3, "general"))
        old_catalog = session.catalog
        monkeypatch.setattr(server, "_data_mtime", 100.0)
        monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 200.0)
        monkeypatch.setattr(server, "_data", server._data)

        assert server._reload_data_if_changed() is True
        assert session.catalog is not old_catalog
        assert session.catalog.get("HIST103").name == "American History"

    def test_reload_failure_keeps_catalog(self, session, monkeypatch):
        old_catalog = session.catalog
        monkeypatch.setattr(server, "_data_mtime", 100.0)
        monkeypatch.setattr(server, "_data_file_mtime", lambda _path: 200.0)

        def boom(_path):
            raise RuntimeError("reload failed")

        monkeypatch.setattr(server, "load_data", boom)
        assert server._reload_data_if_changed() is False
        assert session.catalog is old_catalog
