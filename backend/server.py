import os
import sys
import time
import threading

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from data_loader import load_data
from errors import MalformedAuditRecord, NotFoundError, PlannerError
from planner import PlannerSession
from schedule import recompute_credits
from semesters import parse_semester_id
from storage import StateStore

load_dotenv()

app = Flask(__name__)

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data", "courses.csv")
_DEFAULT_STATE_PATH = os.path.join(PROJECT_ROOT, "data", "plan_state.json")


def _resolve_path(env_name: str, default: str) -> str:
    raw = os.environ.get(env_name)
    if not raw:
        return default
    if not os.path.isabs(raw):
        return os.path.join(PROJECT_ROOT, raw)
    return raw


DATA_PATH = _resolve_path("DATA_PATH", _DEFAULT_DATA_PATH)
STATE_PATH = _resolve_path("STATE_PATH", _DEFAULT_STATE_PATH)
_data_lock = threading.Lock()
_data_mtime = None


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)


def _data_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            path = os.path.join(path, "courses.csv")
        return os.path.getmtime(path)
    except OSError:
        return None


# ── Startup data load ──────────────────────────────────────────────────────────
try:
    _data = load_data(DATA_PATH)
    _data_mtime = _data_file_mtime(DATA_PATH)
    print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
except FileNotFoundError:
    # A stale DATA_PATH falls back to the catalog shipped with the repo.
    if DATA_PATH != _DEFAULT_DATA_PATH and os.path.exists(_DEFAULT_DATA_PATH):
        print(
            f"[WARN] DATA_PATH not found ({DATA_PATH}); "
            f"falling back to default catalog ({_DEFAULT_DATA_PATH}).",
            file=sys.stderr,
        )
        DATA_PATH = _DEFAULT_DATA_PATH
        _data = load_data(DATA_PATH)
        _data_mtime = _data_file_mtime(DATA_PATH)
        print(f"[OK] Loaded {len(_data['catalog_codes'])} courses from {DATA_PATH}")
    else:
        print(f"[FATAL] Data file not found: {DATA_PATH}", file=sys.stderr)
        sys.exit(1)
except Exception as exc:
    print(f"[FATAL] Failed to load data: {exc}", file=sys.stderr)
    sys.exit(1)

_session = PlannerSession(_data["catalog"], StateStore(STATE_PATH))
print(f"[OK] Plan state: {STATE_PATH}")


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload the catalog when DATA_PATH changes on disk. Imported
    (synthesized) courses carry over to the new catalog.

    Returns True when a reload occurred, else False.
    """
    global _data, _data_mtime

    with _data_lock:
        latest_mtime = _data_file_mtime(DATA_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = load_data(DATA_PATH)
        except Exception as exc:
            print(f"[WARN] Data reload failed; keeping previous catalog: {exc}", file=sys.stderr)
            return False

        new_catalog = new_data["catalog"]
        new_catalog.apply_overlay(_session.catalog.overlay().values())
        _session.catalog = new_catalog
        recompute_credits(_session.state, new_catalog)
        _data = new_data
        _data_mtime = latest_mtime
        print(f"[OK] Reloaded {len(new_data['catalog_codes'])} courses from {DATA_PATH}")
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Data reload check failed: {exc}", file=sys.stderr)


# -- Security headers ------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# -- Errors ------------------------------------------------------------------
def _error(error_code: str, message: str, status: int):
    return jsonify({
        "mode": "error",
        "error": {
            "error_code": error_code,
            "message": message,
        },
    }), status


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return _error("NOT_FOUND", e.message, 404)


@app.errorhandler(PlannerError)
def handle_planner_error(e):
    return _error("INVALID_INPUT", e.message, 400)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return _error(e.name.upper().replace(" ", "_"), e.description or e.name, e.code)
    print(f"[ERROR] Unhandled {type(e).__name__}: {e}", file=sys.stderr)
    return _error("SERVER_ERROR", "An unexpected server error occurred.", 500)


# -- Input validation ------------------------------------------------------
def _json_body():
    """Returns (body, error_response)."""
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        return None, _error("INVALID_INPUT", "Request body must be a JSON object.", 400)
    return body, None


def _validate_placement_body(body):
    """Returns (error_code, message) on invalid input, (None, None) on success."""
    if not str(body.get("course_id") or "").strip():
        return "INVALID_INPUT", "course_id is required."
    sem_id = str(body.get("semester_id") or "").strip()
    if not sem_id:
        return "INVALID_INPUT", "semester_id is required."
    if parse_semester_id(sem_id) is None:
        return "INVALID_INPUT", f"'{sem_id}' is not a valid semester id (e.g. 'Fall2026')."
    return None, None


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": "1.0.0",
        "courses": len(_session.catalog),
    })


# ── Routes ─────────────────────────────────────────────────────────────────────
def get_plan():
    _refresh_data_if_needed()
    return jsonify(_session.plan_view())


def get_courses():
    _refresh_data_if_needed()
    include_hidden = request.args.get("include_hidden", "").lower() in ("1", "true", "yes")
    courses = _session.available_courses(
        search=request.args.get("search", ""),
        category=request.args.get("category", "all"),
        include_hidden=include_hidden,
    )
    return jsonify({"courses": courses})


def validate_endpoint():
    body, err = _json_body()
    if err:
        return err
    code, message = _validate_placement_body(body)
    if code:
        return _error(code, message, 400)
    return jsonify(_session.validate_placement(body["course_id"], body["semester_id"]))


def place_endpoint():
    body, err = _json_body()
    if err:
        return err
    code, message = _validate_placement_body(body)
    if code:
        return _error(code, message, 400)
    with _data_lock:
        decision = _session.commit_placement(body["course_id"], body["semester_id"])
        payload = {"decision": decision, "plan": _session.plan_view()}
    return jsonify(payload)


def remove_course_endpoint():
    body, err = _json_body()
    if err:
        return err
    if not str(body.get("course_id") or "").strip():
        return _error("INVALID_INPUT", "course_id is required.", 400)
    with _data_lock:
        result = _session.remove_course(body["course_id"])
        payload = {"result": result, "plan": _session.plan_view()}
    return jsonify(payload)


def add_semester_endpoint():
    with _data_lock:
        slot = _session.append_next_slot()
        if slot is None:
            return _error("NO_FREE_SEMESTER", "No free semester could be added after the last one.", 409)
        payload = {"semester": slot.to_dict(), "plan": _session.plan_view()}
    return jsonify(payload), 201


def remove_semester_endpoint(semester_id):
    with _data_lock:
        slot = _session.remove_slot(semester_id)
        if slot is None:
            raise NotFoundError("semester", semester_id)
        payload = {"removed": slot.to_dict(), "plan": _session.plan_view()}
    return jsonify(payload)


def audit_endpoint():
    body, err = _json_body()
    if err:
        return err
    excluded = body.get("excluded_codes")
    if excluded is not None and not isinstance(excluded, list):
        return _error("INVALID_INPUT", "excluded_codes must be a list of course codes.", 400)
    if "audit" in body:
        parsed = body["audit"]
    else:
        parsed = {k: v for k, v in body.items() if k != "excluded_codes"}
    with _data_lock:
        try:
            result = _session.reconcile_audit(parsed, excluded)
        except MalformedAuditRecord as exc:
            return _error("MALFORMED_AUDIT", exc.message, 400)
        payload = {"audit": result.summary(), "plan": _session.plan_view()}
    return jsonify(payload)


def add_transfer_endpoint():
    body, err = _json_body()
    if err:
        return err
    if not str(body.get("equivalent") or "").strip():
        return _error("INVALID_INPUT", "equivalent is required.", 400)
    with _data_lock:
        record = _session.add_transfer_credit(
            body.get("external_course", ""),
            body["equivalent"],
            body.get("credits"),
            str(body.get("status") or "approved"),
        )
    return jsonify({"transfer": record}), 201


def map_transfer_endpoint(transfer_id):
    with _data_lock:
        result = _session.map_transfer_credit(transfer_id)
        payload = {"result": result, "plan": _session.plan_view()}
    return jsonify(payload)


def reset_endpoint():
    with _data_lock:
        _session.reset()
        payload = _session.plan_view()
    return jsonify(payload)


app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])
app.add_url_rule("/api/plan", endpoint="api_plan", view_func=get_plan, methods=["GET"])
app.add_url_rule("/api/courses", endpoint="api_courses", view_func=get_courses, methods=["GET"])
app.add_url_rule("/api/validate", endpoint="api_validate", view_func=validate_endpoint, methods=["POST"])
app.add_url_rule("/api/place", endpoint="api_place", view_func=place_endpoint, methods=["POST"])
app.add_url_rule("/api/remove-course", endpoint="api_remove_course", view_func=remove_course_endpoint, methods=["POST"])
app.add_url_rule("/api/semesters", endpoint="api_add_semester", view_func=add_semester_endpoint, methods=["POST"])
app.add_url_rule(
    "/api/semesters/<semester_id>",
    endpoint="api_remove_semester",
    view_func=remove_semester_endpoint,
    methods=["DELETE"],
)
app.add_url_rule("/api/audit", endpoint="api_audit", view_func=audit_endpoint, methods=["POST"])
app.add_url_rule("/api/transfer", endpoint="api_add_transfer", view_func=add_transfer_endpoint, methods=["POST"])
app.add_url_rule(
    "/api/transfer/<transfer_id>/map",
    endpoint="api_map_transfer",
    view_func=map_transfer_endpoint,
    methods=["POST"],
)
app.add_url_rule("/api/reset", endpoint="api_reset", view_func=reset_endpoint, methods=["POST"])


# -- API catch-all (404 for unknown /api/* routes) -------------------
@app.route("/api/<path:rest>", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def api_catch_all(rest):
    return jsonify({"error": f"/api/{rest} not found"}), 404


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
