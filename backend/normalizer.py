import re

from requirements import AUDIT_TERM_PREFIXES

# Matches: CS 251, CS-251, cs251, MATH 180, STAT 381A, etc.
CANONICAL = re.compile(r'^([A-Za-z]{2,6})\s*[-]?\s*(\d{3}[A-Za-z]?)$')

# Audit term codes: FA23, SP24, SU22, WI21, WS23.
AUDIT_TERM_RE = re.compile(r'^([A-Za-z]{2})\s*[-]?\s*(\d{2})$')

# Internal semester identifiers: Fall2025, Spring2026.
SEMESTER_ID_RE = re.compile(r'^(Fall|Spring|Summer|Winter)\s*(\d{4})$', re.IGNORECASE)


def normalize_code(raw: str) -> str | None:
    """
    Normalizes a course code to the compact catalog key 'DEPTNNN'.
    Handles: 'cs251', 'CS-251', 'CS 251', 'MATH 180'.
    Returns None if the string cannot be parsed as a course code.
    """
    if not raw or not str(raw).strip():
        return None
    m = CANONICAL.match(str(raw).strip())
    if m:
        return f"{m.group(1).upper()}{m.group(2).upper()}"
    return None


def split_code(course_id: str) -> tuple[str, int] | None:
    """'CS418' -> ('CS', 418). None when the id has no numeric part."""
    m = CANONICAL.match(str(course_id or "").strip())
    if not m:
        return None
    digits = re.match(r'\d+', m.group(2))
    return m.group(1).upper(), int(digits.group(0))


def display_code(course_id: str) -> str:
    """'CS418' -> 'CS 418'. Unparseable ids are returned unchanged."""
    m = CANONICAL.match(str(course_id or "").strip())
    if not m:
        return str(course_id or "")
    return f"{m.group(1).upper()} {m.group(2).upper()}"


def normalize_audit_term(raw: str) -> str | None:
    """
    Converts an audit term code to an internal semester id.

    'FA23' -> 'Fall2023', 'WS23' -> 'Fall2023', 'SP24' -> 'Spring2024'.
    Internal ids ('Fall2023', 'fall 2023') are accepted and canonicalized.
    Returns None for unknown prefixes or unparseable values.
    """
    s = str(raw or "").strip()
    if not s:
        return None
    m = SEMESTER_ID_RE.match(s)
    if m:
        return f"{m.group(1).capitalize()}{int(m.group(2))}"
    m = AUDIT_TERM_RE.match(s)
    if not m:
        return None
    term = AUDIT_TERM_PREFIXES.get(m.group(1).upper())
    if term is None:
        return None
    return f"{term}{2000 + int(m.group(2))}"
