import re
import sys
from dataclasses import dataclass, field

from requirements import SEMESTER_STATUSES


SEM_ID_RE = re.compile(r"^(Spring|Summer|Fall|Winter)(\d{4})$")

# Forward-planning cycle. Fall starts the academic year.
ACADEMIC_TERM_ORDER = {"Fall": 0, "Spring": 1, "Summer": 2}

# Calendar order within one year; used for audit history, not planning.
CHRONOLOGICAL_TERM_ORDER = {"Spring": 0, "Summer": 1, "Fall": 2, "Winter": 3}


@dataclass
class Slot:
    """
    One semester of the plan.

    sequence_index is the slot's position in the chronological sequence and
    the only thing prerequisite ordering compares.
    """
    semester_id: str
    term: str
    year: int
    courses: list = field(default_factory=list)
    credits: float = 0
    status: str = "planned"
    sequence_index: int = 0

    @property
    def label(self) -> str:
        return f"{self.term} {self.year}"

    def to_dict(self) -> dict:
        credits = int(self.credits) if float(self.credits).is_integer() else self.credits
        return {
            "id": self.semester_id,
            "term": self.term,
            "year": self.year,
            "courses": list(self.courses),
            "credits": credits,
            "status": self.status,
            "sequenceIndex": self.sequence_index,
        }

    @classmethod
    def from_dict(cls, raw: dict, sequence_index: int) -> "Slot":
        """Build a slot from its persisted form. Raises ValueError on bad shape."""
        if not isinstance(raw, dict):
            raise ValueError(f"semester record is not an object: {raw!r}")
        sem_id = str(raw.get("id") or "").strip()
        parsed = parse_semester_id(sem_id)
        if parsed is None:
            raise ValueError(f"bad semester id: {sem_id!r}")
        term, year = parsed
        courses = raw.get("courses", [])
        if not isinstance(courses, list):
            raise ValueError(f"courses for {sem_id} is not a list")
        status = str(raw.get("status") or "planned")
        if status not in SEMESTER_STATUSES:
            raise ValueError(f"bad status for {sem_id}: {status!r}")
        try:
            credits = float(raw.get("credits", 0) or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"bad credits for {sem_id}") from exc
        return cls(
            semester_id=sem_id,
            term=term,
            year=year,
            courses=[str(c) for c in courses],
            credits=credits,
            status=status,
            sequence_index=sequence_index,
        )


def semester_id(term: str, year: int) -> str:
    return f"{term}{year}"


def parse_semester_id(sem_id: str) -> tuple[str, int] | None:
    """'Fall2025' -> ('Fall', 2025). None when not a semester id."""
    m = SEM_ID_RE.match((sem_id or "").strip())
    if not m:
        return None
    return m.group(1), int(m.group(2))


def chronological_key(sem_id: str) -> tuple[int, int]:
    """Sort key for calendar history: year major, then Spring/Summer/Fall/Winter."""
    parsed = parse_semester_id(sem_id)
    if parsed is None:
        return (10**6, 0)
    term, year = parsed
    return (year, CHRONOLOGICAL_TERM_ORDER[term])


def next_semester(term: str, year: int, include_summer: bool = False) -> tuple[str, int]:
    """
    Successor of one semester under the planning cycle:
    - Fall YYYY   -> Spring YYYY+1
    - Spring YYYY -> Summer YYYY (with summer) or Fall YYYY
    - Summer YYYY -> Fall YYYY
    - Winter YYYY -> Spring YYYY+1
    """
    if term == "Fall":
        return "Spring", year + 1
    if term == "Spring":
        return ("Summer", year) if include_summer else ("Fall", year)
    if term == "Summer":
        return "Fall", year
    if term == "Winter":
        return "Spring", year + 1
    raise ValueError(f"Unknown term: {term!r}")


def generate_semesters(
    start_year: int = 2025,
    start_term: str = "Fall",
    include_summer: bool = False,
) -> list[Slot]:
    """
    Generate the default run of semesters: 8 Fall/Spring slots, or 12 when
    Summer is part of the cycle. The first slot is current.

    Fall 2025 -> Spring 2026 -> Fall 2026 -> Spring 2027 ...
    """
    terms = ["Fall", "Spring", "Summer"] if include_summer else ["Fall", "Spring"]
    term_index = ACADEMIC_TERM_ORDER.get(start_term, 0)
    if term_index >= len(terms):
        term_index = 0
    current_year = int(start_year)
    total = 12 if include_summer else 8

    slots: list[Slot] = []
    for i in range(total):
        term = terms[term_index]
        slots.append(Slot(
            semester_id=semester_id(term, current_year),
            term=term,
            year=current_year,
            status="current" if i == 0 else "planned",
            sequence_index=i,
        ))
        term_index += 1
        if term_index >= len(terms):
            # Wrap back to Fall; the year only moves on Fall -> Spring.
            term_index = 0
        elif term == "Fall" and terms[term_index] == "Spring":
            current_year += 1
    return slots


def generate_from_observed_semesters(semester_ids) -> list[Slot]:
    """
    One slot per distinct semester seen in an audit, in calendar order.

    No slots are invented for gaps or for future planning.
    """
    valid: set[str] = set()
    for sem_id in semester_ids:
        if parse_semester_id(sem_id) is None:
            print(f"[WARN] Ignoring unrecognized semester id from audit: {sem_id!r}", file=sys.stderr)
            continue
        valid.add(sem_id)

    slots: list[Slot] = []
    for i, sem_id in enumerate(sorted(valid, key=chronological_key)):
        term, year = parse_semester_id(sem_id)
        slots.append(Slot(semester_id=sem_id, term=term, year=year, sequence_index=i))
    return slots
