"""
Course catalog.

The catalog is layered: an immutable base loaded from data/courses.csv at
startup, plus an overlay of entries synthesized during audit import for
courses the base catalog does not know. Lookups go through get(), which
returns None for unknown ids; callers handle absence explicitly.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from errors import NotFoundError
from normalizer import display_code


@dataclass(frozen=True)
class Course:
    """
    A single catalog entry.

    Attributes:
        course_id: Catalog key (e.g., "CS251")
        code: Display code (e.g., "CS 251")
        name: Course title
        credits: Credit hours; whole or half credits
        prerequisites: Ids that must sit in a strictly earlier semester
        concurrent_prerequisites: Ids that must sit in the same or an earlier semester
        category: One of core, math, science, elective, general
        description: Catalog blurb
        synthesized: True for entries created from audit records
    """
    course_id: str
    code: str
    name: str
    credits: float
    prerequisites: tuple = ()
    concurrent_prerequisites: tuple = ()
    category: str = "elective"
    description: str = ""
    synthesized: bool = False

    def to_dict(self) -> dict:
        credits = int(self.credits) if float(self.credits).is_integer() else self.credits
        return {
            "id": self.course_id,
            "code": self.code,
            "name": self.name,
            "credits": credits,
            "prerequisites": list(self.prerequisites),
            "concurrentPrerequisites": list(self.concurrent_prerequisites),
            "category": self.category,
            "description": self.description,
            "synthesized": self.synthesized,
        }


class Catalog:
    """Immutable base catalog plus a mutable overlay of synthesized courses."""

    def __init__(self, courses: Iterable[Course]):
        self._base = MappingProxyType({c.course_id: c for c in courses})
        self._overlay: dict[str, Course] = {}

    def get(self, course_id: str) -> Optional[Course]:
        if course_id in self._overlay:
            return self._overlay[course_id]
        return self._base.get(course_id)

    def require(self, course_id: str) -> Course:
        course = self.get(course_id)
        if course is None:
            raise NotFoundError("course", course_id)
        return course

    def __contains__(self, course_id) -> bool:
        return course_id in self._overlay or course_id in self._base

    def __iter__(self) -> Iterator[Course]:
        yield from self._base.values()
        for course_id, course in self._overlay.items():
            if course_id not in self._base:
                yield course

    def __len__(self) -> int:
        return len(set(self._base) | set(self._overlay))

    def ids(self) -> list[str]:
        return [c.course_id for c in self]

    def base_ids(self) -> frozenset:
        return frozenset(self._base)

    def overlay(self) -> dict[str, Course]:
        return dict(self._overlay)

    def display(self, course_id: str) -> str:
        """Display code for a course id, falling back to the id itself."""
        course = self.get(course_id)
        return course.code if course is not None else course_id

    def credits_of(self, course_id: str) -> float:
        course = self.get(course_id)
        return course.credits if course is not None else 0

    def add_synthesized(self, course: Course) -> None:
        if course.course_id in self._base:
            return
        self._overlay[course.course_id] = course

    def apply_overlay(self, courses: Iterable[Course]) -> None:
        for course in courses:
            self.add_synthesized(course)

    def clear_overlay(self) -> None:
        self._overlay.clear()

    def fork(self) -> "Catalog":
        """Same base, private copy of the overlay. Writes to the fork stay there."""
        forked = Catalog(())
        forked._base = self._base
        forked._overlay = dict(self._overlay)
        return forked


def synthesize_course(
    course_id: str,
    name: str | None,
    credits,
    category: str = "elective",
) -> Course:
    """Build an overlay entry for a course seen only in an audit document."""
    try:
        credit_value = float(credits)
    except (TypeError, ValueError):
        credit_value = 3.0
    if credit_value <= 0:
        credit_value = 3.0
    return Course(
        course_id=course_id,
        code=display_code(course_id),
        name=str(name or display_code(course_id)).strip(),
        credits=credit_value,
        category=category,
        description="Imported from degree audit",
        synthesized=True,
    )


def course_from_dict(raw: dict) -> Course:
    """Inverse of Course.to_dict() for saved overlay entries. Raises ValueError."""
    if not isinstance(raw, dict) or not raw.get("id"):
        raise ValueError(f"not a course record: {raw!r}")
    course_id = str(raw["id"])
    return Course(
        course_id=course_id,
        code=str(raw.get("code") or display_code(course_id)),
        name=str(raw.get("name") or display_code(course_id)),
        credits=float(raw.get("credits") or 0),
        prerequisites=tuple(raw.get("prerequisites") or ()),
        concurrent_prerequisites=tuple(raw.get("concurrentPrerequisites") or ()),
        category=str(raw.get("category") or "elective"),
        description=str(raw.get("description") or ""),
        synthesized=bool(raw.get("synthesized", True)),
    )
