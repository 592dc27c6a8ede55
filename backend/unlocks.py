from catalog import Catalog


def build_reverse_prereq_map(catalog: Catalog) -> dict[str, list[dict]]:
    """
    Builds a reverse prerequisite map: for each course, which courses directly
    list it as a regular or concurrent prerequisite.

    Returns: {"CS111": [{"course_id": "CS141", "concurrent": False}, ...], ...}

    Only direct prerequisites (one level deep). No transitive graph traversal.
    A course listed both ways is recorded once, as a regular prerequisite.
    """
    reverse: dict[str, list[dict]] = {}

    for course in catalog:
        for prereq_code in course.prerequisites:
            reverse.setdefault(prereq_code, [])
            if not any(d["course_id"] == course.course_id for d in reverse[prereq_code]):
                reverse[prereq_code].append({"course_id": course.course_id, "concurrent": False})
        for prereq_code in course.concurrent_prerequisites:
            reverse.setdefault(prereq_code, [])
            if not any(d["course_id"] == course.course_id for d in reverse[prereq_code]):
                reverse[prereq_code].append({"course_id": course.course_id, "concurrent": True})

    return reverse


def get_direct_unlocks(
    course_id: str,
    reverse_map: dict[str, list[dict]],
    limit: int = 3,
) -> list[str]:
    """
    Returns up to `limit` courses directly unlocked by scheduling `course_id`.
    A course is "unlocked" if it lists `course_id` as a direct prerequisite.
    """
    return [d["course_id"] for d in reverse_map.get(course_id, [])][:limit]
