# Degree rules for the B.S. in Computer Science plan. Fixed in code.

# Credits required to graduate.
GRADUATION_CREDITS = 128

# Average credit load used for the graduation projection.
CREDITS_PER_SEMESTER = 15

# Default plan: eight Fall/Spring semesters starting Fall 2025.
DEFAULT_START_YEAR = 2025
DEFAULT_START_TERM = "Fall"
DEFAULT_CURRENT_SEMESTER = "Spring2026"

TERMS = ("Fall", "Spring", "Summer", "Winter")
SEMESTER_STATUSES = ("planned", "current", "completed")
CATEGORIES = ("core", "math", "science", "elective", "general")

# Math electives (required statistics are tracked separately but share the cap).
MATH_ELECTIVES = (
    "MATH215", "MATH218", "MATH220", "MATH320", "MATH430",
    "MATH435", "MATH436", "MCS421", "MCS423", "MCS471",
    "STAT401", "STAT473",
)

# Exactly one of these may ever be scheduled.
REQUIRED_STATISTICS = ("IE342", "STAT381")

SCIENCE_ELECTIVES = (
    "BIOS110", "BIOS120", "CHEM122", "CHEM123", "CHEM116",
    "CHEM124", "CHEM125", "CHEM118", "PHYS141", "PHYS142",
    "EAES101", "EAES111",
)

# Technical (CS) electives.
TECHNICAL_ELECTIVES = (
    "CS407", "CS411", "CS418", "CS422", "CS440", "CS351",
)

# Course-count caps per elective category.
MATH_ELECTIVE_CAP = 3
SCIENCE_ELECTIVE_CAP = 2
TECHNICAL_ELECTIVE_CAP = 6

# Required math sequence; never counted as a discovered math elective.
CORE_MATH = ("MATH180", "MATH181", "MATH210")

# Audit-discovered technical electives: CS 300-499 outside the core.
TECH_ELECTIVE_DEPARTMENT = "CS"
TECH_ELECTIVE_MIN_NUMBER = 300
TECH_ELECTIVE_MAX_NUMBER = 499

# Audit-discovered math electives: these departments, numbered 200+.
MATH_ELECTIVE_DEPARTMENTS = ("MATH", "MCS", "STAT")
MATH_ELECTIVE_MIN_NUMBER = 200

# Gen-ed placeholder -> requirement category label used by audit documents.
GEN_ED_PLACEHOLDERS = {
    "GEN101": "Exploring World Cultures",
    "GEN102": "Understanding the Creative Arts",
    "GEN103": "Understanding the Past",
    "GEN104": "Understanding the Individual and Society",
    "GEN105": "Understanding U.S. Society",
    "GEN106": "Humanities/Social Sciences/Art Electives",
    "GEN107": "Humanities/Social Sciences/Art Electives",
}

# Alternate audit spellings of the gen-ed category labels.
GEN_ED_ALIASES = {
    "world cultures": "Exploring World Cultures",
    "creative arts": "Understanding the Creative Arts",
    "the past": "Understanding the Past",
    "individual and society": "Understanding the Individual and Society",
    "u.s. society": "Understanding U.S. Society",
    "us society": "Understanding U.S. Society",
    "additional electives": "Humanities/Social Sciences/Art Electives",
    "humanities/social sciences/art": "Humanities/Social Sciences/Art Electives",
}

FREE_ELECTIVE_PLACEHOLDERS = ("FREE001", "FREE002", "FREE003")
MATH_ELECTIVE_PLACEHOLDERS = ("MATHEL1", "MATHEL2", "MATHEL3")

# Grade markers meaning the student withdrew; such rows earn no credit.
WITHDRAWAL_GRADES = {"W", "WD", "WF", "WP", "WN", "DRP"}

# Audit term prefixes -> internal term names.
AUDIT_TERM_PREFIXES = {
    "FA": "Fall",
    "WS": "Fall",
    "SP": "Spring",
    "SU": "Summer",
    "WI": "Winter",
}

# Candidate successors tried by "add semester" before giving up.
MAX_APPEND_ATTEMPTS = 5


def placeholder_ids() -> set[str]:
    return (
        set(GEN_ED_PLACEHOLDERS)
        | set(FREE_ELECTIVE_PLACEHOLDERS)
        | set(MATH_ELECTIVE_PLACEHOLDERS)
    )


def gen_ed_category_for_label(label: str | None) -> str | None:
    """
    Map an audit requirement label onto a gen-ed category name.

    Matches the canonical names case-insensitively first, then the aliases.
    Returns None when the label is not a gen-ed category.
    """
    raw = str(label or "").strip().lower()
    if not raw:
        return None
    for category in GEN_ED_PLACEHOLDERS.values():
        if category.lower() in raw:
            return category
    for alias, category in GEN_ED_ALIASES.items():
        if alias in raw:
            return category
    return None


def placeholders_for_category(category: str) -> list[str]:
    """Gen-ed placeholder ids for a category, in id order."""
    return sorted(pid for pid, cat in GEN_ED_PLACEHOLDERS.items() if cat == category)


def is_withdrawal_grade(grade) -> bool:
    return str(grade or "").strip().upper() in WITHDRAWAL_GRADES
