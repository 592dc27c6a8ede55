import os

import pandas as pd

from catalog import Catalog, Course
from normalizer import normalize_code, display_code
from requirements import CATEGORIES


_NONE_VALUES = {"", "none", "none listed", "n/a", "nan"}

_REQUIRED_COLUMNS = ["course_code", "course_name", "credits"]


def _split_prereq_col(raw) -> tuple:
    """
    'CS141; CS151' -> ('CS141', 'CS151').

    Blank tokens are dropped; unparseable tokens are kept verbatim so the
    integrity check below can report them.
    """
    if raw is None or (isinstance(raw, float) and pd.isna(raw)):
        return ()
    s = str(raw).strip()
    if s.lower() in _NONE_VALUES:
        return ()
    out = []
    for token in s.replace(",", ";").split(";"):
        token = token.strip()
        if not token or token.lower() in _NONE_VALUES:
            continue
        code = normalize_code(token) or token
        if code not in out:
            out.append(code)
    return tuple(out)


def _normalize_category(raw) -> str:
    k = str(raw or "").strip().lower()
    if k in CATEGORIES:
        return k
    if k in {"gen", "gened", "gen_ed", "general_education"}:
        return "general"
    return "elective"


def _coerce_credits(raw) -> float | None:
    val = pd.to_numeric(raw, errors="coerce")
    if pd.isna(val) or float(val) <= 0:
        return None
    # Half credits are the finest granularity the plan tracks.
    return round(float(val) * 2) / 2


def _read_courses_frame(data_path: str) -> pd.DataFrame:
    if data_path.lower().endswith((".xlsx", ".xls")):
        xl = pd.ExcelFile(data_path)
        return xl.parse("courses")
    if os.path.isdir(data_path):
        data_path = os.path.join(data_path, "courses.csv")
    return pd.read_csv(data_path, dtype=str, keep_default_na=False)


def _normalize_courses_df(courses_df: pd.DataFrame) -> pd.DataFrame:
    courses_df = courses_df.copy()
    missing = [c for c in _REQUIRED_COLUMNS if c not in courses_df.columns]
    if missing:
        raise ValueError(f"courses data is missing required column(s): {missing}")

    for col in ["display_code", "prereq_hard", "prereq_concurrent", "category", "description"]:
        if col not in courses_df.columns:
            courses_df[col] = ""

    courses_df["course_code"] = courses_df["course_code"].astype(str).str.strip()
    courses_df["course_code"] = courses_df["course_code"].apply(lambda c: normalize_code(c) or c.upper())
    courses_df["course_name"] = courses_df["course_name"].fillna("").astype(str).str.strip()
    courses_df["display_code"] = courses_df["display_code"].fillna("").astype(str).str.strip()
    courses_df["description"] = courses_df["description"].fillna("").astype(str).str.strip()
    courses_df["category"] = courses_df["category"].apply(_normalize_category)
    raw_credits = pd.to_numeric(courses_df["credits"], errors="coerce")
    courses_df["credits"] = courses_df["credits"].apply(_coerce_credits)
    rounded = courses_df.loc[
        courses_df["credits"].notna() & (raw_credits != courses_df["credits"]),
        "course_code",
    ]
    if not rounded.empty:
        print(f"[WARN] {len(rounded)} catalog credit value(s) rounded to the nearest half: {sorted(rounded)}")
    return courses_df


def load_data(data_path: str) -> dict:
    """Load and parse the course catalog. Raises on file/schema errors."""
    courses_df = _normalize_courses_df(_read_courses_frame(data_path))

    courses: list[Course] = []
    seen: set[str] = set()
    skipped: list[str] = []
    for _, row in courses_df.iterrows():
        code = row["course_code"]
        if not code or code in seen:
            skipped.append(code or "<blank>")
            continue
        if pd.isna(row["credits"]):
            skipped.append(code)
            continue
        seen.add(code)
        courses.append(Course(
            course_id=code,
            code=row["display_code"] or display_code(code),
            name=row["course_name"] or display_code(code),
            credits=float(row["credits"]),
            prerequisites=_split_prereq_col(row.get("prereq_hard")),
            concurrent_prerequisites=_split_prereq_col(row.get("prereq_concurrent")),
            category=row["category"],
            description=row["description"],
        ))

    if skipped:
        print(f"[WARN] {len(skipped)} catalog row(s) skipped (duplicate id or bad credits): {sorted(skipped)}")

    catalog = Catalog(courses)
    catalog_codes = set(catalog.base_ids())

    # ── Startup data integrity checks ──────────────────────────────────────
    referenced = set()
    for course in courses:
        referenced.update(course.prerequisites)
        referenced.update(course.concurrent_prerequisites)
    orphaned = referenced - catalog_codes
    if orphaned:
        print(f"[WARN] {len(orphaned)} prerequisite reference(s) not found in catalog: {sorted(orphaned)}")

    self_refs = [
        c.course_id for c in courses
        if c.course_id in c.prerequisites or c.course_id in c.concurrent_prerequisites
    ]
    if self_refs:
        print(f"[WARN] {len(self_refs)} course(s) list themselves as a prerequisite: {sorted(self_refs)}")

    return {
        "courses_df": courses_df,
        "catalog": catalog,
        "catalog_codes": catalog_codes,
    }
