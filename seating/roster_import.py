import logging
import zipfile

import pandas as pd

from seating.models import LearningStyleProfile, SeatingPreference, Student

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = {"id", "first_name", "last_name"}
STYLE_COLUMNS = {"student_id", "primary_style", "social_style"}
PREFERENCE_COLUMNS = {"student_id", "other_student_id", "preference_type"}


class RosterImportError(ValueError):
    pass


def _cell(value):
    if pd.isna(value):
        return None
    if hasattr(value, "item"):
        value = value.item()  # numpy scalar
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip() if isinstance(value, str) else value
    return text if text != "" else None


def _require(df, columns, sheet):
    missing = columns - set(df.columns)
    if missing:
        raise RosterImportError(f"Sheet '{sheet}' is missing columns: {sorted(missing)}")


def read_students(df):
    _require(df, STUDENT_COLUMNS, "students")
    students = []

    for _, row in df.iterrows():
        students.append(
            Student(
                id = _cell(row["id"]),
                first_name = str(_cell(row["first_name"]) or ""),
                last_name = str(_cell(row["last_name"]) or ""),
                agency = _cell(row["agency"]) if "agency" in df.columns else None
            )
        )

    return students


def read_learning_styles(df):
    _require(df, STYLE_COLUMNS, "learning_styles")
    return [
        LearningStyleProfile(
            student_id=_cell(row["student_id"]),
            primary_style=_cell(row["primary_style"]),
            social_style=_cell(row["social_style"]),
        )
        for _, row in df.iterrows()
    ]


def read_preferences(df):
    _require(df, PREFERENCE_COLUMNS, "preferences")
    return [
        SeatingPreference(
            student_id=_cell(row["student_id"]),
            other_student_id=_cell(row["other_student_id"]),
            kind=_cell(row["preference_type"]) or "avoid",
        )
        for _, row in df.iterrows()
    ]


def roster_import_excel(source):
    """Read a roster workbook (path or open file) into (students, learning_styles, preferences).

    The ``students`` sheet is required; ``learning_styles`` and
    ``preferences`` are optional. A single-sheet workbook is read as the
    student list.
    """

    try:
        sheets = pd.read_excel(source, sheet_name=None)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise RosterImportError(f"Excel read failed: {e}") from e

    if "students" in sheets:
        students_df = sheets["students"]
    elif len(sheets) == 1:
        students_df = next(iter(sheets.values()))
    else:
        raise RosterImportError("Workbook has no 'students' sheet")

    students = read_students(students_df)
    styles = read_learning_styles(sheets["learning_styles"]) if "learning_styles" in sheets else []
    preferences = read_preferences(sheets["preferences"]) if "preferences" in sheets else []

    logger.info(
        "Imported %d students, %d learning styles, %d preferences from %s",
        len(students), len(styles), len(preferences), getattr(source, "name", source),
    )
    return students, styles, preferences
