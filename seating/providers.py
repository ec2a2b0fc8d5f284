"""Load engine inputs from the database and store its output."""

import logging

from sqlalchemy import or_

from seating.db_models import LearningStyleDB, SeatAssignmentDB, SeatingPreferenceDB, StudentDB
from seating.models import LearningStyleProfile, SeatAssignment, SeatingPreference, Student

logger = logging.getLogger(__name__)


def to_student(s):
    return Student(id=s.id, first_name=s.first_name, last_name=s.last_name, agency=s.agency or None)


def load_roster(db, cohort_id):
    """Active students of a cohort, in a stable order so generation is repeatable."""

    rows = (
        db.query(StudentDB)
        .filter(StudentDB.cohort_id == cohort_id)
        .filter(StudentDB.status == "active")
        .order_by(StudentDB.last_name, StudentDB.first_name, StudentDB.id)
        .all()
    )
    return [to_student(s) for s in rows]


def load_learning_styles(db, student_ids):
    if not student_ids:
        return []
    rows = (
        db.query(LearningStyleDB)
        .filter(LearningStyleDB.student_id.in_(student_ids))
        .order_by(LearningStyleDB.id)
        .all()
    )
    return [
        LearningStyleProfile(
            student_id=ls.student_id,
            primary_style=ls.primary_style,
            social_style=ls.social_style,
        )
        for ls in rows
    ]


def load_preferences(db, student_ids):
    if not student_ids:
        return []
    rows = (
        db.query(SeatingPreferenceDB)
        .filter(
            or_(
                SeatingPreferenceDB.student_id.in_(student_ids),
                SeatingPreferenceDB.other_student_id.in_(student_ids),
            )
        )
        .order_by(SeatingPreferenceDB.id)
        .all()
    )
    return [
        SeatingPreference(
            student_id=p.student_id,
            other_student_id=p.other_student_id,
            kind=p.preference_type,
        )
        for p in rows
    ]


def replace_assignments(db, chart, assignments, manual=False):
    """Swap the chart's saved seats for ``assignments`` in one transaction."""

    try:
        db.query(SeatAssignmentDB).filter(SeatAssignmentDB.chart_id == chart.id).delete()
        for a in assignments:
            db.add(
                SeatAssignmentDB(
                    chart_id=chart.id,
                    student_id=a.student_id,
                    table_number=a.table_number,
                    seat_position=a.seat_position,
                    row_number=a.row_number,
                    is_overflow=a.is_overflow,
                    is_manual_override=manual,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Chart %s now holds %d assignments (manual=%s)", chart.id, len(assignments), manual)


def load_assignments(db, chart):
    rows = (
        db.query(SeatAssignmentDB)
        .filter(SeatAssignmentDB.chart_id == chart.id)
        .order_by(SeatAssignmentDB.is_overflow, SeatAssignmentDB.table_number, SeatAssignmentDB.seat_position)
        .all()
    )
    return [
        SeatAssignment(
            student_id=a.student_id,
            table_number=a.table_number,
            seat_position=a.seat_position,
            row_number=a.row_number,
            is_overflow=a.is_overflow,
        )
        for a in rows
    ]


def unassigned_students(db, chart):
    assigned = {a.student_id for a in load_assignments(db, chart)}
    return [s for s in load_roster(db, chart.cohort_id) if s.id not in assigned]
