from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from seating.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class CohortDB(Base):
    __tablename__ = "cohorts"

    id = Column(Integer, primary_key = True, index = True)
    name = Column(String, unique = True, nullable = False)

    students = relationship("StudentDB", back_populates="cohort")


class StudentDB(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key = True, index = True)
    first_name = Column(String, nullable = False)
    last_name = Column(String, nullable = False)
    agency = Column(String, nullable = True)
    status = Column(String, nullable = False, default = "active")

    cohort_id = Column(Integer, ForeignKey("cohorts.id"), nullable = False, index = True)
    cohort = relationship("CohortDB", back_populates="students")
    learning_style = relationship(
        "LearningStyleDB", back_populates="student", uselist=False, cascade="all, delete"
    )


class LearningStyleDB(Base):
    __tablename__ = "student_learning_styles"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), unique=True, nullable=False)

    # audio / visual / kinesthetic, social / independent; NULL means not assessed
    primary_style = Column(String, nullable=True)
    social_style = Column(String, nullable=True)
    processing_style = Column(String, nullable=True)
    structure_style = Column(String, nullable=True)
    assessed_date = Column(Date, nullable=True)
    notes = Column(String, nullable=True)

    student = relationship("StudentDB", back_populates="learning_style")


class SeatingPreferenceDB(Base):
    __tablename__ = "seating_preferences"
    __table_args__ = (UniqueConstraint("student_id", "other_student_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    other_student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    preference_type = Column(String, nullable=False)  # avoid / prefer_near
    reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    student = relationship("StudentDB", foreign_keys=[student_id])
    other_student = relationship("StudentDB", foreign_keys=[other_student_id])


class ClassroomDB(Base):
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    rows = Column(Integer, nullable=False, default=4)
    tables_per_row = Column(Integer, nullable=False, default=2)
    seats_per_table = Column(Integer, nullable=False, default=3)
    overflow_seats = Column(Integer, nullable=False, default=3)


class SeatingChartDB(Base):
    __tablename__ = "seating_charts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    cohort_id = Column(Integer, ForeignKey("cohorts.id"), nullable=False)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), nullable=False)

    cohort = relationship("CohortDB")
    classroom = relationship("ClassroomDB")
    assignments = relationship("SeatAssignmentDB", back_populates="chart", cascade="all, delete")


class SeatAssignmentDB(Base):
    __tablename__ = "seat_assignments"

    id = Column(Integer, primary_key=True, index=True)

    chart_id = Column(Integer, ForeignKey("seating_charts.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    table_number = Column(Integer, nullable=False)  # 0 = overflow
    seat_position = Column(Integer, nullable=False)
    row_number = Column(Integer, nullable=False)  # 5 = overflow
    is_overflow = Column(Boolean, nullable=False, default=False)
    is_manual_override = Column(Boolean, nullable=False, default=False)

    chart = relationship("SeatingChartDB", back_populates="assignments")
    student = relationship("StudentDB")
