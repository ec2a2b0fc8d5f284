import os
import tempfile

# Must be set before seating.database is imported.
os.environ["SEATING_DATABASE_URL"] = "sqlite://"
os.environ["SEATING_EXPORT_DIR"] = tempfile.mkdtemp(prefix="seating-exports-")

import pytest
from fastapi.testclient import TestClient

from seating.database import Base, engine
from seating.main_api import app
from seating.models import LearningStyleProfile, SeatingPreference, Student


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as c:
        yield c


def make_students(count, prefix="S", agency=None, start=0):
    return [
        Student(id=f"{prefix}{i}", first_name=f"{prefix}{i}", last_name="Doe", agency=agency)
        for i in range(start, start + count)
    ]


def style(student, primary=None, social=None):
    return LearningStyleProfile(student_id=student.id, primary_style=primary, social_style=social)


def avoid(a, b):
    return SeatingPreference(student_id=a.id, other_student_id=b.id, kind="avoid")
