import logging
from dataclasses import asdict
from datetime import date
from typing import List, Literal, Optional

from fastapi import FastAPI, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from seating.allocator import generate_seating
from seating.database import Base, engine, get_db
from seating.db_models import (
    ClassroomDB,
    CohortDB,
    LearningStyleDB,
    SeatingChartDB,
    SeatingPreferenceDB,
    StudentDB,
)
from seating.exports import export_chart_excel, export_chart_pdf
from seating.layouts import CLASSROOM, generate_layout, validate_assignments
from seating.models import SeatAssignment
from seating.providers import (
    load_assignments,
    load_learning_styles,
    load_preferences,
    load_roster,
    replace_assignments,
    unassigned_students,
)
from seating.reports import learning_style_distribution, table_distribution
from seating.roster_import import RosterImportError, roster_import_excel

logger = logging.getLogger(__name__)

app = FastAPI(title = "Seating Chart API")

Base.metadata.create_all(bind = engine)


PrimaryStyleName = Literal["audio", "visual", "kinesthetic"]
SocialStyleName = Literal["social", "independent"]


class CohortIn(BaseModel):
    name: str


class StudentIn(BaseModel):
    cohort_id: int
    first_name: str
    last_name: str
    agency: Optional[str] = None
    status: Literal["active", "inactive"] = "active"


class LearningStyleIn(BaseModel):
    student_id: int
    primary_style: Optional[PrimaryStyleName] = None
    social_style: Optional[SocialStyleName] = None
    processing_style: Optional[Literal["analytical", "global"]] = None
    structure_style: Optional[Literal["structured", "flexible"]] = None
    assessed_date: Optional[date] = None
    notes: Optional[str] = None


class PreferenceIn(BaseModel):
    student_id: int
    other_student_id: int
    preference_type: Literal["avoid", "prefer_near"]
    reason: Optional[str] = None


class ClassroomIn(BaseModel):
    name: str


class ChartIn(BaseModel):
    cohort_id: int
    classroom_id: Optional[int] = None
    name: Optional[str] = None


class ChartUpdate(BaseModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None


class AssignmentIn(BaseModel):
    student_id: int
    table_number: int = Field(ge=0)
    seat_position: int = Field(ge=1)
    row_number: int = Field(ge=1)
    is_overflow: bool = False


class AssignmentsIn(BaseModel):
    assignments: List[AssignmentIn]


def _get_or_404(db, model, obj_id, label):
    obj = db.query(model).filter(model.id == obj_id).first()
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


def _student_dict(s):
    return {"id": s.id, "first_name": s.first_name, "last_name": s.last_name, "agency": s.agency}


def _style_dict(ls):
    return {
        "id": ls.id,
        "student_id": ls.student_id,
        "primary_style": ls.primary_style,
        "social_style": ls.social_style,
        "processing_style": ls.processing_style,
        "structure_style": ls.structure_style,
        "assessed_date": ls.assessed_date.isoformat() if ls.assessed_date else None,
        "notes": ls.notes,
    }


def _preference_dict(p):
    return {
        "id": p.id,
        "student_id": p.student_id,
        "other_student_id": p.other_student_id,
        "preference_type": p.preference_type,
        "reason": p.reason,
    }


def _chart_dict(c):
    return {
        "id": c.id,
        "name": c.name,
        "is_active": c.is_active,
        "cohort_id": c.cohort_id,
        "classroom_id": c.classroom_id,
        "created_at": c.created_at.isoformat() if c.created_at else None,
        "updated_at": c.updated_at.isoformat() if c.updated_at else None,
    }


def _classroom_dict(c):
    return {
        "id": c.id,
        "name": c.name,
        "rows": c.rows,
        "tables_per_row": c.tables_per_row,
        "seats_per_table": c.seats_per_table,
        "overflow_seats": c.overflow_seats,
    }


def _cohort_student_ids(db, cohort_id):
    return [
        sid
        for (sid,) in db.query(StudentDB.id).filter(StudentDB.cohort_id == cohort_id).all()
    ]


@app.get("/")
def root():
    return {"message": "Seating Chart API is running !"}


@app.post("/cohorts")
def create_cohort(body: CohortIn, db: Session = Depends(get_db)):
    existing = db.query(CohortDB).filter(CohortDB.name == body.name).first()
    if existing:
        raise HTTPException(status_code=400, detail=f"Cohort {body.name} already exists")

    cohort = CohortDB(name=body.name)
    db.add(cohort)
    db.commit()
    db.refresh(cohort)
    return {"id": cohort.id, "name": cohort.name}


@app.get("/cohorts")
def get_cohorts(db: Session = Depends(get_db)):
    return [{"id": c.id, "name": c.name} for c in db.query(CohortDB).order_by(CohortDB.id).all()]


@app.post("/students")
def create_student(body: StudentIn, db: Session = Depends(get_db)):
    _get_or_404(db, CohortDB, body.cohort_id, "Cohort")

    student = StudentDB(**body.model_dump())
    db.add(student)
    db.commit()
    db.refresh(student)
    return _student_dict(student)


@app.get("/students")
def get_students(cohort_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(StudentDB)
    if cohort_id is not None:
        query = query.filter(StudentDB.cohort_id == cohort_id)
    return [
        {**_student_dict(s), "cohort_id": s.cohort_id, "status": s.status}
        for s in query.order_by(StudentDB.id).all()
    ]


@app.post("/students/import")
def import_students_from_excel(
    cohort_id: int = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    _get_or_404(db, CohortDB, cohort_id, "Cohort")

    try:
        students, styles, preferences = roster_import_excel(file.file)
    except RosterImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # workbook ids -> database ids
    id_map = {}
    inserted = 0
    skipped = 0

    for s in students:
        existing = (
            db.query(StudentDB)
            .filter(StudentDB.cohort_id == cohort_id)
            .filter(StudentDB.first_name == s.first_name)
            .filter(StudentDB.last_name == s.last_name)
            .first()
        )
        if existing:
            id_map[s.id] = existing.id
            skipped += 1
            continue

        student = StudentDB(
            cohort_id=cohort_id,
            first_name=s.first_name,
            last_name=s.last_name,
            agency=s.agency,
        )
        db.add(student)
        db.flush()
        id_map[s.id] = student.id
        inserted += 1

    style_count = 0
    for ls in styles:
        if ls.student_id not in id_map:
            continue
        style_count += 1
        row = db.query(LearningStyleDB).filter(LearningStyleDB.student_id == id_map[ls.student_id]).first()
        if not row:
            row = LearningStyleDB(student_id=id_map[ls.student_id])
            db.add(row)
            db.flush()
        row.primary_style = ls.primary.value if ls.primary else None
        row.social_style = ls.social.value if ls.social else None

    pref_count = 0
    for p in preferences:
        a, b = id_map.get(p.student_id), id_map.get(p.other_student_id)
        if a is None or b is None or a == b:
            continue
        exists = (
            db.query(SeatingPreferenceDB)
            .filter(SeatingPreferenceDB.student_id.in_((a, b)))
            .filter(SeatingPreferenceDB.other_student_id.in_((a, b)))
            .first()
        )
        if exists:
            continue
        db.add(SeatingPreferenceDB(student_id=a, other_student_id=b, preference_type="avoid" if p.is_avoid else "prefer_near"))
        db.flush()
        pref_count += 1

    db.commit()
    logger.info("Roster import into cohort %s: %d inserted, %d skipped", cohort_id, inserted, skipped)

    return {
        "message": "Student import completed ✅",
        "inserted": inserted,
        "skipped_duplicates": skipped,
        "learning_styles": style_count,
        "preferences": pref_count,
    }


@app.get("/learning-styles")
def get_learning_styles(cohort_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(LearningStyleDB)
    if cohort_id is not None:
        query = query.filter(LearningStyleDB.student_id.in_(_cohort_student_ids(db, cohort_id)))
    return [_style_dict(ls) for ls in query.order_by(LearningStyleDB.id).all()]


@app.post("/learning-styles")
def save_learning_style(body: LearningStyleIn, db: Session = Depends(get_db)):
    _get_or_404(db, StudentDB, body.student_id, "Student")

    row = db.query(LearningStyleDB).filter(LearningStyleDB.student_id == body.student_id).first()
    if not row:
        row = LearningStyleDB(student_id=body.student_id)
        db.add(row)

    for key, value in body.model_dump(exclude={"student_id"}).items():
        setattr(row, key, value)

    db.commit()
    db.refresh(row)
    return _style_dict(row)


@app.delete("/learning-styles/{style_id}")
def delete_learning_style(style_id: int, db: Session = Depends(get_db)):
    row = _get_or_404(db, LearningStyleDB, style_id, "Learning style")
    db.delete(row)
    db.commit()
    return {"message": "Learning style deleted", "id": style_id}


@app.get("/preferences")
def get_preferences(cohort_id: Optional[int] = None, db: Session = Depends(get_db)):
    if cohort_id is None:
        rows = db.query(SeatingPreferenceDB).order_by(SeatingPreferenceDB.id).all()
        return [_preference_dict(p) for p in rows]

    ids = _cohort_student_ids(db, cohort_id)
    rows = (
        db.query(SeatingPreferenceDB)
        .filter(SeatingPreferenceDB.student_id.in_(ids) | SeatingPreferenceDB.other_student_id.in_(ids))
        .order_by(SeatingPreferenceDB.id)
        .all()
    )
    return [_preference_dict(p) for p in rows]


@app.post("/preferences")
def create_preference(body: PreferenceIn, db: Session = Depends(get_db)):
    if body.student_id == body.other_student_id:
        raise HTTPException(status_code=400, detail="A student cannot have a preference about themselves")

    _get_or_404(db, StudentDB, body.student_id, "Student")
    _get_or_404(db, StudentDB, body.other_student_id, "Student")

    pair = {body.student_id, body.other_student_id}
    for p in db.query(SeatingPreferenceDB).filter(SeatingPreferenceDB.student_id.in_(pair)).all():
        if {p.student_id, p.other_student_id} == pair:
            raise HTTPException(status_code=400, detail="A preference for this pair already exists")

    pref = SeatingPreferenceDB(**body.model_dump())
    db.add(pref)
    db.commit()
    db.refresh(pref)
    return _preference_dict(pref)


@app.delete("/preferences/{preference_id}")
def delete_preference(preference_id: int, db: Session = Depends(get_db)):
    pref = _get_or_404(db, SeatingPreferenceDB, preference_id, "Preference")
    db.delete(pref)
    db.commit()
    return {"message": "Preference deleted", "id": preference_id}


@app.post("/classrooms")
def create_classroom(body: ClassroomIn, db: Session = Depends(get_db)):
    existing = db.query(ClassroomDB).filter(ClassroomDB.name == body.name).first()
    if existing:
        return {"message": f"Classroom {body.name} already exists", **_classroom_dict(existing)}

    classroom = ClassroomDB(
        name=body.name,
        rows=len(CLASSROOM.rows),
        tables_per_row=len(CLASSROOM.rows[0].tables),
        seats_per_table=CLASSROOM.seats_per_table,
        overflow_seats=CLASSROOM.overflow_seats,
    )
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return {"message": "Classroom created ✅", **_classroom_dict(classroom)}


@app.get("/classrooms")
def get_classrooms(db: Session = Depends(get_db)):
    return [_classroom_dict(c) for c in db.query(ClassroomDB).order_by(ClassroomDB.id).all()]


@app.get("/classrooms/{classroom_id}/tables")
def get_tables(classroom_id: int, db: Session = Depends(get_db)):
    classroom = _get_or_404(db, ClassroomDB, classroom_id, "Classroom")
    tables = generate_layout()

    return {
        "classroom": classroom.name,
        "total_seats": CLASSROOM.capacity,
        "tables": [
            {
                "table_number": t.number,
                "row": t.row,
                "side": t.side.value,
                "style": t.style.value if t.style else None,
                "seats": t.seats,
            }
            for t in tables
        ],
    }


@app.post("/charts")
def create_chart(body: ChartIn, db: Session = Depends(get_db)):
    cohort = _get_or_404(db, CohortDB, body.cohort_id, "Cohort")

    if body.classroom_id is not None:
        classroom = _get_or_404(db, ClassroomDB, body.classroom_id, "Classroom")
    else:
        classroom = db.query(ClassroomDB).order_by(ClassroomDB.id).first()
        if not classroom:
            raise HTTPException(status_code=400, detail="Create a classroom first")

    chart = SeatingChartDB(
        name=body.name or f"{cohort.name} Seating",
        cohort_id=cohort.id,
        classroom_id=classroom.id,
    )
    db.add(chart)
    db.commit()
    db.refresh(chart)
    return _chart_dict(chart)


@app.get("/charts")
def get_charts(cohort_id: Optional[int] = None, db: Session = Depends(get_db)):
    query = db.query(SeatingChartDB)
    if cohort_id is not None:
        query = query.filter(SeatingChartDB.cohort_id == cohort_id)
    return [_chart_dict(c) for c in query.order_by(SeatingChartDB.id).all()]


@app.get("/charts/{chart_id}")
def get_chart(chart_id: int, db: Session = Depends(get_db)):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")

    roster = load_roster(db, chart.cohort_id)
    ids = [s.id for s in roster]
    students_by_id = {s.id: s for s in roster}

    return {
        "chart": _chart_dict(chart),
        "classroom": _classroom_dict(chart.classroom),
        "assignments": [
            {**a.as_dict(), "student": _student_dict(students_by_id[a.student_id])}
            if a.student_id in students_by_id else a.as_dict()
            for a in load_assignments(db, chart)
        ],
        "unassigned_students": [_student_dict(s) for s in unassigned_students(db, chart)],
        "learning_styles": [asdict(ls) for ls in load_learning_styles(db, ids)],
        "preferences": [asdict(p) for p in load_preferences(db, ids)],
    }


@app.put("/charts/{chart_id}")
def update_chart(chart_id: int, body: ChartUpdate, db: Session = Depends(get_db)):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")

    if body.name is not None:
        chart.name = body.name
    if body.is_active:
        (
            db.query(SeatingChartDB)
            .filter(SeatingChartDB.cohort_id == chart.cohort_id)
            .filter(SeatingChartDB.id != chart.id)
            .update({SeatingChartDB.is_active: False})
        )
        chart.is_active = True
    elif body.is_active is not None:
        chart.is_active = False

    db.commit()
    db.refresh(chart)
    return _chart_dict(chart)


@app.delete("/charts/{chart_id}")
def delete_chart(chart_id: int, db: Session = Depends(get_db)):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")
    db.delete(chart)
    db.commit()
    return {"message": "Chart deleted", "id": chart_id}


@app.post("/charts/{chart_id}/generate")
def generate_chart(chart_id: int, db: Session = Depends(get_db)):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")

    students = load_roster(db, chart.cohort_id)
    ids = [s.id for s in students]
    result = generate_seating(students, load_learning_styles(db, ids), load_preferences(db, ids))

    replace_assignments(db, chart, result.assignments)
    logger.info("Generated chart %s with %d warnings", chart_id, len(result.warnings))

    return {"message": "Seating generated ✅", **result.as_dict()}


@app.put("/charts/{chart_id}/assignments")
def save_assignments(chart_id: int, body: AssignmentsIn, db: Session = Depends(get_db)):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")

    assignments = [SeatAssignment(**a.model_dump()) for a in body.assignments]
    roster_ids = set(_cohort_student_ids(db, chart.cohort_id))
    strangers = sorted({a.student_id for a in assignments} - roster_ids)
    if strangers:
        raise HTTPException(status_code=400, detail=f"Students not in this cohort: {strangers}")

    try:
        validate_assignments(assignments)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    replace_assignments(db, chart, assignments, manual=True)
    return {"message": "Seating chart saved ✅", "saved": len(assignments)}


@app.get("/reports/learning-styles")
def learning_style_report(
    cohort_id: Optional[int] = None,
    chart_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    if cohort_id is None and chart_id is None:
        raise HTTPException(status_code=400, detail="cohort_id or chart_id is required")

    chart = None
    if chart_id is not None:
        chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")
        cohort_id = chart.cohort_id
    else:
        _get_or_404(db, CohortDB, cohort_id, "Cohort")

    students = load_roster(db, cohort_id)
    styles = load_learning_styles(db, [s.id for s in students])
    report = learning_style_distribution(students, styles)
    if chart is not None:
        report["by_table"] = table_distribution(load_assignments(db, chart), styles)
    return report


def _chart_export_inputs(db, chart_id):
    chart = _get_or_404(db, SeatingChartDB, chart_id, "Chart")
    assignments = load_assignments(db, chart)
    if not assignments:
        raise HTTPException(status_code=404, detail="No assignments found. Generate the chart first.")
    return chart, assignments, load_roster(db, chart.cohort_id)


@app.get("/charts/{chart_id}/export/excel")
def export_excel(chart_id: int, db: Session = Depends(get_db)):
    chart, assignments, students = _chart_export_inputs(db, chart_id)
    file_path = export_chart_excel(chart.id, assignments, students)

    return FileResponse(
        path=str(file_path),
        filename=file_path.name,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )


@app.get("/charts/{chart_id}/export/pdf")
def export_pdf(chart_id: int, db: Session = Depends(get_db)):
    chart, assignments, students = _chart_export_inputs(db, chart_id)
    file_path = export_chart_pdf(chart.id, chart.name, assignments, students)

    return FileResponse(
        path=str(file_path),
        filename=file_path.name,
        media_type="application/pdf"
    )
