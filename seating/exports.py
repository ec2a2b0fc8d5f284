import os
from pathlib import Path

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from seating.layouts import OVERFLOW_TABLE, generate_layout

EXPORT_DIR = Path(os.environ.get("SEATING_EXPORT_DIR", Path(__file__).resolve().parent / "exports"))


def _seat_rows(assignments, students_by_id):
    data = []
    for a in sorted(assignments, key=lambda a: (a.is_overflow, a.table_number, a.seat_position)):
        student = students_by_id.get(a.student_id)
        data.append({
            "student_id": a.student_id,
            "first_name": student.first_name if student else "",
            "last_name": student.last_name if student else "",
            "agency": (student.agency or "") if student else "",
            "table": "Overflow" if a.is_overflow else a.table_number,
            "seat": a.seat_position,
            "row": a.row_number,
        })
    return data


def export_chart_excel(name, assignments, students, export_dir=None):
    export_dir = Path(export_dir or EXPORT_DIR)
    export_dir.mkdir(parents=True, exist_ok=True)

    students_by_id = {s.id: s for s in students}
    df = pd.DataFrame(
        _seat_rows(assignments, students_by_id),
        columns=["student_id", "first_name", "last_name", "agency", "table", "seat", "row"],
    )

    file_path = export_dir / f"seating_{name}.xlsx"
    df.to_excel(file_path, index=False)
    return file_path


def export_chart_pdf(name, title, assignments, students, export_dir=None):
    export_dir = Path(export_dir or EXPORT_DIR)
    export_dir.mkdir(parents=True, exist_ok=True)

    students_by_id = {s.id: s for s in students}
    seated = {(a.table_number, a.seat_position): a.student_id for a in assignments}

    file_path = export_dir / f"seating_{name}.pdf"

    c = canvas.Canvas(str(file_path), pagesize=A4)
    width, height = A4

    y = height - 50
    c.setFont("Helvetica-Bold", 14)
    c.drawString(50, y, f"Seating Chart - {title}")
    y -= 30

    c.setFont("Helvetica", 10)
    c.drawString(50, y, "Row")
    c.drawString(90, y, "Table")
    c.drawString(150, y, "Seat")
    c.drawString(200, y, "Student")
    c.drawString(400, y, "Agency")
    y -= 15

    c.line(50, y, 550, y)
    y -= 15

    for table in generate_layout():
        for seat in range(1, table.seats + 1):
            if y < 60:
                c.showPage()
                c.setFont("Helvetica", 10)
                y = height - 50

            student = students_by_id.get(seated.get((table.number, seat)))
            c.drawString(50, y, str(table.row))
            c.drawString(90, y, "Overflow" if table.number == OVERFLOW_TABLE else str(table.number))
            c.drawString(150, y, str(seat))
            c.drawString(200, y, student.full_name[:32] if student else "-")
            c.drawString(400, y, (student.agency or "")[:24] if student else "")
            y -= 15
        y -= 5

    c.save()
    return file_path
