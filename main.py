import argparse
import logging

from seating.allocator import generate_seating
from seating.exports import export_chart_pdf
from seating.roster_import import roster_import_excel


def main(argv=None):
    parser = argparse.ArgumentParser(description="Seat a class roster from an Excel workbook.")
    parser.add_argument("roster", help="workbook with a 'students' sheet")
    parser.add_argument("--export-pdf", metavar="DIR", help="also write a printable PDF into DIR")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    students, styles, preferences = roster_import_excel(args.roster)
    result = generate_seating(students, styles, preferences)
    students_by_id = {s.id: s for s in students}

    print("\n--- Seating Chart ---")
    for a in result.assignments:
        s = students_by_id[a.student_id]
        table = "Overflow" if a.is_overflow else f"Table {a.table_number}"
        print(f"{s.full_name} -> {table} | Seat {a.seat_position} | Row {a.row_number}")

    if result.warnings:
        print("\n--- Warnings ---")
        for w in result.warnings:
            print(w)

    stats = result.stats
    print(
        f"\nPlaced {stats.placed}/{stats.total_students} "
        f"(overflow {stats.in_overflow}, unplaced {stats.unplaced})"
    )

    if args.export_pdf:
        path = export_chart_pdf("cli", args.roster, result.assignments, students, args.export_pdf)
        print(f"PDF written to {path}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
