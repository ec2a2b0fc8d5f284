from dataclasses import dataclass
from typing import List, Optional, Tuple

from seating.models import PrimaryStyle, Side


OVERFLOW_TABLE = 0
OVERFLOW_ROW = 5


@dataclass(frozen=True)
class RowSpec:
    row: int
    tables: Tuple[int, int]  # (left, right)
    style: PrimaryStyle


@dataclass(frozen=True)
class ClassroomLayout:
    rows: Tuple[RowSpec, ...]
    seats_per_table: int
    overflow_seats: int

    @property
    def tables(self):
        return [t for r in self.rows for t in r.tables]

    @property
    def left_tables(self):
        return [r.tables[0] for r in self.rows]

    @property
    def right_tables(self):
        return [r.tables[1] for r in self.rows]

    @property
    def regular_capacity(self):
        return len(self.tables) * self.seats_per_table

    @property
    def capacity(self):
        return self.regular_capacity + self.overflow_seats


# Row 1 front (audio), rows 2-3 middle (visual), row 4 back (kinesthetic).
# Overflow is 3 seats along the back wall.
CLASSROOM = ClassroomLayout(
    rows=(
        RowSpec(1, (1, 2), PrimaryStyle.AUDIO),
        RowSpec(2, (3, 4), PrimaryStyle.VISUAL),
        RowSpec(3, (5, 6), PrimaryStyle.VISUAL),
        RowSpec(4, (7, 8), PrimaryStyle.KINESTHETIC),
    ),
    seats_per_table=3,
    overflow_seats=3,
)


@dataclass(frozen=True)
class Table:
    number: int
    row: int
    side: Side
    style: Optional[PrimaryStyle]
    seats: int


def row_for_table(table_number, layout=CLASSROOM):
    if table_number == OVERFLOW_TABLE:
        return OVERFLOW_ROW
    for row_spec in layout.rows:
        if table_number in row_spec.tables:
            return row_spec.row
    raise ValueError(f"Table {table_number} is not part of the classroom")


def side_for_table(table_number, layout=CLASSROOM):
    if table_number in layout.left_tables:
        return Side.LEFT
    if table_number in layout.right_tables:
        return Side.RIGHT
    raise ValueError(f"Table {table_number} is not part of the classroom")


def table_order(side, layout=CLASSROOM) -> List[int]:
    """Front-to-back table order, with the preferred side first in each row.

    Left tables carry the lower number in every row, so ``LEFT`` and ``ANY``
    both come out as plain numeric order.
    """

    order = []
    for row_spec in layout.rows:
        left, right = row_spec.tables
        order.extend((right, left) if side == Side.RIGHT else (left, right))
    return order


def generate_layout(layout=CLASSROOM):
    tables = []

    for row_spec in layout.rows:
        for table_number in row_spec.tables:
            tables.append(
                Table(
                    number=table_number,
                    row=row_spec.row,
                    side=side_for_table(table_number, layout),
                    style=row_spec.style,
                    seats=layout.seats_per_table,
                )
            )

    tables.append(
        Table(
            number=OVERFLOW_TABLE,
            row=OVERFLOW_ROW,
            side=Side.ANY,
            style=None,
            seats=layout.overflow_seats,
        )
    )
    return tables


def validate_assignments(assignments, layout=CLASSROOM):
    """Check a hand-edited assignment list against the room.

    Accepts anything with the ``SeatAssignment`` attributes. Raises
    ``ValueError`` describing the first problem found.
    """

    seen_seats = set()
    seen_students = set()

    for a in assignments:
        if a.student_id in seen_students:
            raise ValueError(f"Student {a.student_id} is assigned more than once")
        seen_students.add(a.student_id)

        if a.is_overflow:
            if a.table_number != OVERFLOW_TABLE or a.row_number != OVERFLOW_ROW:
                raise ValueError(
                    f"Overflow seats must use table {OVERFLOW_TABLE} and row {OVERFLOW_ROW}"
                )
            limit = layout.overflow_seats
        else:
            if a.table_number not in layout.tables:
                raise ValueError(f"Table {a.table_number} is not part of the classroom")
            expected_row = row_for_table(a.table_number, layout)
            if a.row_number != expected_row:
                raise ValueError(
                    f"Table {a.table_number} is in row {expected_row}, not row {a.row_number}"
                )
            limit = layout.seats_per_table

        if not 1 <= a.seat_position <= limit:
            raise ValueError(
                f"Seat {a.seat_position} does not exist at table {a.table_number}"
            )

        key = (a.table_number, a.seat_position)
        if key in seen_seats:
            raise ValueError(
                f"Seat {a.seat_position} at table {a.table_number} is assigned twice"
            )
        seen_seats.add(key)
