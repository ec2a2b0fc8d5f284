"""Classroom seating-assignment engine.

``generate_seating`` is a pure function: the same roster, learning styles and
preferences in the same order always produce the same chart. Students are
seated front to back by learning-style tier, spread across the least-occupied
tables, kept apart from peers they should avoid and, when possible, from
classmates of the same agency. Whoever does not fit goes to the overflow
seats, and whoever does not fit there is reported as unplaced.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set

from seating.layouts import CLASSROOM, OVERFLOW_ROW, OVERFLOW_TABLE, row_for_table, table_order
from seating.models import (
    LearningStyleProfile,
    PrimaryStyle,
    SeatAssignment,
    SeatingPreference,
    SeatingResult,
    SeatingStats,
    Side,
    SocialStyle,
    Student,
    StudentId,
)

logger = logging.getLogger(__name__)


UNASSESSED_TIER = 7

# (primary_style, social_style) -> tier. Lower tiers are seated first, which
# puts audio learners up front and kinesthetic learners at the back.
TIER_TABLE = {
    (PrimaryStyle.AUDIO, SocialStyle.INDEPENDENT): 1,
    (PrimaryStyle.AUDIO, SocialStyle.SOCIAL): 2,
    (PrimaryStyle.AUDIO, None): 2,
    (PrimaryStyle.VISUAL, SocialStyle.INDEPENDENT): 3,
    (PrimaryStyle.VISUAL, SocialStyle.SOCIAL): 4,
    (PrimaryStyle.VISUAL, None): 4,
    (PrimaryStyle.KINESTHETIC, SocialStyle.INDEPENDENT): 5,
    (PrimaryStyle.KINESTHETIC, SocialStyle.SOCIAL): 6,
    (PrimaryStyle.KINESTHETIC, None): 6,
}

SIDE_BY_SOCIAL_STYLE = {
    SocialStyle.INDEPENDENT: Side.LEFT,
    SocialStyle.SOCIAL: Side.RIGHT,
}


def tier_for(primary: Optional[PrimaryStyle], social: Optional[SocialStyle]) -> int:
    return TIER_TABLE.get((primary, social), UNASSESSED_TIER)


def side_for(social: Optional[SocialStyle]) -> Side:
    return SIDE_BY_SOCIAL_STYLE.get(social, Side.ANY)


@dataclass(frozen=True)
class PrioritizedStudent:
    student: Student
    tier: int
    preferred_side: Side
    primary: Optional[PrimaryStyle]
    social: Optional[SocialStyle]


def build_avoid_map(preferences: Iterable[SeatingPreference]) -> Dict[StudentId, Set[StudentId]]:
    """Symmetric adjacency of ``avoid`` preferences."""

    avoid = defaultdict(set)
    for pref in preferences:
        if not pref.is_avoid or pref.student_id == pref.other_student_id:
            continue
        avoid[pref.student_id].add(pref.other_student_id)
        avoid[pref.other_student_id].add(pref.student_id)
    return dict(avoid)


def prioritize(students, styles: Dict[StudentId, LearningStyleProfile]) -> List[PrioritizedStudent]:
    prioritized = []
    for student in students:
        profile = styles.get(student.id)
        primary = profile.primary if profile else None
        social = profile.social if profile else None
        prioritized.append(
            PrioritizedStudent(
                student=student,
                tier=tier_for(primary, social),
                preferred_side=side_for(social),
                primary=primary,
                social=social,
            )
        )
    # sorted() is stable, so ties keep roster order
    return sorted(prioritized, key=lambda p: p.tier)


class ClassroomState:
    """Seat occupancy for a single ``generate_seating`` call."""

    def __init__(self, layout=CLASSROOM, avoid_map=None):
        self.layout = layout
        self.avoid_map = avoid_map or {}
        self.seats: Dict[tuple, StudentId] = {}
        self.agencies: Dict[int, Set[str]] = {t: set() for t in layout.tables}
        self.placed: Set[StudentId] = set()
        self.assignments: List[SeatAssignment] = []

    def open_seats(self, table_number):
        return [
            seat
            for seat in range(1, self.layout.seats_per_table + 1)
            if (table_number, seat) not in self.seats
        ]

    def occupancy(self, table_number):
        return self.layout.seats_per_table - len(self.open_seats(table_number))

    def occupants(self, table_number):
        return [
            self.seats[(table_number, seat)]
            for seat in range(1, self.layout.seats_per_table + 1)
            if (table_number, seat) in self.seats
        ]

    def has_agency_conflict(self, student, table_number):
        if not student.agency:
            return False
        return student.agency in self.agencies[table_number]

    def has_avoidance_conflict(self, student, table_number):
        avoided = self.avoid_map.get(student.id)
        if not avoided:
            return False
        return any(other in avoided for other in self.occupants(table_number))

    def candidate_tables(self, side):
        base = table_order(side, self.layout)
        return sorted(base, key=self.occupancy)

    def place(self, student, table_number, seat):
        self.seats[(table_number, seat)] = student.id
        self.placed.add(student.id)
        if student.agency:
            self.agencies[table_number].add(student.agency)
        self.assignments.append(
            SeatAssignment(
                student_id=student.id,
                table_number=table_number,
                seat_position=seat,
                row_number=row_for_table(table_number, self.layout),
                is_overflow=False,
            )
        )

    def overflow_count(self):
        return sum(1 for a in self.assignments if a.is_overflow)

    def place_overflow(self, student):
        seat = self.overflow_count() + 1
        self.placed.add(student.id)
        self.assignments.append(
            SeatAssignment(
                student_id=student.id,
                table_number=OVERFLOW_TABLE,
                seat_position=seat,
                row_number=OVERFLOW_ROW,
                is_overflow=True,
            )
        )

    def try_place(self, student, tables, allow_agency_conflict=False):
        for table_number in tables:
            seats = self.open_seats(table_number)
            if not seats:
                continue
            if self.has_avoidance_conflict(student, table_number):
                continue
            if not allow_agency_conflict and self.has_agency_conflict(student, table_number):
                continue
            self.place(student, table_number, seats[0])
            return True
        return False


def place_by_priority(state: ClassroomState, prioritized: List[PrioritizedStudent]):
    for ps in prioritized:
        if ps.student.id in state.placed:
            continue

        tables = state.candidate_tables(ps.preferred_side)
        if state.try_place(ps.student, tables):
            continue
        if state.try_place(ps.student, tables, allow_agency_conflict=True):
            logger.debug("Seated %s next to a same-agency classmate", ps.student.id)
            continue
        logger.debug("No regular seat for %s", ps.student.id)


def fill_overflow(state: ClassroomState, roster) -> List[Student]:
    """Seat leftovers in roster order and return whoever is still standing."""

    remaining = []
    for student in roster:
        if student.id in state.placed:
            continue
        if state.overflow_count() < state.layout.overflow_seats:
            state.place_overflow(student)
        else:
            remaining.append(student)
    return remaining


def audit_conflicts(assignments, students_by_id, avoid_map):
    """Advisory warnings for conflicts left in the final chart."""

    warnings = []
    by_table = defaultdict(list)
    for a in assignments:
        if not a.is_overflow:
            by_table[a.table_number].append(a.student_id)

    reported_pairs = set()
    for a in assignments:
        if a.is_overflow:
            continue
        avoided = avoid_map.get(a.student_id, set())
        for mate in by_table[a.table_number]:
            pair = frozenset((a.student_id, mate))
            if mate == a.student_id or mate not in avoided or pair in reported_pairs:
                continue
            reported_pairs.add(pair)
            warnings.append(
                f"Conflict: {students_by_id[a.student_id].first_name} should avoid "
                f"{students_by_id[mate].first_name} but seated at same table"
            )

    for a in assignments:
        if a.is_overflow:
            continue
        student = students_by_id[a.student_id]
        if not student.agency:
            continue
        for mate in by_table[a.table_number]:
            if mate != a.student_id and students_by_id[mate].agency == student.agency:
                warnings.append(
                    f"{student.full_name} placed at table with same agency ({student.agency})"
                )
                break

    return warnings


def generate_seating(
    students: Iterable[Student],
    learning_styles: Iterable[LearningStyleProfile],
    preferences: Iterable[SeatingPreference],
    layout=CLASSROOM,
) -> SeatingResult:
    students = list(students)
    warnings = []

    roster = []
    students_by_id = {}
    for student in students:
        if student.id in students_by_id:
            continue
        students_by_id[student.id] = student
        roster.append(student)
    duplicates = len(students) - len(roster)

    styles = {}
    for profile in learning_styles:
        styles[profile.student_id] = profile

    avoid_map = build_avoid_map(preferences)
    state = ClassroomState(layout, avoid_map)

    prioritized = prioritize(roster, styles)
    place_by_priority(state, prioritized)

    remaining = fill_overflow(state, roster)

    if remaining:
        warnings.append(
            f"{len(remaining)} student(s) could not be placed (max capacity exceeded)"
        )
    if duplicates:
        warnings.append(f"{duplicates} duplicate student record(s) ignored")

    warnings.extend(audit_conflicts(state.assignments, students_by_id, avoid_map))

    # counted over the raw input so the breakdown sums to total_students
    by_style = {"audio": 0, "visual": 0, "kinesthetic": 0, "unassessed": 0}
    for student in students:
        profile = styles.get(student.id)
        primary = profile.primary if profile else None
        by_style[primary.value if primary else "unassessed"] += 1

    stats = SeatingStats(
        total_students=len(students),
        placed=len(state.placed),
        unplaced=len(students) - len(state.placed),
        in_overflow=state.overflow_count(),
        agency_conflicts=sum(1 for w in warnings if "same agency" in w),
        avoidance_conflicts=sum(1 for w in warnings if "should avoid" in w),
        by_learning_style=by_style,
    )

    logger.info(
        "Seated %d of %d students (%d overflow, %d unplaced, %d warnings)",
        stats.placed,
        stats.total_students,
        stats.in_overflow,
        stats.unplaced,
        len(warnings),
    )
    return SeatingResult(assignments=list(state.assignments), warnings=warnings, stats=stats)
