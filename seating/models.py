from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Hashable, List, Optional


StudentId = Hashable


class PrimaryStyle(str, Enum):
    AUDIO = "audio"
    VISUAL = "visual"
    KINESTHETIC = "kinesthetic"


class SocialStyle(str, Enum):
    INDEPENDENT = "independent"
    SOCIAL = "social"


class PreferenceKind(str, Enum):
    AVOID = "avoid"
    PREFER_NEAR = "prefer_near"


class Side(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    ANY = "any"


def _normalize(value, choices):
    """Return the enum member matching ``value`` or ``None`` when unset/unknown."""

    if value is None:
        return None
    if isinstance(value, choices):
        return value
    try:
        return choices(str(value).strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class Student:
    id: StudentId
    first_name: str
    last_name: str
    agency: Optional[str] = None

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class LearningStyleProfile:
    student_id: StudentId
    primary_style: Optional[str] = None
    social_style: Optional[str] = None

    @property
    def primary(self) -> Optional[PrimaryStyle]:
        return _normalize(self.primary_style, PrimaryStyle)

    @property
    def social(self) -> Optional[SocialStyle]:
        return _normalize(self.social_style, SocialStyle)


@dataclass(frozen=True)
class SeatingPreference:
    student_id: StudentId
    other_student_id: StudentId
    kind: str = PreferenceKind.AVOID.value

    @property
    def is_avoid(self):
        return _normalize(self.kind, PreferenceKind) is PreferenceKind.AVOID


@dataclass(frozen=True)
class SeatAssignment:
    """One student in one seat. Overflow seats use table 0 and row 5."""

    student_id: StudentId
    table_number: int
    seat_position: int
    row_number: int
    is_overflow: bool = False

    def as_dict(self):
        return asdict(self)


@dataclass
class SeatingStats:
    total_students: int = 0
    placed: int = 0
    unplaced: int = 0
    in_overflow: int = 0
    agency_conflicts: int = 0
    avoidance_conflicts: int = 0
    by_learning_style: Dict[str, int] = field(
        default_factory=lambda: {"audio": 0, "visual": 0, "kinesthetic": 0, "unassessed": 0}
    )

    def as_dict(self):
        return asdict(self)


@dataclass
class SeatingResult:
    assignments: List[SeatAssignment]
    warnings: List[str]
    stats: SeatingStats

    def as_dict(self):
        return {
            "assignments": [a.as_dict() for a in self.assignments],
            "warnings": list(self.warnings),
            "stats": self.stats.as_dict(),
        }
