from seating.allocator import generate_seating
from seating.models import LearningStyleProfile, SeatAssignment, SeatingPreference, SeatingResult, Student

__all__ = [
    "generate_seating",
    "LearningStyleProfile",
    "SeatAssignment",
    "SeatingPreference",
    "SeatingResult",
    "Student",
]
