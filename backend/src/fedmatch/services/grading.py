"""Grade banding and score formatting shared by both scorers."""

from fedmatch.domain.enums import Grade

# (lower bound, grade), highest band first
GRADE_BANDS: tuple[tuple[float, Grade], ...] = (
    (90.0, Grade.A_PLUS),
    (80.0, Grade.A),
    (70.0, Grade.B),
    (60.0, Grade.C),
)


def assign_grade(score: float) -> Grade:
    """Map a 0-100 score onto the fixed letter bands."""
    for lower, grade in GRADE_BANDS:
        if score >= lower:
            return grade
    return Grade.D


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_score(value: float) -> float:
    """Clamp to [0, 100] and round to two decimals."""
    return round(clamp(value), 2)
