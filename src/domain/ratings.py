"""Rating rules: score bounds and aggregate recomputation."""

from __future__ import annotations

from typing import Optional

from .errors import ValidationError

MIN_SCORE = 1
MAX_SCORE = 5


def validate_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be an integer between 1 and 5")
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError(
            f"Rating must be between {MIN_SCORE} and {MAX_SCORE}, got {score}"
        )
    return score


def summarize(average: Optional[float], count: Optional[int]) -> tuple[float, int]:
    """Normalise an ``AVG`` / ``COUNT`` row into (average, count).

    An empty rating set yields ``(0.0, 0)``.
    """
    count = int(count or 0)
    if count == 0:
        return 0.0, 0
    return round(float(average), 2), count
