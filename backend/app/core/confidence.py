"""Confidence rating rules for per-topic self assessments."""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from app.core.errors import ValidationError
from app.core.study_plan import LOW_CONFIDENCE_THRESHOLD, validate_confidence

TREND_WINDOW = 3

DEFAULT_CONTEXT = "general"
AFTER_LEARNING = "after_learning"


def require_score(score: int | None) -> int:
    """A rating score in 1..5; None is rejected as well."""
    if validate_confidence(score) is None:
        raise ValidationError("Confidence score is required", field="confidence")
    return score


def add_rating(
    record: Any,
    score: int,
    note: str,
    context: str,
    now: datetime,
    rating_factory: Any,
) -> Any:
    """Append a rating to *record* and refresh its derived fields.

    *rating_factory* builds the history entry (the ORM class in production,
    any callable accepting the same keywords in tests).
    """
    require_score(score)

    rating = rating_factory(
        sequence=len(record.ratings) + 1,
        score=score,
        note=note or "",
        context=context or DEFAULT_CONTEXT,
        created_at=now,
    )
    record.ratings.append(rating)
    record.current_confidence = score
    record.needs_review = score < LOW_CONFIDENCE_THRESHOLD
    record.review_count = (record.review_count or 0) + 1
    record.last_reviewed = now
    return rating


def get_trend(scores: Sequence[int]) -> str:
    """Direction of the most recent ratings.

    Compares the first and last of the last three scores.
    """
    if len(scores) < 2:
        return "insufficient_data"

    recent = list(scores)[-TREND_WINDOW:]
    first, last = recent[0], recent[-1]
    if last > first:
        return "improving"
    if last < first:
        return "declining"
    return "stable"
