"""Calendar-day conversion shared by the streak engine and the study plan tracker.

All day boundaries in the app go through :func:`to_calendar_day`. Stored
instants are naive UTC; a day is simply the date component of the instant,
no timezone conversion is applied.
"""

from datetime import UTC, date, datetime, timedelta

from app.core.errors import ValidationError

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Current instant as naive UTC (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)


def today() -> date:
    """Current UTC calendar day."""
    return utcnow().date()


def to_calendar_day(value: object) -> date:
    """Normalize a date, datetime or ISO-8601 string to a calendar day.

    Raises:
        ValidationError: if *value* is not a recognisable date.
    """
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise ValidationError(f"Invalid date value: {value!r}") from exc
    raise ValidationError(f"Invalid date value: {value!r}")


def days_until(target: object, reference: object) -> int:
    """Whole calendar days from *reference* to *target* (negative if past)."""
    return (to_calendar_day(target) - to_calendar_day(reference)).days


def day_range(end: date, length: int) -> list[date]:
    """*length* consecutive days ending at *end*, oldest first."""
    return [end - timedelta(days=offset) for offset in range(length - 1, -1, -1)]
