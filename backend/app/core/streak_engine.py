"""Streak engine: contiguous activity days from completion events.

Algorithm (per scope):
1. Normalise every event to its calendar day and count events per day.
2. Active: the reference day or the day before has at least one event.
3. Current streak: start at the reference day if it has events, otherwise
   at the day before, and walk backwards while each day has events.
4. Longest streak: scan the distinct days in order, track the longest run.
5. History: one entry per day over a trailing window ending at the
   reference day, oldest first.

A gap of one day or more ends a run. Several events on the same day count
once for the streak but are all reflected in the history ``count``.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from app.core.calendar import ONE_DAY, day_range, to_calendar_day

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class CompletionEvent:
    """A task that reached ``Done``; only its day matters for streaks."""

    subject_id: str
    timestamp: datetime | date | str
    course_id: str | None = None
    course_name: str | None = None


@dataclass(frozen=True)
class HistoryDay:
    date: date
    completed: bool
    count: int


@dataclass
class StreakResult:
    scope: str
    current_streak_days: int
    is_active: bool
    longest_streak_days: int = 0
    last_activity: date | None = None
    history: list[HistoryDay] = field(default_factory=list)
    name: str | None = None

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "name": self.name,
            "current_streak_days": self.current_streak_days,
            "is_active": self.is_active,
            "longest_streak_days": self.longest_streak_days,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "history": [
                {"date": h.date.isoformat(), "completed": h.completed, "count": h.count}
                for h in self.history
            ],
        }


def count_events_by_day(event_dates: Iterable[object]) -> Counter[date]:
    """Bucket raw event dates into per-day counts (fails fast on bad values)."""
    return Counter(to_calendar_day(value) for value in event_dates)


def _longest_run(days: Iterable[date]) -> int:
    longest = 0
    run = 0
    previous: date | None = None
    for day in sorted(days):
        run = run + 1 if previous is not None and day - previous == ONE_DAY else 1
        longest = max(longest, run)
        previous = day
    return longest


def compute_streak(
    event_dates: Iterable[object],
    reference_date: object,
    window_days: int,
    scope: str = GLOBAL_SCOPE,
) -> StreakResult:
    """Compute the streak for one scope.

    Args:
        event_dates: dates, datetimes or ISO strings, duplicates allowed
        reference_date: the day treated as "today"
        window_days: number of history entries to produce
        scope: label carried into the result

    Raises:
        ValidationError: if any event date or the reference date is malformed
    """
    reference = to_calendar_day(reference_date)
    counts = count_events_by_day(event_dates)
    yesterday = reference - ONE_DAY

    is_active = counts[reference] > 0 or counts[yesterday] > 0

    cursor = reference if counts[reference] > 0 else yesterday
    current = 0
    while counts[cursor] > 0:
        current += 1
        cursor -= ONE_DAY

    active_days = [d for d, n in counts.items() if n > 0]

    history = [
        HistoryDay(date=day, completed=counts[day] > 0, count=counts[day])
        for day in day_range(reference, window_days)
    ]

    return StreakResult(
        scope=scope,
        current_streak_days=current,
        is_active=is_active,
        longest_streak_days=_longest_run(active_days),
        last_activity=max(active_days) if active_days else None,
        history=history,
    )


def compute_streaks(
    events: Iterable[CompletionEvent],
    reference_date: object,
    global_window_days: int,
    course_window_days: int,
) -> dict:
    """Global streak plus one streak per course.

    Events without a course only feed the global streak.
    """
    events = list(events)
    global_result = compute_streak(
        (e.timestamp for e in events), reference_date, global_window_days
    )

    by_course: dict[str, list[CompletionEvent]] = {}
    names: dict[str, str | None] = {}
    for event in events:
        if event.course_id is None:
            continue
        by_course.setdefault(event.course_id, []).append(event)
        names.setdefault(event.course_id, event.course_name)

    courses = []
    for course_id, course_events in by_course.items():
        result = compute_streak(
            (e.timestamp for e in course_events),
            reference_date,
            course_window_days,
            scope=course_id,
        )
        result.name = names[course_id]
        courses.append(result)

    courses.sort(key=lambda r: (-r.current_streak_days, r.name or ""))
    return {"global": global_result, "courses": courses}
