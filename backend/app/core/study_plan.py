"""Study plan aggregate rules.

Pure functions over a loaded plan (anything exposing ``days`` whose items
expose ``day_number``, ``date``, ``completed`` and ``topics``). Persistence
lives in ``app.db.repositories.study_plan_repo``; orchestration lives in
``app.services.study_plan_service``.
"""

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from app.core.calendar import to_calendar_day
from app.core.errors import ValidationError

# Behind schedule if fewer than 70% of the topics of past days are done.
BEHIND_SCHEDULE_RATIO = 0.7

MIN_CONFIDENCE = 1
MAX_CONFIDENCE = 5
LOW_CONFIDENCE_THRESHOLD = 3

DIFFICULTIES = ("beginner", "intermediate", "advanced")


@dataclass
class TopicSpec:
    name: str
    hours_allocated: float
    difficulty: str = "intermediate"
    goal_description: str = ""
    resources: list[str] = field(default_factory=list)


@dataclass
class DaySpec:
    day_number: int
    date: date
    topics: list[TopicSpec]
    review_topics: list[str] = field(default_factory=list)
    total_hours: float = 0.0


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_day(plan: Any, day_number: int) -> Any | None:
    """Return the day with *day_number*, or None."""
    for day in plan.days:
        if day.day_number == day_number:
            return day
    return None


def find_topic(day: Any, name: str) -> Any | None:
    """Return the topic named exactly *name* within *day*, or None."""
    for topic in day.topics:
        if topic.name == name:
            return topic
    return None


def iter_topics(plan: Any) -> Iterator[tuple[Any, Any]]:
    """Yield ``(day, topic)`` pairs in schedule order."""
    for day in plan.days:
        for topic in day.topics:
            yield day, topic


# ---------------------------------------------------------------------------
# Derived queries
# ---------------------------------------------------------------------------

def topic_counts(plan: Any) -> tuple[int, int]:
    """``(completed, total)`` topic counts across the whole schedule."""
    completed = total = 0
    for _, topic in iter_topics(plan):
        total += 1
        if topic.completed:
            completed += 1
    return completed, total


def progress(plan: Any) -> int:
    """Percentage of topics completed, rounded half up; 0 for an empty plan."""
    completed, total = topic_counts(plan)
    if total == 0:
        return 0
    return (200 * completed + total) // (2 * total)


def is_behind_schedule(plan: Any, today: date) -> bool:
    """True if completions on past days fall under the 70% ratio.

    Only days strictly before *today* count; the in-progress day is excluded
    from both sides, so a plan with no past days is never behind.
    """
    reference = to_calendar_day(today)
    expected = actual = 0
    for day in plan.days:
        if to_calendar_day(day.date) < reference:
            expected += len(day.topics)
            actual += sum(1 for t in day.topics if t.completed)
    return actual < expected * BEHIND_SCHEDULE_RATIO


def today_tasks(plan: Any, today: date) -> Any | None:
    """The schedule day falling on *today*, if any."""
    reference = to_calendar_day(today)
    for day in plan.days:
        if to_calendar_day(day.date) == reference:
            return day
    return None


def all_topics_completed(plan: Any) -> bool:
    completed, total = topic_counts(plan)
    return total > 0 and completed == total


def progress_snapshot(plan: Any) -> list[dict]:
    """Per-topic ``{topic, completed, confidence}`` fed to the replanner."""
    return [
        {
            "topic": topic.name,
            "completed": bool(topic.completed),
            "confidence": topic.confidence or 0,
        }
        for _, topic in iter_topics(plan)
    ]


def topics_learned(plan: Any) -> list[dict]:
    """Completed topics with the day they were learned."""
    learned = []
    for day, topic in iter_topics(plan):
        if topic.completed:
            learned.append({
                "name": topic.name,
                "learned_date": to_calendar_day(topic.completed_at or day.date),
            })
    return learned


# ---------------------------------------------------------------------------
# Mutations (applied to loaded objects, persisted by the caller)
# ---------------------------------------------------------------------------

def validate_confidence(confidence: int | None) -> int | None:
    if confidence is None:
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, int):
        raise ValidationError("Confidence must be an integer", field="confidence")
    if not MIN_CONFIDENCE <= confidence <= MAX_CONFIDENCE:
        raise ValidationError(
            f"Confidence must be between {MIN_CONFIDENCE} and {MAX_CONFIDENCE}",
            field="confidence",
        )
    return confidence


def needs_review(confidence: int | None) -> bool:
    return confidence is not None and confidence < LOW_CONFIDENCE_THRESHOLD


def complete_topic(day: Any, topic: Any, now: datetime, confidence: int | None = None) -> None:
    """Mark *topic* done and recompute its day's completion flag."""
    topic.completed = True
    topic.completed_at = now
    if confidence is not None:
        topic.confidence = confidence
    day.completed = all(t.completed for t in day.topics)


def complete_day(day: Any, now: datetime) -> int:
    """Complete every open topic of *day*; returns how many changed."""
    changed = 0
    for topic in day.topics:
        if not topic.completed:
            topic.completed = True
            topic.completed_at = now
            changed += 1
    day.completed = all(t.completed for t in day.topics)
    return changed


# ---------------------------------------------------------------------------
# Schedule construction
# ---------------------------------------------------------------------------

def _normalise_difficulty(value: str | None) -> str:
    value = (value or "").strip().lower()
    return value if value in DIFFICULTIES else "intermediate"


def build_schedule(daily_schedule: Sequence[Any], start: date) -> list[DaySpec]:
    """Turn an externally supplied allocation into dated day specs.

    Day 1 falls on *start*; day ``i + 1`` on ``start + i``. Topic names
    repeated within one day are merged into the first occurrence.
    """
    start_day = to_calendar_day(start)
    days: list[DaySpec] = []
    for index, entry in enumerate(daily_schedule):
        topics: list[TopicSpec] = []
        by_name: dict[str, TopicSpec] = {}
        for raw in entry.topics:
            name = raw.name.strip()
            if name in by_name:
                by_name[name].hours_allocated += raw.hours_allocated
                continue
            spec = TopicSpec(
                name=name,
                hours_allocated=raw.hours_allocated,
                difficulty=_normalise_difficulty(getattr(raw, "difficulty", None)),
                goal_description=getattr(raw, "goal_description", "") or "",
                resources=list(getattr(raw, "resources", []) or []),
            )
            by_name[name] = spec
            topics.append(spec)

        total = entry.total_hours
        if total is None:
            total = sum(t.hours_allocated for t in topics)

        days.append(DaySpec(
            day_number=index + 1,
            date=start_day + timedelta(days=index),
            topics=topics,
            review_topics=list(entry.review_topics or []),
            total_hours=float(total),
        ))
    return days


def build_adjusted_schedule(
    adjusted: Iterable[Any],
    previous_plan: Any,
    start: date,
    hours_per_day: float,
) -> list[DaySpec]:
    """Day specs for a replacement plan from replanner suggestions.

    Topic details (difficulty, goal, resources) are carried over by name
    from *previous_plan*; a day's hours are split evenly between its topics.
    Days listing no topics are dropped and the rest renumbered.
    """
    known = {topic.name: topic for _, topic in iter_topics(previous_plan)}
    start_day = to_calendar_day(start)
    days: list[DaySpec] = []

    for entry in sorted(adjusted, key=lambda e: e.day):
        names = list(dict.fromkeys(n.strip() for n in entry.topics if n and n.strip()))
        if not names:
            continue
        hours = entry.hours if entry.hours is not None else hours_per_day
        per_topic = round(hours / len(names), 2)
        topics = []
        for name in names:
            old = known.get(name)
            topics.append(TopicSpec(
                name=name,
                hours_allocated=per_topic,
                difficulty=_normalise_difficulty(old.difficulty if old else None),
                goal_description=(old.goal_description or "") if old else "",
                resources=list(old.resources or []) if old else [],
            ))
        index = len(days)
        days.append(DaySpec(
            day_number=index + 1,
            date=start_day + timedelta(days=index),
            topics=topics,
            total_hours=float(hours),
        ))
    return days
