"""Closed status variants for study plans and tasks."""

from datetime import datetime
from enum import Enum

from app.core.errors import InvalidTransitionError


class PlanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    REPLANNED = "replanned"


# Every status must appear as a key; terminal statuses map to nothing.
PLAN_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.ACTIVE: frozenset(
        {PlanStatus.COMPLETED, PlanStatus.ABANDONED, PlanStatus.REPLANNED}
    ),
    PlanStatus.COMPLETED: frozenset(),
    PlanStatus.ABANDONED: frozenset(),
    PlanStatus.REPLANNED: frozenset(),
}


def check_plan_transition(current: str | PlanStatus, target: str | PlanStatus) -> PlanStatus:
    """Validate ``current -> target`` and return the target as a PlanStatus."""
    try:
        src = PlanStatus(current)
        dst = PlanStatus(target)
    except ValueError as exc:
        raise InvalidTransitionError(f"Unknown plan status: {exc}") from exc

    if dst not in PLAN_TRANSITIONS[src]:
        raise InvalidTransitionError(
            f"Cannot move study plan from '{src.value}' to '{dst.value}'",
            field="status",
        )
    return dst


class TaskStatus(str, Enum):
    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


def apply_task_status(task: object, new_status: str | TaskStatus, now: datetime) -> bool:
    """Move *task* to *new_status*, keeping ``completed_at`` consistent.

    Entering ``Done`` stamps ``completed_at``; leaving it clears the stamp.
    Returns True when the status actually changed.
    """
    try:
        target = TaskStatus(new_status)
    except ValueError as exc:
        raise InvalidTransitionError(f"Unknown task status: {new_status!r}", field="status") from exc

    current = TaskStatus(task.status)  # type: ignore[attr-defined]
    if current == target:
        return False

    if target == TaskStatus.DONE:
        task.completed_at = now  # type: ignore[attr-defined]
    elif current == TaskStatus.DONE:
        task.completed_at = None  # type: ignore[attr-defined]

    task.status = target.value  # type: ignore[attr-defined]
    return True
