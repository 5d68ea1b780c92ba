"""
Streak service: maps Done tasks to completion events and runs the engine.
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.calendar import today
from app.core.streak_engine import CompletionEvent, compute_streaks
from app.db.models import Task
from app.db.repositories import task_repo

logger = logging.getLogger(__name__)


def task_to_event(task: Task) -> CompletionEvent:
    """A Done task as a completion event, timestamped when it was completed."""
    return CompletionEvent(
        subject_id=task.id,
        timestamp=task.completed_at or task.updated_at,
        course_id=task.course_id,
        course_name=task.course.name if task.course is not None else None,
    )


class StreakService:
    """Computes global and per-course streaks for a user."""

    async def get_streaks(self, db: AsyncSession, user_id: str, reference_date: date | None = None) -> dict:
        """``{"global": StreakResult, "courses": [StreakResult, ...]}``."""
        tasks = await task_repo.get_completed_tasks(db, user_id)
        events = [task_to_event(task) for task in tasks]
        logger.debug(f"Computing streaks for user {user_id} from {len(events)} completions")
        return compute_streaks(
            events,
            reference_date or today(),
            global_window_days=settings.global_streak_window_days,
            course_window_days=settings.course_streak_window_days,
        )


streak_service = StreakService()
