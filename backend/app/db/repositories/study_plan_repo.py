"""Study plan repository.

Plans are always loaded whole (days, topics, collaborators, course) so the
pure rules in ``app.core.study_plan`` can run without lazy loads.
"""

import logging
import uuid
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from app.core.calendar import utcnow
from app.core.status import PlanStatus
from app.core.study_plan import DaySpec
from app.db.exceptions import ConnectionError, DatabaseError, DuplicateRecordError, StaleRecordError
from app.db.models import StudyPlan, StudyPlanDay, StudyPlanTopic, User

logger = logging.getLogger(__name__)


def _full_plan_query():
    return (
        select(StudyPlan)
        .options(
            selectinload(StudyPlan.days).selectinload(StudyPlanDay.topics),
            selectinload(StudyPlan.collaborators),
            selectinload(StudyPlan.course),
        )
        .execution_options(populate_existing=True)
    )


def _build_days(days: list[DaySpec]) -> list[StudyPlanDay]:
    built = []
    for spec in days:
        built.append(StudyPlanDay(
            id=str(uuid.uuid4()),
            day_number=spec.day_number,
            date=spec.date,
            review_topics=list(spec.review_topics),
            total_hours=spec.total_hours,
            completed=False,
            topics=[
                StudyPlanTopic(
                    id=str(uuid.uuid4()),
                    position=position,
                    name=topic.name,
                    hours_allocated=topic.hours_allocated,
                    difficulty=topic.difficulty,
                    goal_description=topic.goal_description,
                    resources=list(topic.resources),
                    completed=False,
                )
                for position, topic in enumerate(spec.topics)
            ],
        ))
    return built


async def create_plan(
    db: AsyncSession,
    user_id: str,
    course_id: str,
    exam_date: date,
    days: list[DaySpec],
    metadata: dict[str, Any] | None = None,
    collaborators: list[User] | None = None,
) -> StudyPlan:
    """Insert an active plan with its schedule and return it fully loaded.

    Raises:
        DuplicateRecordError: another active plan exists for the same
            (user, course) pair.
    """
    metadata = metadata or {}
    plan_id = str(uuid.uuid4())
    try:
        now = utcnow()
        plan = StudyPlan(
            id=plan_id,
            user_id=user_id,
            course_id=course_id,
            exam_date=exam_date,
            status=PlanStatus.ACTIVE.value,
            generated_at=now,
            updated_at=now,
            total_days=len(days),
            hours_per_day=metadata.get("hours_per_day", 4),
            student_level=metadata.get("student_level", "intermediate"),
            dependencies=metadata.get("dependencies") or {},
            study_tips=list(metadata.get("study_tips") or []),
            exam_strategy=metadata.get("exam_strategy") or "",
            last_replanned=metadata.get("last_replanned"),
            replan_count=metadata.get("replan_count", 0),
            days=_build_days(days),
            collaborators=list(collaborators or []),
        )
        db.add(plan)
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Active plan already exists for user {user_id}, course {course_id}: {e}")
        raise DuplicateRecordError("An active study plan already exists for this course") from e
    except OperationalError as e:
        logger.error(f"Database connection error in create_plan for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error creating study plan for user {user_id}: {e}")
        raise DatabaseError(f"Failed to create study plan: {e}") from e

    return await get_plan_by_id(db, plan_id)


async def get_plan_by_id(db: AsyncSession, plan_id: str) -> StudyPlan | None:
    try:
        result = await db.execute(_full_plan_query().where(StudyPlan.id == plan_id))
        return result.scalar_one_or_none()
    except OperationalError as e:
        logger.error(f"Database connection error in get_plan_by_id for plan {plan_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting study plan {plan_id}: {e}")
        raise DatabaseError(f"Failed to get study plan: {e}") from e


async def get_active_plan(db: AsyncSession, user_id: str, course_id: str) -> StudyPlan | None:
    """The single active plan a user owns for a course, if any."""
    try:
        result = await db.execute(
            _full_plan_query()
            .where(StudyPlan.user_id == user_id)
            .where(StudyPlan.course_id == course_id)
            .where(StudyPlan.status == PlanStatus.ACTIVE.value)
        )
        return result.scalars().first()
    except OperationalError as e:
        logger.error(f"Database connection error in get_active_plan for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting active plan for user {user_id}, course {course_id}: {e}")
        raise DatabaseError(f"Failed to get active study plan: {e}") from e


async def get_latest_visible_plan(db: AsyncSession, user_id: str) -> StudyPlan | None:
    """Most recently updated active plan the user owns or collaborates on."""
    try:
        result = await db.execute(
            _full_plan_query()
            .where(StudyPlan.status == PlanStatus.ACTIVE.value)
            .where(
                (StudyPlan.user_id == user_id)
                | StudyPlan.collaborators.any(User.id == user_id)
            )
            .order_by(StudyPlan.updated_at.desc())
            .limit(1)
        )
        return result.scalars().first()
    except OperationalError as e:
        logger.error(f"Database connection error in get_latest_visible_plan for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting latest plan for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get latest study plan: {e}") from e


async def save_plan(db: AsyncSession, plan: StudyPlan) -> StudyPlan:
    """Flush pending changes to *plan*, bumping its version.

    Touching ``updated_at`` forces an UPDATE of the plan row, so child-only
    edits still go through the version check.

    Raises:
        StaleRecordError: the plan was modified by another transaction.
            The session is rolled back before raising.
    """
    plan_id = plan.id
    try:
        plan.updated_at = utcnow()
        await db.flush()
        return plan
    except StaleDataError as e:
        await db.rollback()
        logger.warning(f"Stale write on study plan {plan_id}: {e}")
        raise StaleRecordError(f"Study plan {plan_id} was modified concurrently") from e
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Constraint violation saving study plan {plan_id}: {e}")
        raise DuplicateRecordError("An active study plan already exists for this course") from e
    except OperationalError as e:
        logger.error(f"Database connection error in save_plan for plan {plan_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error saving study plan {plan_id}: {e}")
        raise DatabaseError(f"Failed to save study plan: {e}") from e
