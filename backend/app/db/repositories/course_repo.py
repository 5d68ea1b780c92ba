"""Course repository."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.exceptions import ConnectionError, DatabaseError
from app.db.models import Course

logger = logging.getLogger(__name__)


async def create_course(
    db: AsyncSession,
    user_id: str,
    name: str,
    code: str,
    syllabus_topics: list[str],
) -> Course:
    """Create a course whose syllabus starts with every topic incomplete."""
    try:
        course = Course(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            code=code,
            syllabus=[{"topic": topic, "completed": False} for topic in syllabus_topics],
        )
        db.add(course)
        await db.flush()
        return course
    except OperationalError as e:
        logger.error(f"Database connection error in create_course for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error creating course for user {user_id}: {e}")
        raise DatabaseError(f"Failed to create course: {e}") from e


async def get_course(db: AsyncSession, course_id: str) -> Course | None:
    try:
        result = await db.execute(select(Course).where(Course.id == course_id))
        return result.scalar_one_or_none()
    except OperationalError as e:
        logger.error(f"Database connection error in get_course for course {course_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting course {course_id}: {e}")
        raise DatabaseError(f"Failed to get course: {e}") from e


async def list_courses(db: AsyncSession, user_id: str) -> list[Course]:
    """All courses of a user, oldest first."""
    try:
        result = await db.execute(
            select(Course)
            .where(Course.user_id == user_id)
            .order_by(Course.created_at.asc())
        )
        return list(result.scalars().all())
    except OperationalError as e:
        logger.error(f"Database connection error in list_courses for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error listing courses for user {user_id}: {e}")
        raise DatabaseError(f"Failed to list courses: {e}") from e
