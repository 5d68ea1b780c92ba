"""Task repository.

Done tasks are the completion log the streak service reads.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.calendar import utcnow
from app.core.status import TaskStatus, apply_task_status
from app.db.exceptions import ConnectionError, DatabaseError
from app.db.models import Task

logger = logging.getLogger(__name__)


async def create_task(
    db: AsyncSession,
    user_id: str,
    title: str,
    description: str = "",
    course_id: str | None = None,
    status: TaskStatus = TaskStatus.TODO,
) -> Task:
    """Create a task; a task created as Done is stamped immediately."""
    try:
        now = utcnow()
        task = Task(
            id=str(uuid.uuid4()),
            user_id=user_id,
            course_id=course_id,
            title=title,
            description=description,
            status=TaskStatus.TODO.value,
            created_at=now,
            updated_at=now,
        )
        apply_task_status(task, status, now)
        db.add(task)
        await db.flush()
        return task
    except OperationalError as e:
        logger.error(f"Database connection error in create_task for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error creating task for user {user_id}: {e}")
        raise DatabaseError(f"Failed to create task: {e}") from e


async def get_task(db: AsyncSession, task_id: str) -> Task | None:
    try:
        result = await db.execute(select(Task).where(Task.id == task_id))
        return result.scalar_one_or_none()
    except OperationalError as e:
        logger.error(f"Database connection error in get_task for task {task_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting task {task_id}: {e}")
        raise DatabaseError(f"Failed to get task: {e}") from e


async def list_tasks(db: AsyncSession, user_id: str, course_id: str | None = None) -> list[Task]:
    """Tasks of a user, newest first, optionally filtered by course."""
    try:
        query = select(Task).where(Task.user_id == user_id)
        if course_id:
            query = query.where(Task.course_id == course_id)
        result = await db.execute(query.order_by(Task.created_at.desc()))
        return list(result.scalars().all())
    except OperationalError as e:
        logger.error(f"Database connection error in list_tasks for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error listing tasks for user {user_id}: {e}")
        raise DatabaseError(f"Failed to list tasks: {e}") from e


async def update_task(
    db: AsyncSession,
    task: Task,
    *,
    title: str | None = None,
    description: str | None = None,
    status: TaskStatus | None = None,
) -> Task:
    """Apply a partial update; status changes go through ``apply_task_status``."""
    try:
        now = utcnow()
        if title is not None:
            task.title = title
        if description is not None:
            task.description = description
        if status is not None:
            apply_task_status(task, status, now)
        task.updated_at = now
        await db.flush()
        return task
    except OperationalError as e:
        logger.error(f"Database connection error in update_task for task {task.id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error updating task {task.id}: {e}")
        raise DatabaseError(f"Failed to update task: {e}") from e


async def get_completed_tasks(db: AsyncSession, user_id: str) -> list[Task]:
    """All Done tasks of a user with their course loaded."""
    try:
        result = await db.execute(
            select(Task)
            .options(selectinload(Task.course))
            .where(Task.user_id == user_id)
            .where(Task.status == TaskStatus.DONE.value)
        )
        return list(result.scalars().all())
    except OperationalError as e:
        logger.error(f"Database connection error in get_completed_tasks for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting completed tasks for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get completed tasks: {e}") from e
