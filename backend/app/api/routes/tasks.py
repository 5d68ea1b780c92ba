"""Task endpoints.

Moving a task to Done is what feeds the streak engine.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.api.dependencies import CurrentUserId, DbSession
from app.core.errors import AuthorizationError, NotFoundError
from app.db.repositories import course_repo, task_repo
from app.models.envelope import success_response
from app.models.task import TaskCreate, TaskResponse, TaskUpdate

router = APIRouter()


def _dump(task) -> dict:
    return TaskResponse.model_validate(task).model_dump(by_alias=True)


async def _check_course(db, course_id: str, user_id: str) -> None:
    course = await course_repo.get_course(db, course_id)
    if course is None:
        raise NotFoundError("Course not found")
    if course.user_id != user_id:
        raise AuthorizationError("Not authorized to use this course")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreate,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    course_id = str(body.course_id) if body.course_id else None
    if course_id:
        await _check_course(db, course_id, user_id)
    task = await task_repo.create_task(
        db, user_id, body.title, body.description, course_id, body.status
    )
    return success_response(_dump(task))


@router.get("")
async def list_tasks(
    user_id: CurrentUserId,
    db: DbSession,
    course_id: Annotated[UUID | None, Query(alias="courseId")] = None,
) -> dict:
    tasks = await task_repo.list_tasks(db, user_id, str(course_id) if course_id else None)
    return success_response([_dump(t) for t in tasks])


@router.patch("/{task_id}")
async def update_task(
    task_id: UUID,
    body: TaskUpdate,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Partial update; a status change stamps or clears ``completedAt``."""
    task = await task_repo.get_task(db, str(task_id))
    if task is None:
        raise NotFoundError("Task not found")
    if task.user_id != user_id:
        raise AuthorizationError("Not authorized to update this task")

    task = await task_repo.update_task(
        db, task, title=body.title, description=body.description, status=body.status
    )
    return success_response(_dump(task))
