"""Course endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.dependencies import CurrentUserId, DbSession
from app.core.errors import AuthorizationError, NotFoundError
from app.db.repositories import course_repo
from app.models.course import CourseCreate, CourseResponse
from app.models.envelope import success_response

router = APIRouter()


def _dump(course) -> dict:
    return CourseResponse.model_validate(course).model_dump(by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseCreate,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Create a course with its syllabus topics."""
    topics = [t.strip() for t in body.syllabus_topics if t.strip()]
    course = await course_repo.create_course(db, user_id, body.name, body.code, topics)
    return success_response(_dump(course))


@router.get("")
async def list_courses(
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    courses = await course_repo.list_courses(db, user_id)
    return success_response([_dump(c) for c in courses])


@router.get("/{course_id}")
async def get_course(
    course_id: UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    course = await course_repo.get_course(db, str(course_id))
    if course is None:
        raise NotFoundError("Course not found")
    if course.user_id != user_id:
        raise AuthorizationError("Not authorized to view this course")
    return success_response(_dump(course))
