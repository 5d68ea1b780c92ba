"""Study plan endpoints."""

from uuid import UUID

from fastapi import APIRouter, Request, status

from app.api.dependencies import CurrentUserId, DbSession
from app.middleware.rate_limiter import LLM_LIMIT, limiter
from app.models.envelope import success_response
from app.models.study_plan import (
    AddCollaboratorRequest,
    ChangeStatusRequest,
    CollaboratorResponse,
    CompleteTopicRequest,
    DayResponse,
    GeneratePlanRequest,
    ReplanRequest,
    dump_plan,
)
from app.services.study_plan_service import study_plan_service

router = APIRouter()


@router.post("/generate", status_code=status.HTTP_201_CREATED)
@limiter.limit(LLM_LIMIT)
async def generate_study_plan(
    request: Request,
    body: GeneratePlanRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Generate and store a study plan for a course."""
    plan = await study_plan_service.generate_plan(
        db,
        user_id,
        str(body.course_id),
        body.exam_date,
        hours_per_day=body.hours_per_day,
        student_level=body.student_level,
    )
    return success_response({"studyPlan": dump_plan(plan)})


@router.get("/latest")
async def get_latest_plan(
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Most recently updated active plan owned by or shared with the caller."""
    plan = await study_plan_service.latest_plan(db, user_id)
    return success_response({"studyPlan": dump_plan(plan)})


@router.get("/{course_id}")
async def get_study_plan(
    course_id: UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Active plan for a course with today's tasks and progress."""
    view = await study_plan_service.get_active_plan_view(db, user_id, str(course_id))
    today_tasks = view["today_tasks"]
    return success_response({
        "studyPlan": dump_plan(view["study_plan"]),
        "todayTasks": DayResponse.model_validate(today_tasks).model_dump(by_alias=True) if today_tasks else None,
        "progress": view["progress"],
        "isBehind": view["is_behind"],
    })


@router.put("/{plan_id}/complete-topic")
async def complete_topic(
    plan_id: UUID,
    body: CompleteTopicRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Mark a topic complete, optionally with a 1-5 confidence rating."""
    result = await study_plan_service.complete_topic(
        db,
        str(plan_id),
        user_id,
        body.day,
        body.topic_name,
        confidence=body.confidence,
        note=body.note,
    )
    return success_response({
        "studyPlan": dump_plan(result["study_plan"]),
        "needsReview": result["needs_review"],
        "progress": result["progress"],
    })


@router.put("/{plan_id}/days/{day_number}/complete")
async def complete_day(
    plan_id: UUID,
    day_number: int,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    result = await study_plan_service.mark_day_complete(db, str(plan_id), user_id, day_number)
    return success_response({
        "studyPlan": dump_plan(result["study_plan"]),
        "progress": result["progress"],
    })


@router.put("/{plan_id}/status")
async def change_status(
    plan_id: UUID,
    body: ChangeStatusRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    plan = await study_plan_service.change_status(db, str(plan_id), user_id, body.status)
    return success_response({"studyPlan": dump_plan(plan)})


@router.put("/{plan_id}/replan")
@limiter.limit(LLM_LIMIT)
async def adaptive_replan(
    request: Request,
    plan_id: UUID,
    user_id: CurrentUserId,
    db: DbSession,
    body: ReplanRequest | None = None,
) -> dict:
    """Ask for replan suggestions; with ``apply`` the plan is replaced."""
    result = await study_plan_service.adaptive_replan(
        db, str(plan_id), user_id, apply=body.apply if body else False
    )
    current = result["current_progress"]
    return success_response({
        "suggestions": result["suggestions"].model_dump(by_alias=True),
        "currentProgress": {
            "daysRemaining": current["days_remaining"],
            "completed": current["completed"],
            "total": current["total"],
        },
        "studyPlan": dump_plan(result["study_plan"]),
    })


@router.get("/{plan_id}/review-schedule")
@limiter.limit(LLM_LIMIT)
async def get_review_schedule(
    request: Request,
    plan_id: UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    schedule = await study_plan_service.review_schedule(db, str(plan_id), user_id)
    return success_response(schedule.model_dump(by_alias=True))


@router.get("/{course_id}/confidence")
async def get_confidence(
    course_id: UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Confidence records for a course, least confident first."""
    overview = await study_plan_service.confidence_overview(db, user_id, str(course_id))
    return success_response({
        "allTopics": [r.model_dump(by_alias=True) for r in overview["all_topics"]],
        "lowConfidenceTopics": [r.model_dump(by_alias=True) for r in overview["low_confidence_topics"]],
        "needsReview": overview["needs_review"],
    })


@router.post("/{plan_id}/collaborators")
async def add_collaborator(
    plan_id: UUID,
    body: AddCollaboratorRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    collaborators = await study_plan_service.add_collaborator(db, str(plan_id), user_id, body.email)
    return success_response({
        "collaborators": [
            CollaboratorResponse.model_validate(c).model_dump(by_alias=True) for c in collaborators
        ],
    })
