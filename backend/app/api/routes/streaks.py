"""Streak endpoints."""

from fastapi import APIRouter

from app.api.dependencies import CurrentUserId, DbSession
from app.models.envelope import success_response
from app.models.streak import StreakResponse
from app.services.streak_service import streak_service

router = APIRouter()


def _dump(result) -> dict:
    return StreakResponse.model_validate(result.to_dict()).model_dump(by_alias=True)


@router.get("")
async def get_streaks(
    user_id: CurrentUserId,
    db: DbSession,
) -> dict:
    """Global and per-course streaks for the current user."""
    streaks = await streak_service.get_streaks(db, user_id)
    return success_response({
        "global": _dump(streaks["global"]),
        "courses": [_dump(course) for course in streaks["courses"]],
    })
