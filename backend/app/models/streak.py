"""Streak response models."""

from pydantic import BaseModel

from app.models._casing import CAMEL_CONFIG


class StreakHistoryDay(BaseModel):
    model_config = CAMEL_CONFIG

    date: str
    completed: bool
    count: int


class StreakResponse(BaseModel):
    model_config = CAMEL_CONFIG

    scope: str
    name: str | None = None
    current_streak_days: int
    is_active: bool
    longest_streak_days: int
    last_activity: str | None = None
    history: list[StreakHistoryDay]
