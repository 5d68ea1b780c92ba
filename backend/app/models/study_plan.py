"""Study plan request and response models."""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.config import settings
from app.core.calendar import to_calendar_day
from app.core.errors import ValidationError
from app.models._casing import CAMEL_CONFIG, CAMEL_ORM_CONFIG

StudentLevel = Literal["beginner", "intermediate", "advanced"]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class GeneratePlanRequest(BaseModel):
    model_config = CAMEL_CONFIG

    course_id: UUID
    exam_date: date
    hours_per_day: float = Field(default=settings.default_hours_per_day, gt=0, le=24)
    student_level: StudentLevel = settings.default_student_level

    @field_validator("exam_date", mode="before")
    @classmethod
    def _calendar_day(cls, value: object) -> date:
        try:
            return to_calendar_day(value)
        except ValidationError as exc:
            raise ValueError(exc.message) from exc


class CompleteTopicRequest(BaseModel):
    model_config = CAMEL_CONFIG

    day: int = Field(ge=1)
    topic_name: str = Field(min_length=1)
    confidence: int | None = Field(default=None, ge=1, le=5)
    note: str = ""


class ChangeStatusRequest(BaseModel):
    model_config = CAMEL_CONFIG

    status: Literal["completed", "abandoned"]


class ReplanRequest(BaseModel):
    model_config = CAMEL_CONFIG

    apply: bool = False


class AddCollaboratorRequest(BaseModel):
    model_config = CAMEL_CONFIG

    email: EmailStr


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class TopicResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    name: str
    hours_allocated: float
    difficulty: str
    goal_description: str
    resources: list[str]
    completed: bool
    completed_at: datetime | None = None
    confidence: int | None = None


class DayResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    day_number: int
    date: date
    topics: list[TopicResponse]
    review_topics: list[str]
    total_hours: float
    completed: bool


class CollaboratorResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    email: str
    name: str


class StudyPlanResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    user_id: str
    course_id: str
    exam_date: date
    status: str
    generated_at: datetime
    updated_at: datetime
    version: int
    total_days: int
    hours_per_day: float
    student_level: str
    dependencies: dict
    study_tips: list[str]
    exam_strategy: str
    last_replanned: datetime | None = None
    replan_count: int
    days: list[DayResponse]
    collaborators: list[CollaboratorResponse]


class RatingResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    score: int
    note: str
    context: str
    created_at: datetime


class ConfidenceRecordResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    topic: str
    study_plan_id: str | None = None
    current_confidence: int | None = None
    needs_review: bool
    last_reviewed: datetime | None = None
    review_count: int
    ratings: list[RatingResponse]
    trend: str = "insufficient_data"


def dump_plan(plan: object) -> dict:
    """camelCase dict for a loaded plan."""
    return StudyPlanResponse.model_validate(plan).model_dump(by_alias=True, mode="json")
