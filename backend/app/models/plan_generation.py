"""Shapes of the plan-generation collaborator's JSON replies.

Replies are validated leniently: unknown keys are ignored and optional
fields fall back to defaults. Anything structurally wrong fails validation.
"""

from pydantic import BaseModel, Field

from app.models._casing import CAMEL_CONFIG


class TopicDependency(BaseModel):
    model_config = CAMEL_CONFIG

    prerequisites: list[str] = []
    difficulty: str = "intermediate"
    estimated_hours: float = 4
    description: str = ""


class GeneratedTopic(BaseModel):
    model_config = CAMEL_CONFIG

    name: str = Field(min_length=1)
    hours_allocated: float = Field(default=1.0, ge=0)
    difficulty: str = "intermediate"
    goal_description: str = ""
    resources: list[str] = []


class GeneratedDay(BaseModel):
    model_config = CAMEL_CONFIG

    day: int | None = None
    topics: list[GeneratedTopic] = []
    review_topics: list[str] = []
    total_hours: float | None = None


class GeneratedPlan(BaseModel):
    """Reply to the study plan prompt."""

    model_config = CAMEL_CONFIG

    daily_schedule: list[GeneratedDay] = Field(min_length=1)
    study_tips: list[str] = []
    exam_strategy: str = ""


class AdjustedDay(BaseModel):
    model_config = CAMEL_CONFIG

    day: int
    topics: list[str] = []
    hours: float | None = None


class AdaptiveSuggestions(BaseModel):
    """Reply to the adaptive replan prompt."""

    model_config = CAMEL_CONFIG

    priority_topics: list[str] = []
    optional_topics: list[str] = []
    adjusted_schedule: list[AdjustedDay] = []
    recommendations: list[str] = []
    confidence_boost: list[str] = []


class ReviewSession(BaseModel):
    model_config = CAMEL_CONFIG

    date: str
    topics: list[str] = []
    review_type: str = "quick"
    estimated_time: int = 30


class ReviewSchedule(BaseModel):
    """Reply to the spaced repetition prompt."""

    model_config = CAMEL_CONFIG

    review_schedule: list[ReviewSession] = []
