"""Course models."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models._casing import CAMEL_CONFIG, CAMEL_ORM_CONFIG


class CourseCreate(BaseModel):
    model_config = CAMEL_CONFIG

    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)
    syllabus_topics: list[str] = []


class SyllabusItem(BaseModel):
    topic: str
    completed: bool = False


class CourseResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    name: str
    code: str
    syllabus: list[SyllabusItem]
    created_at: datetime
