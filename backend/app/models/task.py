"""Task models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.status import TaskStatus
from app.models._casing import CAMEL_CONFIG, CAMEL_ORM_CONFIG


class TaskCreate(BaseModel):
    model_config = CAMEL_CONFIG

    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    course_id: UUID | None = None
    status: TaskStatus = TaskStatus.TODO


class TaskUpdate(BaseModel):
    model_config = CAMEL_CONFIG

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    status: TaskStatus | None = None


class TaskResponse(BaseModel):
    model_config = CAMEL_ORM_CONFIG

    id: str
    course_id: str | None = None
    title: str
    description: str
    status: TaskStatus
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
