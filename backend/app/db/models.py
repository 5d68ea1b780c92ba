"""SQLAlchemy ORM models."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.core.calendar import utcnow

# ``StudyPlanDay.date`` shadows the type name inside its class body
CalendarDay = date


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


study_plan_collaborators = Table(
    "study_plan_collaborators",
    Base.metadata,
    Column("study_plan_id", UUID(as_uuid=False), ForeignKey("study_plans.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """User table (rows are provisioned by the auth service)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    courses: Mapped[list["Course"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    tasks: Mapped[list["Task"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    study_plans: Mapped[list["StudyPlan"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Course(Base):
    """A course with its syllabus topics."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    syllabus: Mapped[list] = mapped_column(JSONB, default=list)  # [{"topic": str, "completed": bool}]
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    user: Mapped["User"] = relationship(back_populates="courses")
    tasks: Mapped[list["Task"]] = relationship(back_populates="course")

    @property
    def syllabus_topics(self) -> list[str]:
        return [item["topic"] for item in (self.syllabus or []) if item.get("topic")]


class Task(Base):
    """User task; a transition to Done is a streak completion event."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Todo")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship(back_populates="tasks")
    course: Mapped["Course | None"] = relationship(back_populates="tasks")


class StudyPlan(Base):
    """Generated day-by-day study schedule for one course and exam."""

    __tablename__ = "study_plans"
    __table_args__ = (
        Index(
            "uq_study_plans_one_active",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_study_plans_exam_date", "exam_date"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    exam_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    generated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Metadata
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hours_per_day: Mapped[float] = mapped_column(Float, nullable=False, default=4)
    student_level: Mapped[str] = mapped_column(String(20), nullable=False, default="intermediate")
    dependencies: Mapped[dict] = mapped_column(JSONB, default=dict)
    study_tips: Mapped[list] = mapped_column(JSONB, default=list)
    exam_strategy: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_replanned: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    replan_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __mapper_args__ = {"version_id_col": version}

    user: Mapped["User"] = relationship(back_populates="study_plans")
    course: Mapped["Course"] = relationship()
    days: Mapped[list["StudyPlanDay"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="StudyPlanDay.day_number",
    )
    collaborators: Mapped[list["User"]] = relationship(secondary=study_plan_collaborators)


class StudyPlanDay(Base):
    """One day of a study plan."""

    __tablename__ = "study_plan_days"
    __table_args__ = (
        UniqueConstraint("study_plan_id", "day_number"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    study_plan_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False)
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[CalendarDay] = mapped_column(Date, nullable=False)
    review_topics: Mapped[list] = mapped_column(JSONB, default=list)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    plan: Mapped["StudyPlan"] = relationship(back_populates="days")
    topics: Mapped[list["StudyPlanTopic"]] = relationship(
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="StudyPlanTopic.position",
    )


class StudyPlanTopic(Base):
    """A topic scheduled on a given day."""

    __tablename__ = "study_plan_topics"
    __table_args__ = (
        UniqueConstraint("day_id", "name"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    day_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("study_plan_days.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hours_allocated: Mapped[float] = mapped_column(Float, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="intermediate")
    goal_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    resources: Mapped[list] = mapped_column(JSONB, default=list)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    confidence: Mapped[int | None] = mapped_column(Integer, nullable=True)

    day: Mapped["StudyPlanDay"] = relationship(back_populates="topics")


class ConfidenceRecord(Base):
    """Per (user, course, topic) confidence summary."""

    __tablename__ = "confidence_tracking"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "topic"),
    )

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    course_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    study_plan_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True)
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    current_confidence: Mapped[int | None] = mapped_column(Integer, nullable=True)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    ratings: Mapped[list["ConfidenceRating"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="ConfidenceRating.sequence",
    )


class ConfidenceRating(Base):
    """Append-only confidence history entry."""

    __tablename__ = "confidence_ratings"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)
    record_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("confidence_tracking.id", ondelete="CASCADE"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    context: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    record: Mapped["ConfidenceRecord"] = relationship(back_populates="ratings")
