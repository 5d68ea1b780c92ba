"""Initial schema: users, courses, tasks, study plans and confidence tracking.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Changes:
- Create users, courses and tasks tables
- Create study_plans with a version column for optimistic locking and a
  partial unique index allowing one active plan per (user, course)
- Create study_plan_days and study_plan_topics (ordered schedule)
- Create study_plan_collaborators association table
- Create confidence_tracking and confidence_ratings (append-only history)
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=False), primary_key=True)


def _fk(name: str, target: str, ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(name, UUID(as_uuid=False), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    )

    op.create_table(
        "courses",
        _id(),
        _fk("user_id", "users.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("syllabus", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True),
    )
    op.create_index("idx_courses_user", "courses", ["user_id"])

    op.create_table(
        "tasks",
        _id(),
        _fk("user_id", "users.id"),
        _fk("course_id", "courses.id", ondelete="SET NULL", nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="Todo"),
        sa.Column("completed_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
    )
    # Streak queries read every Done task of a user
    op.create_index("idx_tasks_user_status", "tasks", ["user_id", "status"])

    op.create_table(
        "study_plans",
        _id(),
        _fk("user_id", "users.id"),
        _fk("course_id", "courses.id"),
        sa.Column("exam_date", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("generated_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("total_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("hours_per_day", sa.Float, nullable=False, server_default="4"),
        sa.Column("student_level", sa.String(20), nullable=False, server_default="intermediate"),
        sa.Column("dependencies", JSONB, nullable=True),
        sa.Column("study_tips", JSONB, nullable=True),
        sa.Column("exam_strategy", sa.Text, nullable=False, server_default=""),
        sa.Column("last_replanned", sa.DateTime, nullable=True),
        sa.Column("replan_count", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index(
        "uq_study_plans_one_active",
        "study_plans",
        ["user_id", "course_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )
    op.create_index("idx_study_plans_exam_date", "study_plans", ["exam_date"])

    op.create_table(
        "study_plan_days",
        _id(),
        _fk("study_plan_id", "study_plans.id"),
        sa.Column("day_number", sa.Integer, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("review_topics", JSONB, nullable=True),
        sa.Column("total_hours", sa.Float, nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean, nullable=False, server_default="false"),
        sa.UniqueConstraint("study_plan_id", "day_number"),
    )

    op.create_table(
        "study_plan_topics",
        _id(),
        _fk("day_id", "study_plan_days.id"),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("hours_allocated", sa.Float, nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False, server_default="intermediate"),
        sa.Column("goal_description", sa.Text, nullable=False, server_default=""),
        sa.Column("resources", JSONB, nullable=True),
        sa.Column("completed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime, nullable=True),
        sa.Column("confidence", sa.Integer, nullable=True),
        sa.UniqueConstraint("day_id", "name"),
    )

    op.create_table(
        "study_plan_collaborators",
        sa.Column(
            "study_plan_id", UUID(as_uuid=False),
            sa.ForeignKey("study_plans.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "user_id", UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
    )

    op.create_table(
        "confidence_tracking",
        _id(),
        _fk("user_id", "users.id"),
        _fk("course_id", "courses.id"),
        _fk("study_plan_id", "study_plans.id", ondelete="SET NULL", nullable=True),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("current_confidence", sa.Integer, nullable=True),
        sa.Column("needs_review", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("last_reviewed", sa.DateTime, nullable=True),
        sa.Column("review_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("updated_at", sa.DateTime, nullable=True),
        sa.UniqueConstraint("user_id", "course_id", "topic"),
    )

    op.create_table(
        "confidence_ratings",
        _id(),
        _fk("record_id", "confidence_tracking.id"),
        sa.Column("sequence", sa.Integer, nullable=False, server_default="1"),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("note", sa.Text, nullable=False, server_default=""),
        sa.Column("context", sa.String(50), nullable=False, server_default="general"),
        sa.Column("created_at", sa.DateTime, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("confidence_ratings")
    op.drop_table("confidence_tracking")
    op.drop_table("study_plan_collaborators")
    op.drop_table("study_plan_topics")
    op.drop_table("study_plan_days")
    op.drop_index("idx_study_plans_exam_date", table_name="study_plans")
    op.drop_index("uq_study_plans_one_active", table_name="study_plans")
    op.drop_table("study_plans")
    op.drop_index("idx_tasks_user_status", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("idx_courses_user", table_name="courses")
    op.drop_table("courses")
    op.drop_table("users")
