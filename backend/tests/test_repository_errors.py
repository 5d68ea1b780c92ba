"""Tests for repository error handling."""

import logging
import uuid
from datetime import date

import pytest

from app.core.errors import ValidationError
from app.core.study_plan import DaySpec, TopicSpec
from app.db.exceptions import DuplicateRecordError
from app.db.models import User
from app.db.repositories import confidence_repo, course_repo, study_plan_repo, user_repo


@pytest.mark.asyncio
async def test_get_user_by_id_missing(db):
    user = await user_repo.get_user_by_id(db, str(uuid.uuid4()))
    assert user is None


@pytest.mark.asyncio
async def test_email_lookup_is_case_insensitive(db, test_user):
    found = await user_repo.get_user_by_email(db, "  TEST@example.com ")
    assert found.id == test_user.id


@pytest.mark.asyncio
async def test_email_lookup_matches_mixed_case_row(db):
    stored = User(id=str(uuid.uuid4()), email="Jane.Doe@example.com", name="Jane Doe")
    db.add(stored)
    await db.flush()

    found = await user_repo.get_user_by_email(db, "jane.doe@example.com")
    assert found.id == stored.id


@pytest.mark.asyncio
async def test_second_active_plan_rejected_by_index(db, test_user, test_course):
    """The partial unique index backs the one-active-plan rule."""
    days = [DaySpec(day_number=1, date=date(2026, 5, 1), topics=[TopicSpec(name="Laws", hours_allocated=2)])]
    await study_plan_repo.create_plan(db, test_user.id, test_course.id, date(2026, 5, 10), days)

    with pytest.raises(DuplicateRecordError):
        await study_plan_repo.create_plan(db, test_user.id, test_course.id, date(2026, 5, 10), days)


@pytest.mark.asyncio
async def test_repository_logs_errors(db, test_user, test_course, caplog):
    """Repository errors should be logged."""
    caplog.set_level(logging.ERROR)
    user_id = test_user.id

    days = [DaySpec(day_number=1, date=date(2026, 5, 1), topics=[TopicSpec(name="Laws", hours_allocated=2)])]
    await study_plan_repo.create_plan(db, test_user.id, test_course.id, date(2026, 5, 10), days)
    with pytest.raises(DuplicateRecordError):
        await study_plan_repo.create_plan(db, test_user.id, test_course.id, date(2026, 5, 10), days)

    assert "Active plan already exists" in caplog.text
    assert user_id in caplog.text


@pytest.mark.asyncio
async def test_course_syllabus_stored_as_items(db, test_user):
    course = await course_repo.create_course(db, test_user.id, "Optics", "PH210", ["Lenses", "Mirrors"])
    assert course.syllabus == [
        {"topic": "Lenses", "completed": False},
        {"topic": "Mirrors", "completed": False},
    ]
    assert course.syllabus_topics == ["Lenses", "Mirrors"]


@pytest.mark.asyncio
async def test_rating_out_of_range_not_stored(db, test_user, test_course):
    with pytest.raises(ValidationError):
        await confidence_repo.upsert_rating(db, test_user.id, test_course.id, "Laws", 0)
    assert await confidence_repo.get_record(db, test_user.id, test_course.id, "Laws") is None
