"""Confidence tracking repository."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.calendar import utcnow
from app.core.confidence import DEFAULT_CONTEXT, add_rating, require_score
from app.core.errors import DomainError
from app.db.exceptions import ConnectionError, DatabaseError, DuplicateRecordError
from app.db.models import ConfidenceRating, ConfidenceRecord

logger = logging.getLogger(__name__)


def _new_rating(**fields) -> ConfidenceRating:
    return ConfidenceRating(id=str(uuid.uuid4()), **fields)


async def get_record(
    db: AsyncSession, user_id: str, course_id: str, topic: str
) -> ConfidenceRecord | None:
    try:
        result = await db.execute(
            select(ConfidenceRecord)
            .options(selectinload(ConfidenceRecord.ratings))
            .where(ConfidenceRecord.user_id == user_id)
            .where(ConfidenceRecord.course_id == course_id)
            .where(ConfidenceRecord.topic == topic)
        )
        return result.scalar_one_or_none()
    except OperationalError as e:
        logger.error(f"Database connection error in get_record for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error getting confidence record for user {user_id}: {e}")
        raise DatabaseError(f"Failed to get confidence record: {e}") from e


async def _insert_record(
    db: AsyncSession,
    user_id: str,
    course_id: str,
    topic: str,
    study_plan_id: str | None,
) -> ConfidenceRecord | None:
    """Insert an unrated record inside a savepoint.

    Returns None when a concurrent writer already created the row; only the
    savepoint is rolled back, the caller's pending work survives.
    """
    record = ConfidenceRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        course_id=course_id,
        study_plan_id=study_plan_id,
        topic=topic,
        review_count=0,
        needs_review=False,
        created_at=utcnow(),
        ratings=[],
    )
    try:
        async with db.begin_nested():
            db.add(record)
        return record
    except IntegrityError as e:
        logger.info(f"Confidence record for user {user_id}, topic {topic} created concurrently: {e}")
        return None
    except OperationalError as e:
        logger.error(f"Database connection error in _insert_record for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e


async def upsert_rating(
    db: AsyncSession,
    user_id: str,
    course_id: str,
    topic: str,
    score: int,
    note: str = "",
    context: str = DEFAULT_CONTEXT,
    study_plan_id: str | None = None,
) -> ConfidenceRecord:
    """Append a rating to the (user, course, topic) record, creating it if needed.

    Losing the insert race to another request reuses the winner's record.
    """
    require_score(score)

    record = await get_record(db, user_id, course_id, topic)
    if record is None:
        record = await _insert_record(db, user_id, course_id, topic, study_plan_id)
    if record is None:
        record = await get_record(db, user_id, course_id, topic)
    if record is None:
        raise DuplicateRecordError(f"Confidence record for '{topic}' could not be created")

    try:
        now = utcnow()
        add_rating(record, score, note, context, now, rating_factory=_new_rating)
        if study_plan_id:
            record.study_plan_id = study_plan_id
        record.updated_at = now
        await db.flush()
        return record
    except DomainError:
        raise
    except IntegrityError as e:
        logger.error(f"Constraint violation rating topic {topic} for user {user_id}: {e}")
        raise DuplicateRecordError(f"Confidence rating for '{topic}' conflicts with an existing row") from e
    except OperationalError as e:
        logger.error(f"Database connection error in upsert_rating for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error rating topic {topic} for user {user_id}: {e}")
        raise DatabaseError(f"Failed to record confidence rating: {e}") from e


async def get_records_for_course(
    db: AsyncSession, user_id: str, course_id: str
) -> list[ConfidenceRecord]:
    """All records of a course, least confident first (unrated last)."""
    try:
        result = await db.execute(
            select(ConfidenceRecord)
            .options(selectinload(ConfidenceRecord.ratings))
            .where(ConfidenceRecord.user_id == user_id)
            .where(ConfidenceRecord.course_id == course_id)
        )
        records = list(result.scalars().all())
    except OperationalError as e:
        logger.error(f"Database connection error in get_records_for_course for user {user_id}: {e}")
        raise ConnectionError("Database connection failed") from e
    except Exception as e:
        logger.error(f"Unexpected error listing confidence records for user {user_id}: {e}")
        raise DatabaseError(f"Failed to list confidence records: {e}") from e

    records.sort(key=lambda r: (r.current_confidence is None, r.current_confidence or 0, r.topic))
    return records
