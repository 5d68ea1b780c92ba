"""
Study plan service: orchestrates the plan aggregate rules, persistence and
the generation, e-mail and broadcast collaborators.

Writes to a plan go through the optimistic version check on the plan row.
A lost race is retried from a fresh load a few times before surfacing as
``ConcurrentUpdateError``.
"""

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core import study_plan as rules
from app.core.calendar import days_until, to_calendar_day, today, utcnow
from app.core.confidence import AFTER_LEARNING, get_trend
from app.core.errors import (
    AuthorizationError,
    ConcurrentUpdateError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from app.core.status import PlanStatus, check_plan_transition
from app.db.exceptions import DuplicateRecordError, StaleRecordError
from app.db.models import StudyPlan
from app.db.repositories import confidence_repo, course_repo, study_plan_repo, user_repo
from app.models.plan_generation import AdaptiveSuggestions, ReviewSchedule
from app.models.study_plan import ConfidenceRecordResponse, dump_plan
from app.services.email_service import email_service
from app.services.plan_generator import plan_generator
from app.services.redis_client import publish_plan_event

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3


def _retrying() -> AsyncRetrying:
    return AsyncRetrying(
        stop=stop_after_attempt(MAX_WRITE_ATTEMPTS),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        retry=retry_if_exception_type(ConcurrentUpdateError),
        reraise=True,
    )


def is_owner(plan: StudyPlan, user_id: str) -> bool:
    return plan.user_id == user_id


def is_member(plan: StudyPlan, user_id: str) -> bool:
    """Owner or collaborator."""
    return is_owner(plan, user_id) or any(c.id == user_id for c in plan.collaborators)


async def _load_plan(db: AsyncSession, plan_id: str) -> StudyPlan:
    plan = await study_plan_repo.get_plan_by_id(db, plan_id)
    if plan is None:
        raise NotFoundError("Study plan not found")
    return plan


def _require_owner(plan: StudyPlan, user_id: str, action: str) -> None:
    if not is_owner(plan, user_id):
        raise AuthorizationError(f"Only the plan owner can {action}")


def _require_member(plan: StudyPlan, user_id: str) -> None:
    if not is_member(plan, user_id):
        raise AuthorizationError("Not authorized to access this study plan")


async def _save(db: AsyncSession, plan: StudyPlan) -> StudyPlan:
    try:
        return await study_plan_repo.save_plan(db, plan)
    except StaleRecordError as e:
        raise ConcurrentUpdateError("Study plan was modified concurrently, please retry") from e


def _close_if_finished(plan: StudyPlan) -> bool:
    """Move an active plan to completed once every topic is done."""
    if plan.status == PlanStatus.ACTIVE.value and rules.all_topics_completed(plan):
        plan.status = check_plan_transition(plan.status, PlanStatus.COMPLETED).value
        logger.info(f"Study plan {plan.id} completed")
        return True
    return False


def _validate_exam_date(exam_date: object, reference: date) -> date:
    exam = to_calendar_day(exam_date)
    if exam <= reference:
        raise ValidationError("Exam date must be in the future", field="examDate")
    return exam


class StudyPlanService:
    """Study plan operations, one method per use case."""

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _raise_if_active(self, db: AsyncSession, user_id: str, course_id: str) -> None:
        existing = await study_plan_repo.get_active_plan(db, user_id, course_id)
        if existing is not None:
            raise ConflictError(
                "Active study plan already exists for this course",
                payload={"existingPlan": dump_plan(existing)},
            )

    async def create_plan(
        self,
        db: AsyncSession,
        user_id: str,
        course_id: str,
        exam_date: object,
        daily_schedule: list[Any],
        metadata: dict[str, Any] | None = None,
        reference_date: date | None = None,
    ) -> StudyPlan:
        """Persist a new active plan whose day 1 falls on *reference_date*.

        Raises:
            ValidationError: exam date not strictly in the future.
            ConflictError: an active plan already exists for the course.
        """
        start = reference_date or today()
        exam = _validate_exam_date(exam_date, start)
        await self._raise_if_active(db, user_id, course_id)

        days = rules.build_schedule(daily_schedule, start)
        try:
            plan = await study_plan_repo.create_plan(db, user_id, course_id, exam, days, metadata)
        except DuplicateRecordError as e:
            # Lost the race against a concurrent create
            await self._raise_if_active(db, user_id, course_id)
            raise ConflictError("Active study plan already exists for this course") from e

        logger.info(f"Created study plan {plan.id} ({len(days)} days) for user {user_id}")
        await publish_plan_event(plan.id, "plan_created", {"courseId": course_id})
        return plan

    async def generate_plan(
        self,
        db: AsyncSession,
        user_id: str,
        course_id: str,
        exam_date: object,
        hours_per_day: float = 4,
        student_level: str = "intermediate",
        reference_date: date | None = None,
    ) -> StudyPlan:
        """Generate a schedule for the course via the LLM and persist it."""
        start = reference_date or today()
        exam = _validate_exam_date(exam_date, start)

        course = await course_repo.get_course(db, course_id)
        if course is None:
            raise NotFoundError("Course not found")
        if course.user_id != user_id:
            raise AuthorizationError("Not authorized to plan for this course")

        await self._raise_if_active(db, user_id, course_id)

        topics = course.syllabus_topics
        if not topics:
            raise ValidationError("Course has no syllabus topics", field="courseId")

        dependencies = await plan_generator.generate_topic_dependencies(course.name, topics)
        generated = await plan_generator.generate_study_plan(
            course.name, topics, exam, student_level, hours_per_day, reference_date=start
        )

        return await self.create_plan(
            db,
            user_id,
            course_id,
            exam,
            generated.daily_schedule,
            metadata={
                "hours_per_day": hours_per_day,
                "student_level": student_level,
                "dependencies": dependencies,
                "study_tips": generated.study_tips,
                "exam_strategy": generated.exam_strategy,
            },
            reference_date=start,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_active_plan_view(
        self,
        db: AsyncSession,
        user_id: str,
        course_id: str,
        reference_date: date | None = None,
    ) -> dict:
        """``{study_plan, today_tasks, progress, is_behind}`` for the active plan."""
        ref = reference_date or today()
        plan = await study_plan_repo.get_active_plan(db, user_id, course_id)
        if plan is None:
            raise NotFoundError("No active study plan found")

        return {
            "study_plan": plan,
            "today_tasks": rules.today_tasks(plan, ref),
            "progress": rules.progress(plan),
            "is_behind": rules.is_behind_schedule(plan, ref),
        }

    async def latest_plan(self, db: AsyncSession, user_id: str) -> StudyPlan:
        plan = await study_plan_repo.get_latest_visible_plan(db, user_id)
        if plan is None:
            raise NotFoundError("No active plan found")
        return plan

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_topic(
        self,
        db: AsyncSession,
        plan_id: str,
        user_id: str,
        day_number: int,
        topic_name: str,
        confidence: int | None = None,
        note: str = "",
        now: datetime | None = None,
    ) -> dict:
        """Mark one topic done, optionally recording a confidence rating.

        Returns ``{study_plan, needs_review, progress}``.
        """
        rules.validate_confidence(confidence)

        async for attempt in _retrying():
            with attempt:
                stamp = now or utcnow()
                plan = await _load_plan(db, plan_id)
                _require_member(plan, user_id)

                day = rules.find_day(plan, day_number)
                if day is None:
                    raise NotFoundError("Day not found")
                topic = rules.find_topic(day, topic_name)
                if topic is None:
                    raise NotFoundError("Topic not found")

                rules.complete_topic(day, topic, stamp, confidence)
                _close_if_finished(plan)
                await _save(db, plan)

        if confidence is not None:
            try:
                await confidence_repo.upsert_rating(
                    db,
                    user_id,
                    plan.course_id,
                    topic_name,
                    confidence,
                    note=note,
                    context=AFTER_LEARNING,
                    study_plan_id=plan.id,
                )
            except DuplicateRecordError as e:
                raise ConcurrentUpdateError("Confidence rating was modified concurrently, please retry") from e

        await publish_plan_event(plan.id, "topic_completed", {"day": day_number, "topic": topic_name})
        return {
            "study_plan": plan,
            "needs_review": rules.needs_review(confidence),
            "progress": rules.progress(plan),
        }

    async def mark_day_complete(
        self,
        db: AsyncSession,
        plan_id: str,
        user_id: str,
        day_number: int,
        now: datetime | None = None,
    ) -> dict:
        """Complete every topic of a day. Returns ``{study_plan, progress}``."""
        async for attempt in _retrying():
            with attempt:
                plan = await _load_plan(db, plan_id)
                _require_member(plan, user_id)

                day = rules.find_day(plan, day_number)
                if day is None:
                    raise NotFoundError("Day not found")

                rules.complete_day(day, now or utcnow())
                _close_if_finished(plan)
                await _save(db, plan)

        await publish_plan_event(plan.id, "day_completed", {"day": day_number})
        return {"study_plan": plan, "progress": rules.progress(plan)}

    async def change_status(
        self,
        db: AsyncSession,
        plan_id: str,
        user_id: str,
        new_status: str | PlanStatus,
    ) -> StudyPlan:
        """Explicitly close or abandon a plan (owner only)."""
        async for attempt in _retrying():
            with attempt:
                plan = await _load_plan(db, plan_id)
                _require_owner(plan, user_id, "change its status")
                plan.status = check_plan_transition(plan.status, new_status).value
                await _save(db, plan)

        logger.info(f"Study plan {plan.id} moved to {plan.status}")
        await publish_plan_event(plan.id, "status_changed", {"status": plan.status})
        return plan

    # ------------------------------------------------------------------
    # Replanning
    # ------------------------------------------------------------------

    async def adaptive_replan(
        self,
        db: AsyncSession,
        plan_id: str,
        user_id: str,
        apply: bool = False,
        reference_date: date | None = None,
        now: datetime | None = None,
    ) -> dict:
        """Ask for replan suggestions and stamp the audit trail.

        With ``apply=True`` and an adjusted schedule in the suggestions, the
        plan is retired as ``replanned`` and replaced by a new active plan
        starting on *reference_date*.

        Returns ``{suggestions, current_progress, study_plan}``.
        """
        ref = reference_date or today()
        plan = await _load_plan(db, plan_id)
        _require_owner(plan, user_id, "replan it")

        days_remaining = days_until(plan.exam_date, ref)
        if days_remaining <= 0:
            raise ValidationError("Exam has already passed")

        snapshot = rules.progress_snapshot(plan)
        suggestions = await plan_generator.suggest_adaptive_plan(snapshot, days_remaining)

        async for attempt in _retrying():
            with attempt:
                stamp = now or utcnow()
                plan = await _load_plan(db, plan_id)
                plan.last_replanned = stamp
                plan.replan_count = (plan.replan_count or 0) + 1
                completed, total = rules.topic_counts(plan)
                result_plan = plan

                new_days = []
                if apply and suggestions.adjusted_schedule:
                    new_days = rules.build_adjusted_schedule(
                        suggestions.adjusted_schedule, plan, ref, plan.hours_per_day
                    )
                if new_days:
                    plan.status = check_plan_transition(plan.status, PlanStatus.REPLANNED).value
                await _save(db, plan)

        if new_days:
            result_plan = await self._replace_plan(db, plan, new_days, stamp)

        logger.info(f"Replanned study plan {plan.id} (count={plan.replan_count}, applied={bool(new_days)})")
        await publish_plan_event(plan.id, "plan_replanned", {"replacementId": result_plan.id})
        return {
            "suggestions": suggestions,
            "current_progress": {
                "days_remaining": days_remaining,
                "completed": completed,
                "total": total,
            },
            "study_plan": result_plan,
        }

    async def _replace_plan(
        self,
        db: AsyncSession,
        old: StudyPlan,
        days: list[rules.DaySpec],
        stamp: datetime,
    ) -> StudyPlan:
        try:
            return await study_plan_repo.create_plan(
                db,
                old.user_id,
                old.course_id,
                old.exam_date,
                days,
                metadata={
                    "hours_per_day": old.hours_per_day,
                    "student_level": old.student_level,
                    "dependencies": old.dependencies,
                    "study_tips": old.study_tips,
                    "exam_strategy": old.exam_strategy,
                    "last_replanned": stamp,
                    "replan_count": old.replan_count,
                },
                collaborators=list(old.collaborators),
            )
        except DuplicateRecordError as e:
            raise ConcurrentUpdateError("Study plan was replaced concurrently, please retry") from e

    async def review_schedule(self, db: AsyncSession, plan_id: str, user_id: str) -> ReviewSchedule:
        """Spaced repetition sessions for the topics completed so far.

        Generation failures degrade to an empty schedule.
        """
        plan = await _load_plan(db, plan_id)
        _require_member(plan, user_id)

        learned = rules.topics_learned(plan)
        if not learned:
            return ReviewSchedule()

        try:
            return await plan_generator.get_spaced_repetition_schedule(learned, plan.exam_date)
        except UpstreamError as e:
            logger.warning(f"Review schedule generation failed for plan {plan_id}: {e.detail or e.message}")
            return ReviewSchedule()

    # ------------------------------------------------------------------
    # Confidence & collaboration
    # ------------------------------------------------------------------

    async def confidence_overview(self, db: AsyncSession, user_id: str, course_id: str) -> dict:
        """``{all_topics, low_confidence_topics, needs_review}`` for a course."""
        records = await confidence_repo.get_records_for_course(db, user_id, course_id)

        all_topics = []
        for record in records:
            entry = ConfidenceRecordResponse.model_validate(record)
            entry.trend = get_trend([r.score for r in record.ratings])
            all_topics.append(entry)

        low = [
            entry for entry in all_topics
            if entry.current_confidence is not None
            and entry.current_confidence < rules.LOW_CONFIDENCE_THRESHOLD
        ]
        return {
            "all_topics": all_topics,
            "low_confidence_topics": low,
            "needs_review": len(low),
        }

    async def add_collaborator(self, db: AsyncSession, plan_id: str, user_id: str, email: str) -> list:
        """Grant another user access to the plan; returns the collaborator list."""
        collaborator = None
        async for attempt in _retrying():
            with attempt:
                plan = await _load_plan(db, plan_id)
                _require_owner(plan, user_id, "add collaborators")

                collaborator = await user_repo.get_user_by_email(db, email)
                if collaborator is None:
                    raise NotFoundError("User with this email not found")
                if collaborator.id == user_id:
                    raise ValidationError("You cannot add yourself as a collaborator", field="email")
                if any(c.id == collaborator.id for c in plan.collaborators):
                    raise ValidationError("User is already a collaborator", field="email")

                plan.collaborators.append(collaborator)
                await _save(db, plan)

        owner = await user_repo.get_user_by_id(db, user_id)
        await email_service.send_invitation(collaborator.email, owner.name if owner else "A classmate")
        await publish_plan_event(plan.id, "collaborator_added", {"userId": collaborator.id})
        logger.info(f"Added collaborator {collaborator.id} to study plan {plan.id}")
        return list(plan.collaborators)


study_plan_service = StudyPlanService()
