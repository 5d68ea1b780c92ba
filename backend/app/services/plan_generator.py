"""
Plan-generation collaborator backed by an OpenAI-compatible chat API.

Every reply is parsed with :func:`extract_json_object` and validated with
the models in ``app.models.plan_generation``. Failures surface as
``UpstreamError``, except for the dependency graph which falls back to a
flat graph.
"""

import logging
from datetime import date

import httpx
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.config import settings
from app.core.calendar import days_until, today
from app.core.errors import UpstreamError
from app.core.study_plan_prompts import (
    ADAPTIVE_SYSTEM_PROMPT,
    DEPENDENCIES_SYSTEM_PROMPT,
    SPACED_REPETITION_SYSTEM_PROMPT,
    STUDY_PLAN_SYSTEM_PROMPT,
    build_adaptive_prompt,
    build_dependencies_prompt,
    build_spaced_repetition_prompt,
    build_study_plan_prompt,
)
from app.models.plan_generation import (
    AdaptiveSuggestions,
    GeneratedPlan,
    ReviewSchedule,
    TopicDependency,
)
from app.utils.json_parser import extract_json_object

logger = logging.getLogger(__name__)


@retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(min=2, max=15),
    retry=retry_if_exception_type((httpx.ConnectError,)),
    reraise=True,
)
async def _call_llm(system_prompt: str, user_prompt: str, model: str | None = None) -> str:
    """Call chat/completions with retry on connection errors; returns the reply text."""
    url = f"{settings.perplexity_api_url}/chat/completions"
    headers = {
        "Authorization": f"Bearer {settings.perplexity_api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "model": model or settings.llm_model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": 0.2,
        "max_tokens": settings.llm_max_tokens,
    }

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.llm_timeout_seconds, connect=10.0)
    ) as client:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        result = response.json()
        return result["choices"][0]["message"]["content"]


async def _ask(system_prompt: str, user_prompt: str, model: str | None = None) -> dict:
    """Run one prompt and return the parsed JSON object.

    Raises:
        UpstreamError: on transport failure, missing API key or unparseable reply.
    """
    if not settings.perplexity_api_key:
        raise UpstreamError("AI service is not configured", detail="PERPLEXITY_API_KEY not set")

    try:
        content = await _call_llm(system_prompt, user_prompt, model)
    except httpx.HTTPError as e:
        raise UpstreamError("AI service request failed", detail=str(e)) from e
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise UpstreamError("AI service returned an unexpected response", detail=str(e)) from e

    try:
        return extract_json_object(content)
    except ValueError as e:
        raise UpstreamError("AI service returned an unreadable response", detail=content[:500]) from e


def flat_dependencies(topics: list[str]) -> dict[str, dict]:
    """Dependency graph with no prerequisites, used when generation fails."""
    return {
        topic: TopicDependency(description=topic).model_dump(by_alias=True)
        for topic in topics
    }


class PlanGenerator:
    """Builds study plans, replan suggestions and review schedules via the LLM."""

    async def generate_topic_dependencies(self, course_name: str, topics: list[str]) -> dict[str, dict]:
        """``{topic: {prerequisites, difficulty, estimatedHours, description}}``.

        Never raises: any failure falls back to :func:`flat_dependencies`.
        """
        try:
            raw = await _ask(DEPENDENCIES_SYSTEM_PROMPT, build_dependencies_prompt(course_name, topics))
            return {
                name: TopicDependency.model_validate(entry).model_dump(by_alias=True)
                for name, entry in raw.items()
                if isinstance(entry, dict)
            }
        except (UpstreamError, PydanticValidationError) as e:
            logger.warning(f"Dependency graph generation failed for {course_name}, using flat graph: {e}")
            return flat_dependencies(topics)

    async def generate_study_plan(
        self,
        course_name: str,
        topics: list[str],
        exam_date: date,
        student_level: str,
        hours_per_day: float,
        reference_date: date | None = None,
    ) -> GeneratedPlan:
        """Day-by-day allocation for the course, counting days from *reference_date*.

        Raises:
            UpstreamError: if the reply is missing or does not validate.
        """
        prompt = build_study_plan_prompt(
            course_name,
            topics,
            exam_date,
            days_until(exam_date, reference_date or today()),
            student_level,
            hours_per_day,
        )
        raw = await _ask(STUDY_PLAN_SYSTEM_PROMPT, prompt, model=settings.llm_plan_model)
        try:
            plan = GeneratedPlan.model_validate(raw)
        except PydanticValidationError as e:
            raise UpstreamError("AI service returned an invalid study plan", detail=str(e)) from e

        logger.info(f"Generated {len(plan.daily_schedule)}-day plan for {course_name}")
        return plan

    async def suggest_adaptive_plan(self, snapshot: list[dict], days_remaining: int) -> AdaptiveSuggestions:
        """Replan suggestions from a per-topic progress snapshot.

        Raises:
            UpstreamError: if the reply is missing or does not validate.
        """
        raw = await _ask(ADAPTIVE_SYSTEM_PROMPT, build_adaptive_prompt(snapshot, days_remaining))
        try:
            return AdaptiveSuggestions.model_validate(raw)
        except PydanticValidationError as e:
            raise UpstreamError("AI service returned invalid replan suggestions", detail=str(e)) from e

    async def get_spaced_repetition_schedule(self, topics_learned: list[dict], exam_date: date) -> ReviewSchedule:
        """Review sessions for learned topics.

        Raises:
            UpstreamError: if the reply is missing or does not validate.
        """
        raw = await _ask(
            SPACED_REPETITION_SYSTEM_PROMPT,
            build_spaced_repetition_prompt(topics_learned, exam_date),
        )
        try:
            return ReviewSchedule.model_validate(raw)
        except PydanticValidationError as e:
            raise UpstreamError("AI service returned an invalid review schedule", detail=str(e)) from e


plan_generator = PlanGenerator()
