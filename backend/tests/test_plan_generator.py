"""Tests for the plan generation collaborator and LLM JSON parsing."""

import json
from datetime import date
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.config import settings
from app.core.errors import UpstreamError
from app.services.plan_generator import PlanGenerator, flat_dependencies
from app.utils.json_parser import extract_json_object

PLAN_JSON = {
    "dailySchedule": [
        {
            "day": 1,
            "topics": [{"name": "Laws", "hoursAllocated": 2, "difficulty": "beginner", "goalDescription": "State them"}],
            "reviewTopics": [],
            "totalHours": 2,
        },
    ],
    "studyTips": ["Sleep"],
    "examStrategy": "Skim first",
}


@pytest.fixture(autouse=True)
def _api_key(monkeypatch):
    monkeypatch.setattr(settings, "perplexity_api_key", "test-key")


# ---------------------------------------------------------------------------
# Pure unit tests: extract_json_object
# ---------------------------------------------------------------------------


class TestExtractJsonObject:
    def test_direct_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_markdown_fence(self):
        content = 'Here you go:\n```json\n{"a": {"b": [1, 2]}}\n```\nGood luck'
        assert extract_json_object(content) == {"a": {"b": [1, 2]}}

    def test_embedded_object(self):
        content = 'Sure! {"reviewSchedule": [{"date": "2024-01-02", "topics": ["x}"]}]} Enjoy.'
        assert extract_json_object(content) == {"reviewSchedule": [{"date": "2024-01-02", "topics": ["x}"]}]}

    @pytest.mark.parametrize("content", ["", "no json here", "[1, 2, 3]", "{broken"])
    def test_unparseable_raises(self, content):
        with pytest.raises(ValueError):
            extract_json_object(content)


# ---------------------------------------------------------------------------
# PlanGenerator with a mocked LLM
# ---------------------------------------------------------------------------


class TestGenerateStudyPlan:
    async def test_parses_camel_case_reply(self):
        generator = PlanGenerator()
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=json.dumps(PLAN_JSON))) as llm:
            plan = await generator.generate_study_plan("Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2)

        assert plan.daily_schedule[0].topics[0].name == "Laws"
        assert plan.daily_schedule[0].topics[0].hours_allocated == 2
        assert plan.study_tips == ["Sleep"]
        assert llm.await_args.args[2] == settings.llm_plan_model

    async def test_prompt_counts_days_from_reference_date(self):
        generator = PlanGenerator()
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=json.dumps(PLAN_JSON))) as llm:
            await generator.generate_study_plan(
                "Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2, reference_date=date(2029, 12, 22)
            )

        user_prompt = llm.await_args.args[1]
        assert user_prompt.startswith("Create a 10-day study plan")

    async def test_garbage_reply_raises_upstream_error(self):
        generator = PlanGenerator()
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value="I cannot help")):
            with pytest.raises(UpstreamError):
                await generator.generate_study_plan("Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2)

    async def test_empty_schedule_raises_upstream_error(self):
        generator = PlanGenerator()
        reply = json.dumps({"dailySchedule": [], "studyTips": []})
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=reply)):
            with pytest.raises(UpstreamError):
                await generator.generate_study_plan("Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2)

    async def test_http_error_raises_upstream_error(self):
        generator = PlanGenerator()
        failing = AsyncMock(side_effect=httpx.ConnectError("down"))
        with patch("app.services.plan_generator._call_llm", new=failing):
            with pytest.raises(UpstreamError) as exc_info:
                await generator.generate_study_plan("Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2)
        assert "down" in exc_info.value.detail

    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "perplexity_api_key", "")
        generator = PlanGenerator()
        with pytest.raises(UpstreamError, match="not configured"):
            await generator.generate_study_plan("Thermo", ["Laws"], date(2030, 1, 1), "beginner", 2)


class TestDependencies:
    async def test_parsed_graph(self):
        reply = json.dumps({"Cycles": {"prerequisites": ["Laws"], "difficulty": "advanced", "estimatedHours": 6}})
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=reply)):
            graph = await PlanGenerator().generate_topic_dependencies("Thermo", ["Laws", "Cycles"])
        assert graph["Cycles"]["prerequisites"] == ["Laws"]
        assert graph["Cycles"]["estimatedHours"] == 6

    async def test_falls_back_to_flat_graph(self):
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value="nope")):
            graph = await PlanGenerator().generate_topic_dependencies("Thermo", ["Laws", "Cycles"])
        assert graph == flat_dependencies(["Laws", "Cycles"])
        assert graph["Laws"] == {
            "prerequisites": [],
            "difficulty": "intermediate",
            "estimatedHours": 4,
            "description": "Laws",
        }


class TestAdaptiveAndReview:
    async def test_suggestions_parsed(self):
        reply = "```json\n" + json.dumps({
            "priorityTopics": ["Entropy"],
            "adjustedSchedule": [{"day": 1, "topics": ["Entropy"], "hours": 3}],
        }) + "\n```"
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=reply)):
            suggestions = await PlanGenerator().suggest_adaptive_plan(
                [{"topic": "Entropy", "completed": False, "confidence": 0}], 3
            )
        assert suggestions.priority_topics == ["Entropy"]
        assert suggestions.adjusted_schedule[0].hours == 3
        assert suggestions.recommendations == []

    async def test_review_schedule_parsed(self):
        reply = json.dumps({"reviewSchedule": [{"date": "2030-01-02", "topics": ["Laws"], "reviewType": "deep"}]})
        with patch("app.services.plan_generator._call_llm", new=AsyncMock(return_value=reply)):
            schedule = await PlanGenerator().get_spaced_repetition_schedule(
                [{"name": "Laws", "learned_date": date(2030, 1, 1)}], date(2030, 1, 10)
            )
        assert schedule.review_schedule[0].review_type == "deep"
        assert schedule.review_schedule[0].estimated_time == 30
