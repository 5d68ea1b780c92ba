"""HTTP tests for the study plan, course, task and streak endpoints."""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from app.core.calendar import today
from app.models.plan_generation import GeneratedDay, GeneratedPlan, GeneratedTopic
from app.services.plan_generator import plan_generator

EXAM_DATE = (today() + timedelta(days=6)).isoformat()


def _generated() -> GeneratedPlan:
    return GeneratedPlan(
        daily_schedule=[
            GeneratedDay(topics=[GeneratedTopic(name="Laws", hours_allocated=2)]),
            GeneratedDay(topics=[
                GeneratedTopic(name="Cycles", hours_allocated=2),
                GeneratedTopic(name="Entropy", hours_allocated=2),
            ]),
        ],
        study_tips=["Practice problems daily"],
    )


@pytest.fixture
def llm():
    """Patch both generation calls used by ``/generate``."""
    with patch.object(plan_generator, "generate_topic_dependencies", new=AsyncMock(return_value={})), \
            patch.object(plan_generator, "generate_study_plan", new=AsyncMock(return_value=_generated())) as gen:
        yield gen


async def _generate(client, headers, course_id):
    return await client.post(
        "/api/v1/study-plans/generate",
        json={"courseId": course_id, "examDate": EXAM_DATE, "hoursPerDay": 4},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_version(client):
    response = await client.get("/api/v1/version")
    assert response.json()["title"] == "Engine Board API"


async def test_request_id_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


async def test_requires_token(client, test_course):
    response = await client.get(f"/api/v1/study-plans/{test_course.id}")
    assert response.status_code == 401
    body = response.json()
    assert body["status"] == "error"
    assert body["errors"][0]["code"] == "UNAUTHORIZED"


async def test_rejects_bad_token(client):
    response = await client.get("/api/v1/streaks", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Study plans
# ---------------------------------------------------------------------------


async def test_generate_and_fetch(client, auth_headers, test_user, test_course, llm):
    headers = auth_headers(test_user)
    response = await _generate(client, headers, test_course.id)
    assert response.status_code == 201
    plan = response.json()["data"]["studyPlan"]
    assert plan["status"] == "active"
    assert plan["totalDays"] == 2
    assert plan["studyTips"] == ["Practice problems daily"]
    assert plan["days"][0]["topics"][0]["name"] == "Laws"

    response = await client.get(f"/api/v1/study-plans/{test_course.id}", headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["studyPlan"]["id"] == plan["id"]
    assert data["todayTasks"]["dayNumber"] == 1
    assert data["progress"] == 0
    assert data["isBehind"] is False


async def test_generate_conflict_returns_existing_plan(client, auth_headers, test_user, test_course, llm):
    headers = auth_headers(test_user)
    first = (await _generate(client, headers, test_course.id)).json()["data"]["studyPlan"]

    response = await _generate(client, headers, test_course.id)
    assert response.status_code == 400
    body = response.json()
    assert body["errors"][0]["code"] == "CONFLICT"
    assert body["data"]["existingPlan"]["id"] == first["id"]


async def test_generate_rejects_past_exam(client, auth_headers, test_user, test_course, llm):
    response = await client.post(
        "/api/v1/study-plans/generate",
        json={"courseId": test_course.id, "examDate": today().isoformat()},
        headers=auth_headers(test_user),
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "examDate"
    llm.assert_not_awaited()


async def test_generate_validates_body(client, auth_headers, test_user):
    response = await client.post(
        "/api/v1/study-plans/generate",
        json={"courseId": "not-a-uuid", "examDate": "someday"},
        headers=auth_headers(test_user),
    )
    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"courseId", "examDate"} <= fields


async def test_complete_topic_and_confidence(client, auth_headers, test_user, test_course, llm):
    headers = auth_headers(test_user)
    plan = (await _generate(client, headers, test_course.id)).json()["data"]["studyPlan"]

    response = await client.put(
        f"/api/v1/study-plans/{plan['id']}/complete-topic",
        json={"day": 1, "topicName": "Laws", "confidence": 2},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["progress"] == 33
    assert data["needsReview"] is True
    assert data["studyPlan"]["days"][0]["completed"] is True

    response = await client.get(f"/api/v1/study-plans/{test_course.id}/confidence", headers=headers)
    data = response.json()["data"]
    assert data["needsReview"] == 1
    assert data["lowConfidenceTopics"][0]["topic"] == "Laws"


async def test_complete_unknown_topic(client, auth_headers, test_user, test_course, llm):
    headers = auth_headers(test_user)
    plan = (await _generate(client, headers, test_course.id)).json()["data"]["studyPlan"]

    response = await client.put(
        f"/api/v1/study-plans/{plan['id']}/complete-topic",
        json={"day": 1, "topicName": "Optics"},
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["errors"][0]["code"] == "NOT_FOUND"


async def test_complete_day_and_abandon(client, auth_headers, test_user, test_course, llm):
    headers = auth_headers(test_user)
    plan = (await _generate(client, headers, test_course.id)).json()["data"]["studyPlan"]

    response = await client.put(f"/api/v1/study-plans/{plan['id']}/days/2/complete", headers=headers)
    assert response.json()["data"]["progress"] == 67

    response = await client.put(
        f"/api/v1/study-plans/{plan['id']}/status", json={"status": "abandoned"}, headers=headers
    )
    assert response.json()["data"]["studyPlan"]["status"] == "abandoned"

    response = await client.get(f"/api/v1/study-plans/{test_course.id}", headers=headers)
    assert response.status_code == 404


async def test_collaborator_flow(client, auth_headers, test_user, other_user, test_course, llm):
    headers = auth_headers(test_user)
    plan = (await _generate(client, headers, test_course.id)).json()["data"]["studyPlan"]

    response = await client.post(
        f"/api/v1/study-plans/{plan['id']}/collaborators",
        json={"email": other_user.email},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["collaborators"][0]["email"] == other_user.email

    friend = auth_headers(other_user)
    response = await client.get("/api/v1/study-plans/latest", headers=friend)
    assert response.json()["data"]["studyPlan"]["id"] == plan["id"]

    response = await client.put(f"/api/v1/study-plans/{plan['id']}/replan", headers=friend)
    assert response.status_code == 403


async def test_unknown_plan(client, auth_headers, test_user):
    response = await client.put(
        f"/api/v1/study-plans/{uuid.uuid4()}/days/1/complete", headers=auth_headers(test_user)
    )
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Courses, tasks & streaks
# ---------------------------------------------------------------------------


async def test_course_crud(client, auth_headers, test_user, other_user):
    headers = auth_headers(test_user)
    response = await client.post(
        "/api/v1/courses",
        json={"name": "Linear Algebra", "code": "MA102", "syllabusTopics": ["Vectors", " ", "Matrices"]},
        headers=headers,
    )
    assert response.status_code == 201
    course = response.json()["data"]
    assert [item["topic"] for item in course["syllabus"]] == ["Vectors", "Matrices"]

    listed = (await client.get("/api/v1/courses", headers=headers)).json()["data"]
    assert [c["id"] for c in listed] == [course["id"]]

    response = await client.get(f"/api/v1/courses/{course['id']}", headers=auth_headers(other_user))
    assert response.status_code == 403


async def test_task_done_feeds_streak(client, auth_headers, test_user, test_course):
    headers = auth_headers(test_user)
    response = await client.post(
        "/api/v1/tasks", json={"title": "Problem set 1", "courseId": test_course.id}, headers=headers
    )
    assert response.status_code == 201
    task = response.json()["data"]
    assert task["completedAt"] is None

    response = await client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "Done"}, headers=headers)
    assert response.json()["data"]["completedAt"] is not None

    response = await client.get("/api/v1/streaks", headers=headers)
    data = response.json()["data"]
    assert data["global"]["currentStreakDays"] == 1
    assert data["global"]["isActive"] is True
    assert data["courses"][0]["name"] == "Thermodynamics"

    response = await client.patch(f"/api/v1/tasks/{task['id']}", json={"status": "Todo"}, headers=headers)
    assert response.json()["data"]["completedAt"] is None


async def test_task_list_filter(client, auth_headers, test_user, test_course):
    headers = auth_headers(test_user)
    await client.post("/api/v1/tasks", json={"title": "Loose task"}, headers=headers)
    await client.post("/api/v1/tasks", json={"title": "Course task", "courseId": test_course.id}, headers=headers)

    response = await client.get("/api/v1/tasks", params={"courseId": test_course.id}, headers=headers)
    assert [t["title"] for t in response.json()["data"]] == ["Course task"]


async def test_task_of_another_user(client, auth_headers, test_user, other_user):
    created = await client.post("/api/v1/tasks", json={"title": "Mine"}, headers=auth_headers(test_user))
    task_id = created.json()["data"]["id"]

    response = await client.patch(
        f"/api/v1/tasks/{task_id}", json={"status": "Done"}, headers=auth_headers(other_user)
    )
    assert response.status_code == 403
