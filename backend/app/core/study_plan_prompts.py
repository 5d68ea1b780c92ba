"""
Prompt templates for the study plan generator.
"""

from datetime import date


DEPENDENCIES_SYSTEM_PROMPT = (
    "You are an expert educational AI that analyzes course syllabi and identifies "
    "topic dependencies. Return ONLY valid JSON without any markdown formatting or explanation."
)

STUDY_PLAN_SYSTEM_PROMPT = (
    "You are an expert study planner for engineering students. Create realistic, "
    "achievable study plans. Return ONLY valid JSON."
)

ADAPTIVE_SYSTEM_PROMPT = (
    "You are an adaptive study coach. Analyze student progress and suggest realistic "
    "plan adjustments. Return ONLY valid JSON."
)

SPACED_REPETITION_SYSTEM_PROMPT = (
    "You are an expert in spaced repetition learning. Create optimal review schedules. "
    "Return ONLY valid JSON."
)


def build_dependencies_prompt(course_name: str, topics: list[str]) -> str:
    return f"""Analyze the following course and create a topic dependency graph.

Course: {course_name}
Topics: {", ".join(topics)}

Create a JSON object where each topic maps to its prerequisites and metadata.
Format:
{{
  "topicName": {{
    "prerequisites": ["prerequisite1", "prerequisite2"],
    "difficulty": "beginner|intermediate|advanced",
    "estimatedHours": number,
    "description": "brief description"
  }}
}}

Return ONLY the JSON object, no other text."""


def build_study_plan_prompt(
    course_name: str,
    topics: list[str],
    exam_date: date,
    days_until_exam: int,
    student_level: str,
    hours_per_day: float,
) -> str:
    return f"""Create a {days_until_exam}-day study plan for the following course:

Course: {course_name}
Syllabus Topics: {", ".join(topics)}
Student Level: {student_level}
Available Hours per Day: {hours_per_day}
Exam Date: {exam_date.isoformat()}

Create a day-by-day plan that:
1. Starts with fundamentals and builds up
2. Includes review sessions using spaced repetition
3. Allocates more time to difficult topics
4. Leaves the last day for final revision
5. MUST include ALL syllabus topics listed above. Do not skip any topics.

Return JSON in this format:
{{
  "dailySchedule": [
    {{
      "day": 1,
      "topics": [
        {{
          "name": "Topic Name",
          "hoursAllocated": 2,
          "difficulty": "beginner|intermediate|advanced",
          "goalDescription": "What student should achieve"
        }}
      ],
      "reviewTopics": ["Topic to review from previous days"],
      "totalHours": 4
    }}
  ],
  "studyTips": ["Tip 1", "Tip 2"],
  "examStrategy": "Final day strategy"
}}

Return ONLY the JSON object."""


def build_adaptive_prompt(snapshot: list[dict], days_remaining: int) -> str:
    completed = [t["topic"] for t in snapshot if t["completed"]]
    pending = [t["topic"] for t in snapshot if not t["completed"]]
    low_confidence = [t["topic"] for t in snapshot if t["confidence"] and t["confidence"] < 3]

    return f"""The student needs to adjust their study plan.

Days Remaining: {days_remaining}
Completed Topics: {", ".join(completed) or "None"}
Pending Topics: {", ".join(pending) or "None"}
Low Confidence Topics: {", ".join(low_confidence) or "None"}

Suggest adjustments:
1. Which topics to prioritize
2. Which topics to skip or make optional
3. How to redistribute remaining time
4. Whether to focus on breadth or depth

Return JSON:
{{
  "priorityTopics": ["Must complete"],
  "optionalTopics": ["Can skip if time runs out"],
  "adjustedSchedule": [
    {{
      "day": 1,
      "topics": ["topic1", "topic2"],
      "hours": 4
    }}
  ],
  "recommendations": ["Recommendation 1", "Recommendation 2"],
  "confidenceBoost": ["How to improve low-confidence topics"]
}}

Return ONLY the JSON object."""


def build_spaced_repetition_prompt(topics_learned: list[dict], exam_date: date) -> str:
    learned = ", ".join(
        f"{t['name']} (learned on {t['learned_date'].isoformat()})" for t in topics_learned
    )
    return f"""Create a spaced repetition review schedule for these topics:

Topics Learned: {learned}
Exam Date: {exam_date.isoformat()}

Use intervals: 1 day, 3 days, 7 days for review sessions.

Return JSON:
{{
  "reviewSchedule": [
    {{
      "date": "2025-01-15",
      "topics": ["Topic 1", "Topic 2"],
      "reviewType": "quick|deep",
      "estimatedTime": 30
    }}
  ]
}}

Return ONLY the JSON object."""
