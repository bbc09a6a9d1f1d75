from __future__ import annotations

from textwrap import dedent
from typing import Iterable

from ..core.enums import MessageTone
from ..exams.model import ExamRecord
from .client import GenerativeTextClient

PARENT_MESSAGE_TEMPLATE = dedent(
    """
    Act as an English tuition teacher.
    Write a short, professional WhatsApp message to a parent.

    Student Name: {student}
    Parent Name: {parent}
    Topic/Reason: {topic}
    Tone: {tone}

    Keep it concise (under 100 words). Include placeholders for date/time if relevant.
    """
)

LESSON_PLAN_TEMPLATE = dedent(
    """
    Create a brief English lesson plan.
    Topic: {topic}
    Target Audience: Grade {grade} students
    Duration: {duration}

    Format the output clearly with:
    1. Learning Objectives
    2. Warm-up activity (5 mins)
    3. Main Activity
    4. Wrap-up/Quiz idea

    Use simple markdown formatting.
    """
)

STUDENT_PROGRESS_TEMPLATE = dedent(
    """
    Provide a brief 2-sentence summary of a student's standing for an English teacher's internal notes.
    Student: {student}
    Attendance Rate: {rate:.1f}%
    Teacher Notes: {notes}

    Suggest one area of focus for the next class.
    """
)

EXAM_PERFORMANCE_TEMPLATE = dedent(
    """
    Analyze the evolution of test marks for a student named {student}.

    Test History:
    {history}

    Provide a concise assessment (approx 50 words).
    1. Identify the trend (Improving, Declining, Stable).
    2. Highlight any significant jumps or drops.
    3. Give 1 encouraging remark or advice for the teacher.
    """
)


def _score(value: float) -> str:
    return f"{value:g}"


class AssistantService:
    def __init__(self, client: GenerativeTextClient):
        self._client = client

    def parent_message(self, *, student: str, parent: str, topic: str, tone: MessageTone = MessageTone.FRIENDLY) -> str:
        prompt = PARENT_MESSAGE_TEMPLATE.format(
            student=student, parent=parent, topic=topic, tone=MessageTone(tone).value
        )
        return self._client.generate_text(prompt, fallback="Failed to generate message. Please try again.")

    def lesson_plan(self, *, topic: str, grade: str, duration: str) -> str:
        prompt = LESSON_PLAN_TEMPLATE.format(topic=topic, grade=grade, duration=duration)
        return self._client.generate_text(prompt, fallback="Failed to generate lesson plan.")

    def student_progress(self, *, student: str, attendance_rate: float, notes: str) -> str:
        prompt = STUDENT_PROGRESS_TEMPLATE.format(student=student, rate=float(attendance_rate), notes=notes or "-")
        return self._client.generate_text(prompt, fallback="Analysis unavailable due to error.")

    def exam_performance(self, *, student: str, history: Iterable[ExamRecord]) -> str:
        lines = "\n".join(
            f"- {r.date} ({r.test_name}): {_score(r.score)}/{_score(r.total)}"
            for r in sorted(history, key=lambda r: r.date)
        )
        prompt = EXAM_PERFORMANCE_TEMPLATE.format(student=student, history=lines or "- no tests yet")
        return self._client.generate_text(prompt, fallback="Analysis unavailable due to error.")

    def free_prompt(self, prompt: str) -> str:
        return self._client.generate_text(prompt, fallback="Failed to generate content.")
