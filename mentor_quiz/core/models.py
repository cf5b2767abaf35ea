"""Domain models for quiz attempts and mentor analytics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True, frozen=True)
class Option:
    """One selectable answer for a question."""

    id: str
    text: str
    is_correct: bool = False  # Authoring metadata only; grading uses Question.correct_answer_id


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question with a single correct option."""

    id: str
    text: str
    options: tuple[Option, ...]
    correct_answer_id: str
    explanation: str = ""
    points: int = 1
    category: str = "general"
    difficulty: str = "medium"
    image_url: str | None = None

    def has_option(self, option_id: str) -> bool:
        return any(option.id == option_id for option in self.options)


@dataclass(slots=True, frozen=True)
class QuizDefinition:
    """Immutable quiz as fetched from the store for one attempt."""

    id: str
    title: str
    description: str
    category: str
    difficulty: str
    time_limit_minutes: int
    questions: tuple[Question, ...]
    is_active: bool = True
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None

    def find_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)


@dataclass(slots=True, frozen=True)
class Answer:
    """Answer recorded for a single question of an attempt."""

    question_id: str
    selected_option_id: str
    is_correct: bool
    points: int
    answered_at: datetime


@dataclass(slots=True, frozen=True)
class ResultAnalytics:
    """Per-attempt analytics bag stored with a result."""

    category: str | None = None
    difficulty: str | None = None
    average_time_per_question: float | None = None


@dataclass(slots=True, frozen=True)
class QuizResult:
    """Outcome of a submitted attempt. Never mutated after persistence."""

    id: str
    quiz_id: str
    user_id: str
    answers: tuple[Answer, ...]
    total_questions: int
    correct_answers: int
    score: int
    percentage: float
    completed_at: datetime
    time_taken: int  # seconds
    analytics: ResultAnalytics | None = None


@dataclass(slots=True, frozen=True)
class Student:
    """Directory entry for a student managed by a mentor."""

    id: str
    name: str
    mentor_id: str | None = None


@dataclass(slots=True, frozen=True)
class UserAnalyticsSummary:
    """Rollup of one user's result history."""

    total_quizzes: int = 0
    average_score: float = 0.0
    total_time_spent: int = 0
    category_averages: dict[str, float] = field(default_factory=dict)
    difficulty_averages: dict[str, float] = field(default_factory=dict)
    recent_results: tuple[QuizResult, ...] = ()


@dataclass(slots=True, frozen=True)
class StudentProgress:
    """Per-student row of the mentor dashboard."""

    student_id: str
    name: str
    total_quizzes: int
    average_score: float
    last_quiz_at: datetime | None
    recent_results: tuple[QuizResult, ...] = ()
    fetch_failed: bool = False


@dataclass(slots=True, frozen=True)
class MentorAnalyticsSummary:
    """Rollup across every student a mentor manages."""

    total_students: int = 0
    average_student_score: float = 0.0
    total_quizzes_completed: int = 0
    student_progress: dict[str, StudentProgress] = field(default_factory=dict)
