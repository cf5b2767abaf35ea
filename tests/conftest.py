from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from mentor_quiz.core.errors import PersistenceError
from mentor_quiz.core.models import Option, Question, QuizDefinition, QuizResult, ResultAnalytics
from mentor_quiz.core.services.result_store import InMemoryResultStore


class FakeClock:
    """Clock advanced by hand."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeTimer:
    def __init__(self, on_tick) -> None:
        self.on_tick = on_tick
        self.cancel_count = 0

    def cancel(self) -> None:
        self.cancel_count += 1


class FailingWriteStore(InMemoryResultStore):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.write_attempts = 0

    def persist_result(self, result: QuizResult) -> None:
        self.write_attempts += 1
        raise PersistenceError("store unavailable")


def make_question(question_id: str, correct: str = "b", points: int = 1) -> Question:
    return Question(
        id=question_id,
        text=f"Question {question_id}?",
        options=(
            Option(id="a", text="first"),
            Option(id="b", text="second"),
            Option(id="c", text="third"),
        ),
        correct_answer_id=correct,
        points=points,
    )


def make_quiz(
    question_count: int = 2,
    quiz_id: str = "quiz-1",
    time_limit_minutes: int = 10,
    points: int = 1,
    category: str = "aptitude",
    difficulty: str = "easy",
) -> QuizDefinition:
    return QuizDefinition(
        id=quiz_id,
        title="Sample",
        description="",
        category=category,
        difficulty=difficulty,
        time_limit_minutes=time_limit_minutes,
        questions=tuple(make_question(f"q{i + 1}", points=points) for i in range(question_count)),
    )


def make_result(
    result_id: str,
    user_id: str = "student-1",
    percentage: float = 50.0,
    completed_at: datetime = datetime(2024, 3, 1),
    time_taken: int = 60,
    category: str | None = "aptitude",
    difficulty: str | None = "easy",
    with_analytics: bool = True,
) -> QuizResult:
    analytics = (
        ResultAnalytics(category=category, difficulty=difficulty, average_time_per_question=30.0)
        if with_analytics
        else None
    )
    return QuizResult(
        id=result_id,
        quiz_id="quiz-1",
        user_id=user_id,
        answers=(),
        total_questions=2,
        correct_answers=int(percentage / 50),
        score=int(percentage / 50),
        percentage=percentage,
        completed_at=completed_at,
        time_taken=time_taken,
        analytics=analytics,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryResultStore:
    return InMemoryResultStore()
