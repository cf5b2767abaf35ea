"""Deterministic grading of a finished attempt."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import uuid4

from mentor_quiz.constants.quiz_constants import (
    FALLBACK_PERFORMANCE_BAND,
    PERFORMANCE_BANDS,
)
from mentor_quiz.core.errors import GradingError, InvalidQuizError
from mentor_quiz.core.models import Answer, QuizDefinition, QuizResult, ResultAnalytics


def grade_answer(question_points: int, correct_answer_id: str, selected_option_id: str) -> tuple[bool, int]:
    """Return (is_correct, awarded points) for a single selection."""
    is_correct = selected_option_id == correct_answer_id
    return is_correct, question_points if is_correct else 0


def score_attempt(
    quiz: QuizDefinition,
    answers: Sequence[Answer],
    time_taken_seconds: int,
    *,
    user_id: str,
    result_id: str | None = None,
    completed_at: datetime | None = None,
) -> QuizResult:
    """Grade ``answers`` against ``quiz`` and build the result record.

    Correctness and points are recomputed from each question's
    ``correct_answer_id``; the flags carried by the incoming answers are
    ignored. The percentage is taken over every question of the quiz, so
    questions left unanswered count as incorrect.

    Raises:
        InvalidQuizError: the quiz has no questions.
        GradingError: an answer names a question that is not part of the quiz,
            answers the same question twice, or there are more answers than
            questions.
    """
    total_questions = len(quiz.questions)
    if total_questions == 0:
        raise InvalidQuizError(f"Quiz '{quiz.id}' has no questions to grade.")
    if len(answers) > total_questions:
        raise GradingError(
            f"Received {len(answers)} answers for quiz '{quiz.id}' "
            f"which only has {total_questions} questions."
        )

    graded: list[Answer] = []
    seen: set[str] = set()
    correct_answers = 0
    score = 0
    for answer in answers:
        question = quiz.find_question(answer.question_id)
        if question is None:
            raise GradingError(
                f"Answer references question '{answer.question_id}' "
                f"which is not part of quiz '{quiz.id}'."
            )
        if answer.question_id in seen:
            raise GradingError(f"Question '{answer.question_id}' was answered more than once.")
        seen.add(answer.question_id)

        is_correct, points = grade_answer(
            question.points, question.correct_answer_id, answer.selected_option_id
        )
        if is_correct:
            correct_answers += 1
            score += points
        graded.append(
            Answer(
                question_id=answer.question_id,
                selected_option_id=answer.selected_option_id,
                is_correct=is_correct,
                points=points,
                answered_at=answer.answered_at,
            )
        )

    return QuizResult(
        id=result_id or uuid4().hex,
        quiz_id=quiz.id,
        user_id=user_id,
        answers=tuple(graded),
        total_questions=total_questions,
        correct_answers=correct_answers,
        score=score,
        percentage=100 * correct_answers / total_questions,
        completed_at=completed_at or datetime.utcnow(),
        time_taken=time_taken_seconds,
        analytics=ResultAnalytics(
            category=quiz.category,
            difficulty=quiz.difficulty,
            average_time_per_question=time_taken_seconds / total_questions,
        ),
    )


def performance_band(percentage: float) -> str:
    """Map a percentage to the label shown next to results."""
    for lower_bound, label in PERFORMANCE_BANDS:
        if percentage >= lower_bound:
            return label
    return FALLBACK_PERFORMANCE_BAND
