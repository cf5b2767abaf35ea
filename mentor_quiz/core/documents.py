"""Conversion between domain models and the camelCase documents kept in the store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from mentor_quiz.constants.quiz_constants import DEFAULT_POINTS, DEFAULT_TIME_LIMIT_MINUTES
from mentor_quiz.core.models import (
    Answer,
    MentorAnalyticsSummary,
    Option,
    Question,
    QuizDefinition,
    QuizResult,
    ResultAnalytics,
    StudentProgress,
    UserAnalyticsSummary,
)
from mentor_quiz.core.services.scoring import performance_band

Document = dict[str, Any]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO timestamp into a naive UTC datetime, like ``datetime.utcnow()``."""
    if not value:
        return None
    # fromisoformat() before 3.11 does not accept a trailing "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# --- Quiz definitions ---


def option_from_document(doc: Document) -> Option:
    return Option(id=str(doc["id"]), text=doc.get("text", ""), is_correct=bool(doc.get("isCorrect", False)))


def question_from_document(doc: Document) -> Question:
    points = int(doc.get("points", DEFAULT_POINTS))
    if points < 1:
        raise ValueError(f"Question '{doc.get('id')}' must be worth at least one point.")
    return Question(
        id=str(doc["id"]),
        text=doc.get("questionText", ""),
        options=tuple(option_from_document(o) for o in doc.get("options", [])),
        correct_answer_id=str(doc["correctAnswerId"]),
        explanation=doc.get("explanation", ""),
        points=points,
        category=doc.get("category", "general"),
        difficulty=doc.get("difficulty", "medium"),
        image_url=doc.get("imageUrl"),
    )


def quiz_from_document(doc: Document) -> QuizDefinition:
    return QuizDefinition(
        id=str(doc.get("id") or doc["_id"]),
        title=doc.get("title", ""),
        description=doc.get("description", ""),
        category=doc.get("category", ""),
        difficulty=doc.get("difficulty", "medium"),
        time_limit_minutes=int(doc.get("timeLimit", DEFAULT_TIME_LIMIT_MINUTES)),
        questions=tuple(question_from_document(q) for q in doc.get("questions", [])),
        is_active=bool(doc.get("isActive", True)),
        metadata=doc.get("metadata"),
        created_at=_parse_datetime(doc.get("createdAt")),
    )


def quiz_to_public_document(quiz: QuizDefinition) -> Document:
    """Quiz as shown to a learner: no correct answers, no explanations."""
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "category": quiz.category,
        "difficulty": quiz.difficulty,
        "timeLimit": quiz.time_limit_minutes,
        "questionCount": len(quiz.questions),
    }


def question_to_public_document(question: Question) -> Document:
    return {
        "id": question.id,
        "questionText": question.text,
        "options": [{"id": o.id, "text": o.text} for o in question.options],
        "points": question.points,
        "imageUrl": question.image_url,
    }


# --- Results ---


def answer_to_document(answer: Answer) -> Document:
    return {
        "questionId": answer.question_id,
        "selectedOptionId": answer.selected_option_id,
        "isCorrect": answer.is_correct,
        "points": answer.points,
        "answeredAt": _iso(answer.answered_at),
    }


def answer_from_document(doc: Document) -> Answer:
    return Answer(
        question_id=str(doc["questionId"]),
        selected_option_id=str(doc["selectedOptionId"]),
        is_correct=bool(doc.get("isCorrect", False)),
        points=int(doc.get("points", 0)),
        answered_at=_parse_datetime(doc.get("answeredAt")),
    )


def result_to_document(result: QuizResult) -> Document:
    analytics = None
    if result.analytics is not None:
        analytics = {
            "category": result.analytics.category,
            "difficulty": result.analytics.difficulty,
            "averageTimePerQuestion": result.analytics.average_time_per_question,
        }
    return {
        "id": result.id,
        "quizId": result.quiz_id,
        "userId": result.user_id,
        "answers": [answer_to_document(a) for a in result.answers],
        "totalQuestions": result.total_questions,
        "correctAnswers": result.correct_answers,
        "score": result.score,
        "percentage": result.percentage,
        "grade": performance_band(result.percentage),
        "completedAt": _iso(result.completed_at),
        "timeTaken": result.time_taken,
        "analytics": analytics,
    }


def result_from_document(doc: Document) -> QuizResult:
    raw_analytics = doc.get("analytics")
    analytics = None
    if raw_analytics is not None:
        analytics = ResultAnalytics(
            category=raw_analytics.get("category"),
            difficulty=raw_analytics.get("difficulty"),
            average_time_per_question=raw_analytics.get("averageTimePerQuestion"),
        )
    return QuizResult(
        id=str(doc.get("id") or doc["_id"]),
        quiz_id=str(doc["quizId"]),
        user_id=str(doc["userId"]),
        answers=tuple(answer_from_document(a) for a in doc.get("answers", [])),
        total_questions=int(doc.get("totalQuestions", 0)),
        correct_answers=int(doc.get("correctAnswers", 0)),
        score=int(doc.get("score", 0)),
        percentage=float(doc.get("percentage", 0)),
        completed_at=_parse_datetime(doc["completedAt"]),
        time_taken=int(doc.get("timeTaken", 0)),
        analytics=analytics,
    )


# --- Analytics ---


def user_summary_to_document(summary: UserAnalyticsSummary) -> Document:
    return {
        "totalQuizzes": summary.total_quizzes,
        "averageScore": summary.average_score,
        "grade": performance_band(summary.average_score),
        "totalTimeSpent": summary.total_time_spent,
        "categories": dict(summary.category_averages),
        "difficulties": dict(summary.difficulty_averages),
        "recentResults": [result_to_document(r) for r in summary.recent_results],
    }


def student_progress_to_document(progress: StudentProgress) -> Document:
    return {
        "name": progress.name,
        "totalQuizzes": progress.total_quizzes,
        "averageScore": progress.average_score,
        "lastQuizDate": _iso(progress.last_quiz_at),
        "recentResults": [result_to_document(r) for r in progress.recent_results],
        "unavailable": progress.fetch_failed,
    }


def mentor_summary_to_document(summary: MentorAnalyticsSummary) -> Document:
    return {
        "totalStudents": summary.total_students,
        "averageStudentScore": summary.average_student_score,
        "totalQuizzesCompleted": summary.total_quizzes_completed,
        "studentProgress": {
            student_id: student_progress_to_document(progress)
            for student_id, progress in summary.student_progress.items()
        },
    }
