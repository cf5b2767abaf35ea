from __future__ import annotations

from datetime import datetime

from conftest import make_quiz
from mentor_quiz.core.documents import (
    mentor_summary_to_document,
    question_to_public_document,
    quiz_from_document,
    result_from_document,
    result_to_document,
    user_summary_to_document,
)
from mentor_quiz.core.models import Answer, Student
from mentor_quiz.core.services.analytics import StudentResults, aggregate_mentor, aggregate_user
from mentor_quiz.core.services.scoring import score_attempt


def _result():
    quiz = make_quiz(question_count=2)
    answers = [
        Answer("q1", "b", False, 0, datetime(2024, 3, 1, 12, 0, 5)),
        Answer("q2", "a", False, 0, datetime(2024, 3, 1, 12, 0, 9)),
    ]
    return score_attempt(
        quiz, answers, 10, user_id="s1", result_id="r1", completed_at=datetime(2024, 3, 1, 12, 0, 10)
    )


def test_result_document_uses_store_keys() -> None:
    doc = result_to_document(_result())

    assert doc["quizId"] == "quiz-1"
    assert doc["userId"] == "s1"
    assert doc["correctAnswers"] == 1
    assert doc["percentage"] == 50
    assert doc["grade"] == "Needs Improvement"
    assert doc["completedAt"] == "2024-03-01T12:00:10"
    assert doc["answers"][0] == {
        "questionId": "q1",
        "selectedOptionId": "b",
        "isCorrect": True,
        "points": 1,
        "answeredAt": "2024-03-01T12:00:05",
    }
    assert doc["analytics"]["averageTimePerQuestion"] == 5


def test_stored_result_reads_back() -> None:
    result = _result()

    assert result_from_document(result_to_document(result)) == result


def test_public_question_hides_the_answer() -> None:
    doc = question_to_public_document(make_quiz(question_count=1).questions[0])

    assert "correctAnswerId" not in doc
    assert all(set(option) == {"id", "text"} for option in doc["options"])


def test_summary_documents() -> None:
    result = _result()
    user_doc = user_summary_to_document(aggregate_user([result]))
    mentor_doc = mentor_summary_to_document(
        aggregate_mentor([StudentResults(student=Student(id="s1", name="Ada"), results=(result,))])
    )

    assert user_doc["totalQuizzes"] == 1
    assert user_doc["categories"] == {"aptitude": 50}
    assert user_doc["recentResults"][0]["id"] == "r1"
    assert mentor_doc["totalStudents"] == 1
    assert mentor_doc["studentProgress"]["s1"]["lastQuizDate"] == "2024-03-01T12:00:10"
    assert mentor_doc["studentProgress"]["s1"]["unavailable"] is False


def test_timestamps_with_offsets_become_naive_utc() -> None:
    doc = result_to_document(_result())
    doc["completedAt"] = "2024-03-01T14:00:10+02:00"
    doc["answers"][0]["answeredAt"] = "2024-03-01T12:00:05Z"

    result = result_from_document(doc)

    assert result.completed_at == datetime(2024, 3, 1, 12, 0, 10)
    assert result.answers[0].answered_at == datetime(2024, 3, 1, 12, 0, 5)
    assert result.score == 1 and isinstance(result.score, int)


def test_quiz_without_creation_time_reads_as_none() -> None:
    quiz = quiz_from_document(
        {
            "id": "x",
            "title": "X",
            "questions": [{"id": "q1", "questionText": "?", "options": [], "correctAnswerId": "a"}],
        }
    )

    assert quiz.created_at is None
