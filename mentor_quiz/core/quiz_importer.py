"""Load quiz definitions and student records from a JSON seed file.

File format::

    {
      "quizzes": [
        {
          "id": "aptitude-basic",
          "title": "Basic Aptitude Test",
          "category": "aptitude",
          "difficulty": "easy",
          "timeLimit": 30,
          "questions": [
            {
              "id": "q1",
              "questionText": "What is 25% of 200?",
              "options": [{"id": "a", "text": "40"}, {"id": "b", "text": "50"}],
              "correctAnswerId": "b",
              "points": 1
            }
          ]
        }
      ],
      "users": [
        {"id": "s1", "name": "Ada", "role": "student", "mentorId": "m1"}
      ]
    }

Documents use the same camelCase keys as the document store. Only users whose
``role`` is ``student`` are imported.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path

from mentor_quiz.core.documents import quiz_from_document
from mentor_quiz.core.models import QuizDefinition, Student


class QuizImportError(Exception):
    """Raised when a seed file cannot be parsed."""


@dataclass(slots=True)
class ImportedCatalog:
    """Container for the quizzes and students read from one file."""

    source_path: Path
    quizzes: list[QuizDefinition]
    students: list[Student]


def load_catalog_from_file(file_path: Path) -> ImportedCatalog:
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise QuizImportError(f"{file_path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise QuizImportError("Seed file must contain a JSON object.")

    quizzes = [_parse_quiz(doc) for doc in payload.get("quizzes", [])]
    if not quizzes:
        raise QuizImportError("Seed file did not contain any quizzes.")
    students = [
        _parse_student(doc)
        for doc in payload.get("users", [])
        if doc.get("role", "student") == "student"
    ]
    return ImportedCatalog(source_path=file_path, quizzes=quizzes, students=students)


def _parse_quiz(doc: dict) -> QuizDefinition:
    try:
        quiz = quiz_from_document(doc)
    except (KeyError, TypeError, ValueError) as exc:
        raise QuizImportError(f"Invalid quiz document '{doc.get('id', '?')}': {exc}") from exc

    if not quiz.title.strip():
        raise QuizImportError(f"Quiz '{quiz.id}' must have a title.")
    if not quiz.questions:
        raise QuizImportError(f"Quiz '{quiz.id}' must contain at least one question.")
    if quiz.time_limit_minutes <= 0:
        raise QuizImportError(f"Quiz '{quiz.id}' must have a positive time limit.")

    seen_questions: set[str] = set()
    for question in quiz.questions:
        if question.id in seen_questions:
            raise QuizImportError(f"Quiz '{quiz.id}' repeats question id '{question.id}'.")
        seen_questions.add(question.id)
        if not question.text.strip():
            raise QuizImportError(f"Question '{question.id}' text cannot be empty.")
        option_ids = [option.id for option in question.options]
        if len(option_ids) < 2:
            raise QuizImportError(f"Question '{question.id}' needs at least two options.")
        if len(set(option_ids)) != len(option_ids):
            raise QuizImportError(f"Question '{question.id}' repeats an option id.")
        if question.correct_answer_id not in option_ids:
            raise QuizImportError(
                f"Question '{question.id}' names '{question.correct_answer_id}' as correct "
                "but has no such option."
            )
    return quiz


def _parse_student(doc: dict) -> Student:
    try:
        return Student(id=str(doc["id"]), name=str(doc["name"]), mentor_id=doc.get("mentorId"))
    except KeyError as exc:
        raise QuizImportError(f"User document is missing {exc}.") from exc
