"""Store boundary for quiz definitions, results and the student directory."""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Iterable, Protocol

from mentor_quiz.core.errors import PersistenceError, QuizNotFoundError
from mentor_quiz.core.models import QuizDefinition, QuizResult, Student


class ResultStore(Protocol):
    """Read/write contract the session engine and coordinator depend on."""

    def fetch_results_by_user(self, user_id: str) -> list[QuizResult]: ...

    def fetch_results_by_quiz(self, quiz_id: str) -> list[QuizResult]: ...

    def persist_result(self, result: QuizResult) -> None: ...

    def fetch_quiz_definition(self, quiz_id: str) -> QuizDefinition: ...


class QuizCatalogStore(ResultStore, Protocol):
    """A ``ResultStore`` that can also list the quizzes learners may start."""

    def list_active_quizzes(
        self,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[QuizDefinition]: ...


class StudentDirectory(Protocol):
    """Lookup of the students a mentor manages."""

    def fetch_students(self, mentor_id: str) -> list[Student]: ...


def _newest_first(results: Iterable[QuizResult]) -> list[QuizResult]:
    return sorted(results, key=lambda r: r.completed_at, reverse=True)


class InMemoryResultStore:
    """Process-local store implementing both ``ResultStore`` and ``StudentDirectory``."""

    def __init__(
        self,
        quizzes: Iterable[QuizDefinition] = (),
        students: Iterable[Student] = (),
    ) -> None:
        self._lock = Lock()
        self._quizzes: dict[str, QuizDefinition] = {}
        self._results: dict[str, QuizResult] = {}
        self._students: dict[str, Student] = {}
        for quiz in quizzes:
            self.add_quiz(quiz)
        for student in students:
            self.add_student(student)

    # --- Quizzes ---

    def add_quiz(self, quiz: QuizDefinition) -> None:
        with self._lock:
            self._quizzes[quiz.id] = quiz

    def fetch_quiz_definition(self, quiz_id: str) -> QuizDefinition:
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFoundError(f"Quiz '{quiz_id}' not found.")
        return quiz

    def list_active_quizzes(
        self,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[QuizDefinition]:
        """Return active quizzes, newest first, optionally filtered."""
        with self._lock:
            quizzes = [q for q in self._quizzes.values() if q.is_active]
        if category is not None:
            quizzes = [q for q in quizzes if q.category == category]
        if difficulty is not None:
            quizzes = [q for q in quizzes if q.difficulty == difficulty]
        return sorted(quizzes, key=lambda q: q.created_at or datetime.min, reverse=True)

    # --- Results ---

    def persist_result(self, result: QuizResult) -> None:
        with self._lock:
            if result.id in self._results:
                raise PersistenceError(f"Result '{result.id}' has already been stored.")
            self._results[result.id] = result

    def fetch_results_by_user(self, user_id: str) -> list[QuizResult]:
        with self._lock:
            results = [r for r in self._results.values() if r.user_id == user_id]
        return _newest_first(results)

    def fetch_results_by_quiz(self, quiz_id: str) -> list[QuizResult]:
        with self._lock:
            results = [r for r in self._results.values() if r.quiz_id == quiz_id]
        return _newest_first(results)

    def fetch_latest_result(self, user_id: str, quiz_id: str) -> QuizResult | None:
        matches = [r for r in self.fetch_results_by_user(user_id) if r.quiz_id == quiz_id]
        return matches[0] if matches else None

    # --- Students ---

    def add_student(self, student: Student) -> None:
        with self._lock:
            self._students[student.id] = student

    def fetch_students(self, mentor_id: str) -> list[Student]:
        with self._lock:
            return [s for s in self._students.values() if s.mentor_id == mentor_id]
