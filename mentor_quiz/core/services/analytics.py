"""Pure rollups over stored quiz results.

``aggregate_user`` folds one user's results into a ``UserAnalyticsSummary``.
``aggregate_mentor`` folds many students' rollups into a
``MentorAnalyticsSummary``. Neither performs I/O; callers fetch the results
first (see ``MentorDashboardCoordinator``).

The mentor average is a mean of per-student means: a student with one attempt
weighs as much as a student with a hundred, and a student with no attempts
counts as 0 rather than being left out.
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import fmean
from typing import Iterable, Sequence

from mentor_quiz.constants.quiz_constants import (
    MENTOR_RECENT_RESULTS_LIMIT,
    RECENT_RESULTS_LIMIT,
)
from mentor_quiz.core.models import (
    MentorAnalyticsSummary,
    QuizResult,
    Student,
    StudentProgress,
    UserAnalyticsSummary,
)


@dataclass(slots=True, frozen=True)
class StudentResults:
    """A student paired with their fetched result history."""

    student: Student
    results: tuple[QuizResult, ...]


@dataclass(slots=True, frozen=True)
class StudentSummary:
    """A student paired with an already computed rollup."""

    student: Student
    summary: UserAnalyticsSummary
    fetch_failed: bool = False


def _most_recent(results: Iterable[QuizResult], limit: int) -> tuple[QuizResult, ...]:
    # Ties keep input order so repeated runs give identical output.
    ordered = sorted(results, key=lambda r: r.completed_at, reverse=True)
    return tuple(ordered[:limit])


def _group_averages(pairs: Iterable[tuple[str | None, float]]) -> dict[str, float]:
    groups: dict[str, list[float]] = {}
    for key, percentage in pairs:
        if key is None:
            continue
        groups.setdefault(key, []).append(percentage)
    return {key: fmean(values) for key, values in sorted(groups.items())}


def aggregate_user(results: Sequence[QuizResult]) -> UserAnalyticsSummary:
    """Roll up one user's results. An empty history yields an all-zero summary."""
    if not results:
        return UserAnalyticsSummary()

    category_averages = _group_averages(
        (r.analytics.category if r.analytics else None, r.percentage) for r in results
    )
    difficulty_averages = _group_averages(
        (r.analytics.difficulty if r.analytics else None, r.percentage) for r in results
    )
    return UserAnalyticsSummary(
        total_quizzes=len(results),
        average_score=fmean(r.percentage for r in results),
        total_time_spent=sum(r.time_taken for r in results),
        category_averages=category_averages,
        difficulty_averages=difficulty_averages,
        recent_results=_most_recent(results, RECENT_RESULTS_LIMIT),
    )


def student_progress_from_failure(student: Student) -> StudentProgress:
    """Zero-activity row used when a student's results could not be fetched."""
    return StudentProgress(
        student_id=student.id,
        name=student.name,
        total_quizzes=0,
        average_score=0.0,
        last_quiz_at=None,
        recent_results=(),
        fetch_failed=True,
    )


def _progress_for(entry: StudentResults | StudentSummary) -> StudentProgress:
    if isinstance(entry, StudentSummary):
        if entry.fetch_failed:
            return student_progress_from_failure(entry.student)
        summary = entry.summary
    else:
        summary = aggregate_user(entry.results)

    recent = summary.recent_results[:MENTOR_RECENT_RESULTS_LIMIT]
    return StudentProgress(
        student_id=entry.student.id,
        name=entry.student.name,
        total_quizzes=summary.total_quizzes,
        average_score=summary.average_score,
        last_quiz_at=recent[0].completed_at if recent else None,
        recent_results=recent,
    )


def aggregate_mentor(
    per_student: Iterable[StudentResults | StudentSummary],
) -> MentorAnalyticsSummary:
    """Roll up every managed student. The result does not depend on input order.

    Raises ``ValueError`` when the same student id appears more than once.
    """
    progress = [_progress_for(entry) for entry in per_student]
    if not progress:
        return MentorAnalyticsSummary()

    ordered = sorted(progress, key=lambda p: p.student_id)
    duplicates = sorted(
        {a.student_id for a, b in zip(ordered, ordered[1:]) if a.student_id == b.student_id}
    )
    if duplicates:
        raise ValueError(f"Students listed more than once: {', '.join(duplicates)}.")
    return MentorAnalyticsSummary(
        total_students=len(ordered),
        average_student_score=fmean(p.average_score for p in ordered),
        total_quizzes_completed=sum(p.total_quizzes for p in ordered),
        student_progress={p.student_id: p for p in ordered},
    )
