"""Concurrent fetch of every managed student's results for the mentor view."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging

from mentor_quiz.constants.network_constants import FETCH_WORKER_COUNT
from mentor_quiz.core.errors import FetchError
from mentor_quiz.core.models import MentorAnalyticsSummary, Student, UserAnalyticsSummary
from mentor_quiz.core.services.analytics import (
    StudentResults,
    StudentSummary,
    aggregate_mentor,
)
from mentor_quiz.core.services.result_store import ResultStore, StudentDirectory

logger = logging.getLogger(__name__)


def _unique_students(mentor_id: str, students: list[Student]) -> list[Student]:
    """Keep the first directory entry for each student id."""
    unique: dict[str, Student] = {}
    for student in students:
        if student.id in unique:
            logger.warning("Mentor %s lists student %s more than once", mentor_id, student.id)
            continue
        unique[student.id] = student
    return list(unique.values())


class MentorDashboardCoordinator:
    """Builds a ``MentorAnalyticsSummary`` from per-student fetches.

    Fetches run on a bounded thread pool. A student whose results cannot be
    read is reported as a zero-activity row instead of failing the dashboard.
    """

    def __init__(
        self,
        store: ResultStore,
        directory: StudentDirectory,
        max_workers: int = FETCH_WORKER_COUNT,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self._store = store
        self._directory = directory
        self._max_workers = max_workers

    def build_mentor_dashboard(self, mentor_id: str) -> MentorAnalyticsSummary:
        try:
            students = self._directory.fetch_students(mentor_id)
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(f"Could not resolve students for mentor '{mentor_id}': {exc}") from exc

        students = _unique_students(mentor_id, students)
        if not students:
            return MentorAnalyticsSummary()

        entries: list[StudentResults | StudentSummary] = []
        workers = min(self._max_workers, len(students))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="MentorFetch") as executor:
            futures = {
                executor.submit(self._store.fetch_results_by_user, student.id): student
                for student in students
            }
            for future in as_completed(futures):
                entries.append(self._collect(futures[future], future))

        logger.info(
            "Built dashboard for mentor %s over %d students (%d unavailable)",
            mentor_id,
            len(students),
            sum(1 for e in entries if isinstance(e, StudentSummary)),
        )
        return aggregate_mentor(entries)

    @staticmethod
    def _collect(student: Student, future) -> StudentResults | StudentSummary:
        try:
            results = future.result()
        except Exception as exc:
            logger.warning("Could not fetch results for student %s: %s", student.id, exc)
            return StudentSummary(
                student=student,
                summary=UserAnalyticsSummary(),
                fetch_failed=True,
            )
        return StudentResults(student=student, results=tuple(results))
