"""Thread-safe facade over quiz sessions shared between timers and the API."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
import logging
from threading import Lock
from typing import Callable
from uuid import uuid4

from mentor_quiz.constants.network_constants import FETCH_WORKER_COUNT
from mentor_quiz.constants.quiz_constants import FINISHED_ATTEMPT_LIMIT
from mentor_quiz.core.errors import QuizError
from mentor_quiz.core.models import (
    MentorAnalyticsSummary,
    Question,
    QuizDefinition,
    QuizResult,
    UserAnalyticsSummary,
)
from mentor_quiz.core.services.analytics import aggregate_user
from mentor_quiz.core.services.countdown import CountdownTimer, TimerHandle
from mentor_quiz.core.services.mentor_dashboard import MentorDashboardCoordinator
from mentor_quiz.core.services.quiz_session import TERMINAL_STATES, QuizSession, SessionState
from mentor_quiz.core.services.result_store import QuizCatalogStore, StudentDirectory

logger = logging.getLogger(__name__)

TimerFactory = Callable[[Callable[[], None]], TimerHandle]


def start_countdown(on_tick: Callable[[], None]) -> TimerHandle:
    timer = CountdownTimer(on_tick)
    timer.start()
    return timer


class UnknownAttemptError(KeyError):
    """Raised when an attempt id is not known to the manager."""


@dataclass(slots=True, frozen=True)
class AttemptSnapshot:
    """Read-only view of an attempt handed to callers."""

    attempt_id: str
    user_id: str
    quiz_id: str
    state: SessionState
    current_question_index: int
    current_question: Question | None
    total_questions: int
    remaining_seconds: int
    pending_option_id: str | None
    answered_count: int
    progress: float
    is_low_on_time: bool
    result: QuizResult | None
    error: QuizError | None


class AttemptManager:
    """Facade for sessions, the result store and the analytics services.

    One lock guards every session, so ticks delivered from countdown threads
    and calls from request handlers never interleave on the same attempt.
    Finished attempts stay readable until more than ``finished_limit`` of
    them have accumulated; the oldest are then forgotten.
    """

    def __init__(
        self,
        store: QuizCatalogStore,
        directory: StudentDirectory,
        clock: Callable[[], datetime] = datetime.utcnow,
        timer_factory: TimerFactory = start_countdown,
        max_workers: int = FETCH_WORKER_COUNT,
        finished_limit: int = FINISHED_ATTEMPT_LIMIT,
    ) -> None:
        if finished_limit < 0:
            raise ValueError("finished_limit must not be negative.")
        self._lock = Lock()
        self._store = store
        self._clock = clock
        self._timer_factory = timer_factory
        self._sessions: dict[str, QuizSession] = {}
        self._finished: OrderedDict[str, None] = OrderedDict()
        self._finished_limit = finished_limit
        self._dashboard = MentorDashboardCoordinator(store, directory, max_workers=max_workers)

    # --- Quiz catalogue ---

    def list_quizzes(
        self,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[QuizDefinition]:
        return self._store.list_active_quizzes(category=category, difficulty=difficulty)

    # --- Attempts ---

    def start_attempt(self, user_id: str, quiz_id: str) -> AttemptSnapshot:
        quiz = self._store.fetch_quiz_definition(quiz_id)
        session = QuizSession(user_id=user_id, store=self._store, clock=self._clock)
        session.start(quiz)
        attempt_id = uuid4().hex
        with self._lock:
            self._sessions[attempt_id] = session
            session.attach_timer(self._timer_factory(lambda: self._on_tick(attempt_id)))
            return self._snapshot(attempt_id, session)

    def select_option(self, attempt_id: str, option_id: str) -> AttemptSnapshot:
        with self._lock:
            session = self._get_session(attempt_id)
            session.select_option(option_id)
            return self._snapshot(attempt_id, session)

    def advance(self, attempt_id: str) -> AttemptSnapshot:
        with self._lock:
            session = self._get_session(attempt_id)
            session.advance()
            return self._snapshot(attempt_id, session)

    def tick(self, attempt_id: str) -> AttemptSnapshot:
        """Deliver one countdown tick by hand; expiry submits the attempt."""
        with self._lock:
            session = self._get_session(attempt_id)
            self._expire_if_due(attempt_id, session)
            snapshot = self._snapshot(attempt_id, session)
            self._retire_if_finished(attempt_id, session)
            return snapshot

    def submit(self, attempt_id: str) -> QuizResult:
        with self._lock:
            session = self._get_session(attempt_id)
            try:
                return session.submit()
            finally:
                self._retire_if_finished(attempt_id, session)

    def cancel_attempt(self, attempt_id: str) -> AttemptSnapshot:
        with self._lock:
            session = self._get_session(attempt_id)
            session.cancel()
            snapshot = self._snapshot(attempt_id, session)
            self._retire_if_finished(attempt_id, session)
            return snapshot

    def get_attempt(self, attempt_id: str) -> AttemptSnapshot:
        with self._lock:
            return self._snapshot(attempt_id, self._get_session(attempt_id))

    def shutdown(self) -> None:
        """Cancel every attempt still running."""
        with self._lock:
            for attempt_id, session in list(self._sessions.items()):
                if attempt_id not in self._finished:
                    session.cancel()
                    self._retire_if_finished(attempt_id, session)

    # --- Analytics ---

    def user_analytics(self, user_id: str) -> UserAnalyticsSummary:
        return aggregate_user(self._store.fetch_results_by_user(user_id))

    def mentor_dashboard(self, mentor_id: str) -> MentorAnalyticsSummary:
        return self._dashboard.build_mentor_dashboard(mentor_id)

    # --- Internals ---

    def _on_tick(self, attempt_id: str) -> None:
        with self._lock:
            session = self._sessions.get(attempt_id)
            if session is None:
                return
            self._expire_if_due(attempt_id, session)
            self._retire_if_finished(attempt_id, session)

    def _expire_if_due(self, attempt_id: str, session: QuizSession) -> None:
        if session.get_state() is not SessionState.IN_PROGRESS:
            return
        if session.tick() is not SessionState.SUBMITTING:
            return
        try:
            session.submit()
        except QuizError as exc:
            # The session keeps the error; callers see it on the next read.
            logger.error("Automatic submission of attempt %s failed: %s", attempt_id, exc)

    def _retire_if_finished(self, attempt_id: str, session: QuizSession) -> None:
        if session.get_state() not in TERMINAL_STATES or attempt_id in self._finished:
            return
        self._finished[attempt_id] = None
        while len(self._finished) > self._finished_limit:
            released, _ = self._finished.popitem(last=False)
            del self._sessions[released]
            logger.debug("Released finished attempt %s", released)

    def _get_session(self, attempt_id: str) -> QuizSession:
        session = self._sessions.get(attempt_id)
        if session is None:
            raise UnknownAttemptError(attempt_id)
        return session

    @staticmethod
    def _snapshot(attempt_id: str, session: QuizSession) -> AttemptSnapshot:
        quiz = session.get_quiz()
        return AttemptSnapshot(
            attempt_id=attempt_id,
            user_id=session.get_user_id(),
            quiz_id=quiz.id if quiz else "",
            state=session.get_state(),
            current_question_index=session.get_current_question_index(),
            current_question=session.get_current_question(),
            total_questions=len(quiz.questions) if quiz else 0,
            remaining_seconds=session.get_remaining_seconds(),
            pending_option_id=session.get_pending_option_id(),
            answered_count=len(session.get_answers()),
            progress=session.get_progress(),
            is_low_on_time=session.is_low_on_time(),
            result=session.get_result(),
            error=session.get_error(),
        )
