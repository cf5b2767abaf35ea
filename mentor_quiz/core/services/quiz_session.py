"""State machine for one user's timed attempt at one quiz."""

from __future__ import annotations

from datetime import datetime
from enum import Enum, auto
import logging
from typing import Callable

from mentor_quiz.constants.quiz_constants import LOW_TIME_WARNING_SECONDS
from mentor_quiz.core.errors import (
    GradingError,
    InvalidQuizError,
    PersistenceError,
    QuizError,
    SessionCancelledError,
    SessionStateError,
)
from mentor_quiz.core.models import Answer, Question, QuizDefinition, QuizResult
from mentor_quiz.core.services.countdown import TimerHandle
from mentor_quiz.core.services.result_store import ResultStore
from mentor_quiz.core.services.scoring import grade_answer, score_attempt

logger = logging.getLogger(__name__)


class SessionState(Enum):
    LOADING = auto()
    IN_PROGRESS = auto()
    SUBMITTING = auto()
    COMPLETED = auto()
    ERROR = auto()


TERMINAL_STATES = frozenset({SessionState.COMPLETED, SessionState.ERROR})


class QuizSession:
    """Drives a single attempt from ``start`` to ``COMPLETED`` or ``ERROR``.

    Every transition except ``submit`` is in-memory only. The session is not
    thread-safe; callers that tick from a timer thread must serialise access
    (see ``AttemptManager``).
    """

    def __init__(
        self,
        user_id: str,
        store: ResultStore,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._user_id = user_id
        self._store = store
        self._clock = clock
        self._state = SessionState.LOADING
        self._quiz: QuizDefinition | None = None
        self._question_index: int = 0
        self._remaining_seconds: int = 0
        self._pending_option_id: str | None = None
        self._answers: list[Answer] = []
        self._started_at: datetime | None = None
        self._result: QuizResult | None = None
        self._error: QuizError | None = None
        self._timer: TimerHandle | None = None

    # --- Transitions ---

    def start(self, quiz: QuizDefinition) -> None:
        self._require_state(SessionState.LOADING, "start")
        self._quiz = quiz
        if not quiz.questions:
            raise self._record_failure(InvalidQuizError(f"Quiz '{quiz.id}' has no questions."))
        self._question_index = 0
        self._remaining_seconds = quiz.time_limit_minutes * 60
        self._pending_option_id = None
        self._answers = []
        self._started_at = self._clock()
        self._state = SessionState.IN_PROGRESS
        logger.info("User %s started quiz %s", self._user_id, quiz.id)

    def select_option(self, option_id: str) -> None:
        self._require_state(SessionState.IN_PROGRESS, "select an option")
        question = self._current_question()
        if not question.has_option(option_id):
            raise ValueError(f"Option '{option_id}' is not part of question '{question.id}'.")
        self._pending_option_id = option_id

    def advance(self) -> SessionState:
        self._require_state(SessionState.IN_PROGRESS, "advance")
        if self._pending_option_id is None:
            raise SessionStateError("Select an option before moving to the next question.")

        question = self._current_question()
        is_correct, points = grade_answer(
            question.points, question.correct_answer_id, self._pending_option_id
        )
        self._answers.append(
            Answer(
                question_id=question.id,
                selected_option_id=self._pending_option_id,
                is_correct=is_correct,
                points=points,
                answered_at=self._clock(),
            )
        )
        self._pending_option_id = None

        if self._question_index + 1 >= len(self._quiz.questions):
            self._leave_in_progress()
        else:
            self._question_index += 1
        return self._state

    def tick(self) -> SessionState:
        """Count down one second. Ticks outside ``IN_PROGRESS`` are ignored."""
        if self._state is not SessionState.IN_PROGRESS:
            return self._state
        self._remaining_seconds = max(0, self._remaining_seconds - 1)
        if self._remaining_seconds == 0:
            logger.info(
                "Time expired for user %s on quiz %s after %d answers",
                self._user_id,
                self._quiz.id,
                len(self._answers),
            )
            self._leave_in_progress()
        return self._state

    def submit(self) -> QuizResult:
        self._require_state(SessionState.SUBMITTING, "submit")
        time_taken = int((self._clock() - self._started_at).total_seconds())
        try:
            result = score_attempt(
                self._quiz,
                self._answers,
                time_taken,
                user_id=self._user_id,
                completed_at=self._clock(),
            )
        except (GradingError, InvalidQuizError) as exc:
            raise self._record_failure(exc)

        try:
            self._store.persist_result(result)
        except PersistenceError as exc:
            raise self._record_failure(exc)
        except Exception as exc:
            raise self._record_failure(
                PersistenceError(f"Could not store result {result.id}: {exc}")
            ) from exc

        self._result = result
        self._state = SessionState.COMPLETED
        logger.info(
            "User %s completed quiz %s: %d/%d correct",
            self._user_id,
            self._quiz.id,
            result.correct_answers,
            result.total_questions,
        )
        return result

    def cancel(self) -> None:
        """Tear the session down; a finished session is left untouched."""
        if self._state in TERMINAL_STATES:
            return
        self._cancel_timer()
        self._pending_option_id = None
        self._error = SessionCancelledError("Attempt was cancelled before completion.")
        self._state = SessionState.ERROR

    def attach_timer(self, timer: TimerHandle) -> None:
        """Hand over the countdown handle; it is cancelled when the attempt leaves ``IN_PROGRESS``."""
        if self._state is not SessionState.IN_PROGRESS:
            timer.cancel()
            raise SessionStateError("Timers can only be attached to an attempt in progress.")
        self._timer = timer

    # --- Observers ---

    def get_state(self) -> SessionState:
        return self._state

    def get_user_id(self) -> str:
        return self._user_id

    def get_quiz(self) -> QuizDefinition | None:
        return self._quiz

    def get_current_question_index(self) -> int:
        return self._question_index

    def get_current_question(self) -> Question | None:
        if self._state is not SessionState.IN_PROGRESS:
            return None
        return self._current_question()

    def get_remaining_seconds(self) -> int:
        return self._remaining_seconds

    def get_pending_option_id(self) -> str | None:
        return self._pending_option_id

    def get_answers(self) -> tuple[Answer, ...]:
        return tuple(self._answers)

    def get_result(self) -> QuizResult | None:
        return self._result if self._state is SessionState.COMPLETED else None

    def get_error(self) -> QuizError | None:
        return self._error

    def get_progress(self) -> float:
        """Fraction of the quiz reached, counting the question on screen."""
        if self._quiz is None or not self._quiz.questions:
            return 0.0
        if self._state is SessionState.IN_PROGRESS:
            return (self._question_index + 1) / len(self._quiz.questions)
        return len(self._answers) / len(self._quiz.questions)

    def is_low_on_time(self) -> bool:
        return (
            self._state is SessionState.IN_PROGRESS
            and self._remaining_seconds < LOW_TIME_WARNING_SECONDS
        )

    # --- Internals ---

    def _current_question(self) -> Question:
        return self._quiz.questions[self._question_index]

    def _leave_in_progress(self) -> None:
        self._pending_option_id = None
        self._state = SessionState.SUBMITTING
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _require_state(self, expected: SessionState, action: str) -> None:
        if self._state is not expected:
            raise SessionStateError(
                f"Cannot {action} while the attempt is {self._state.name.lower()}."
            )

    def _record_failure(self, error: QuizError) -> QuizError:
        self._cancel_timer()
        self._error = error
        self._state = SessionState.ERROR
        logger.error(
            "Attempt by user %s on quiz %s failed: %s",
            self._user_id,
            self._quiz.id if self._quiz else "?",
            error,
        )
        return error
