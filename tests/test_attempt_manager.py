from __future__ import annotations

import time

import pytest

from conftest import FailingWriteStore, FakeTimer, make_quiz
from mentor_quiz.core.attempt_manager import AttemptManager, UnknownAttemptError
from mentor_quiz.core.errors import InvalidQuizError, PersistenceError, QuizNotFoundError, SessionStateError
from mentor_quiz.core.models import Student
from mentor_quiz.core.services.countdown import CountdownTimer
from mentor_quiz.core.services.quiz_session import SessionState
from mentor_quiz.core.services.result_store import InMemoryResultStore


@pytest.fixture
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture
def manager(store, clock, timers) -> AttemptManager:
    store.add_quiz(make_quiz(question_count=2, quiz_id="short", time_limit_minutes=1))
    store.add_quiz(make_quiz(question_count=0, quiz_id="empty"))
    store.add_student(Student(id="student-1", name="Ada", mentor_id="mentor-1"))
    store.add_student(Student(id="student-2", name="Alan", mentor_id="mentor-1"))

    def factory(on_tick):
        timer = FakeTimer(on_tick)
        timers.append(timer)
        return timer

    return AttemptManager(store=store, directory=store, clock=clock, timer_factory=factory)


def test_attempt_runs_to_completion(manager, timers) -> None:
    snapshot = manager.start_attempt("student-1", "short")
    attempt_id = snapshot.attempt_id
    assert snapshot.state is SessionState.IN_PROGRESS
    assert snapshot.current_question.id == "q1"
    assert snapshot.remaining_seconds == 60

    manager.select_option(attempt_id, "b")
    manager.advance(attempt_id)
    manager.select_option(attempt_id, "b")
    snapshot = manager.advance(attempt_id)
    assert snapshot.state is SessionState.SUBMITTING
    assert timers[0].cancel_count == 1

    result = manager.submit(attempt_id)

    assert result.percentage == 100
    assert manager.get_attempt(attempt_id).result == result
    assert manager.user_analytics("student-1").total_quizzes == 1


def test_timer_expiry_submits_once(manager, timers, store) -> None:
    attempt_id = manager.start_attempt("student-1", "short").attempt_id
    manager.select_option(attempt_id, "b")
    manager.advance(attempt_id)

    for _ in range(60):
        timers[0].on_tick()
    # A late tick after expiry must not write again.
    timers[0].on_tick()

    snapshot = manager.get_attempt(attempt_id)
    assert snapshot.state is SessionState.COMPLETED
    assert snapshot.result.correct_answers == 1
    assert snapshot.result.percentage == 50
    assert len(store.fetch_results_by_user("student-1")) == 1
    with pytest.raises(SessionStateError):
        manager.submit(attempt_id)


def test_stray_tick_does_not_submit_for_the_user(manager, timers) -> None:
    attempt_id = manager.start_attempt("student-1", "short").attempt_id
    for _ in range(2):
        manager.select_option(attempt_id, "b")
        manager.advance(attempt_id)

    timers[0].on_tick()

    assert manager.get_attempt(attempt_id).state is SessionState.SUBMITTING


def test_manual_tick(manager) -> None:
    attempt_id = manager.start_attempt("student-1", "short").attempt_id

    assert manager.tick(attempt_id).remaining_seconds == 59


def test_automatic_submission_failure_is_recorded(clock, timers) -> None:
    failing = FailingWriteStore(quizzes=[make_quiz(question_count=1, quiz_id="q", time_limit_minutes=1)])

    def factory(on_tick):
        timer = FakeTimer(on_tick)
        timers.append(timer)
        return timer

    manager = AttemptManager(store=failing, directory=failing, clock=clock, timer_factory=factory)
    attempt_id = manager.start_attempt("student-1", "q").attempt_id
    for _ in range(60):
        timers[0].on_tick()

    snapshot = manager.get_attempt(attempt_id)
    assert snapshot.state is SessionState.ERROR
    assert isinstance(snapshot.error, PersistenceError)
    assert failing.write_attempts == 1


def test_unknown_quiz_and_attempt(manager) -> None:
    with pytest.raises(QuizNotFoundError):
        manager.start_attempt("student-1", "nope")
    with pytest.raises(UnknownAttemptError):
        manager.get_attempt("nope")


def test_empty_quiz_cannot_start(manager, timers) -> None:
    with pytest.raises(InvalidQuizError):
        manager.start_attempt("student-1", "empty")
    assert timers == []


def test_cancel_and_shutdown(manager, timers) -> None:
    first = manager.start_attempt("student-1", "short").attempt_id
    second = manager.start_attempt("student-2", "short").attempt_id

    assert manager.cancel_attempt(first).state is SessionState.ERROR
    manager.shutdown()

    assert manager.get_attempt(second).state is SessionState.ERROR
    assert [t.cancel_count for t in timers] == [1, 1]


def test_mentor_dashboard_through_manager(manager) -> None:
    attempt_id = manager.start_attempt("student-1", "short").attempt_id
    for option in ("b", "a"):
        manager.select_option(attempt_id, option)
        manager.advance(attempt_id)
    manager.submit(attempt_id)

    summary = manager.mentor_dashboard("mentor-1")

    assert summary.total_students == 2
    assert summary.average_student_score == 25
    assert summary.student_progress["student-2"].total_quizzes == 0


def test_real_countdown_drives_expiry(clock) -> None:
    store = InMemoryResultStore(quizzes=[make_quiz(question_count=1, quiz_id="q", time_limit_minutes=0)])

    def fast_countdown(on_tick):
        timer = CountdownTimer(on_tick, interval=0.01)
        timer.start()
        return timer

    manager = AttemptManager(store=store, directory=store, clock=clock, timer_factory=fast_countdown)
    attempt_id = manager.start_attempt("student-1", "q").attempt_id

    deadline = time.monotonic() + 5
    while manager.get_attempt(attempt_id).state is SessionState.IN_PROGRESS:
        assert time.monotonic() < deadline
        time.sleep(0.01)

    assert manager.get_attempt(attempt_id).state is SessionState.COMPLETED
    assert len(store.fetch_results_by_user("student-1")) == 1


def _bounded_manager(store, clock, finished_limit: int) -> AttemptManager:
    store.add_quiz(make_quiz(question_count=1, quiz_id="one", time_limit_minutes=1))
    return AttemptManager(
        store=store,
        directory=store,
        clock=clock,
        timer_factory=FakeTimer,
        finished_limit=finished_limit,
    )


def _finish(manager: AttemptManager) -> str:
    attempt_id = manager.start_attempt("student-1", "one").attempt_id
    manager.select_option(attempt_id, "b")
    manager.advance(attempt_id)
    manager.submit(attempt_id)
    return attempt_id


def test_oldest_finished_attempts_are_released(store, clock) -> None:
    manager = _bounded_manager(store, clock, finished_limit=2)
    running = manager.start_attempt("student-2", "one").attempt_id

    finished = [_finish(manager) for _ in range(50)]

    with pytest.raises(UnknownAttemptError):
        manager.get_attempt(finished[0])
    with pytest.raises(UnknownAttemptError):
        manager.submit(finished[-3])
    assert [manager.get_attempt(a).state for a in finished[-2:]] == [SessionState.COMPLETED] * 2
    assert manager.get_attempt(running).state is SessionState.IN_PROGRESS
    assert len(manager._sessions) == 3
    assert len(store.fetch_results_by_user("student-1")) == 50


def test_cancelled_and_expired_attempts_count_as_finished(store, clock) -> None:
    manager = _bounded_manager(store, clock, finished_limit=1)
    cancelled = manager.start_attempt("student-1", "one").attempt_id
    manager.cancel_attempt(cancelled)
    expired = manager.start_attempt("student-1", "one").attempt_id

    for _ in range(60):
        snapshot = manager.tick(expired)

    assert snapshot.state is SessionState.COMPLETED
    with pytest.raises(UnknownAttemptError):
        manager.get_attempt(cancelled)
    assert manager.get_attempt(expired).result is not None


def test_zero_retention_still_returns_the_result(store, clock) -> None:
    manager = _bounded_manager(store, clock, finished_limit=0)

    attempt_id = manager.start_attempt("student-1", "one").attempt_id
    manager.select_option(attempt_id, "b")
    manager.advance(attempt_id)

    assert manager.submit(attempt_id).percentage == 100
    with pytest.raises(UnknownAttemptError):
        manager.get_attempt(attempt_id)


def test_retention_limit_cannot_be_negative(store) -> None:
    with pytest.raises(ValueError):
        AttemptManager(store=store, directory=store, finished_limit=-1)
