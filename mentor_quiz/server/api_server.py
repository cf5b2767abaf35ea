"""FastAPI server that exposes quiz attempts and learner/mentor analytics."""

from __future__ import annotations

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from mentor_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from mentor_quiz.core.attempt_manager import AttemptManager, AttemptSnapshot, UnknownAttemptError
from mentor_quiz.core.documents import (
    mentor_summary_to_document,
    question_to_public_document,
    quiz_to_public_document,
    result_to_document,
    user_summary_to_document,
)
from mentor_quiz.core.errors import (
    FetchError,
    GradingError,
    InvalidQuizError,
    PersistenceError,
    QuizNotFoundError,
    SessionStateError,
)


class StartAttemptPayload(BaseModel):
    """Payload schema for starting an attempt."""

    user_id: str
    quiz_id: str


class SelectOptionPayload(BaseModel):
    """Payload schema for choosing an option on the current question."""

    option_id: str


def _get_attempt_manager_dependency(attempt_manager: AttemptManager):
    def dependency() -> AttemptManager:
        return attempt_manager

    return dependency


def _attempt_to_response(snapshot: AttemptSnapshot) -> dict[str, object]:
    question = snapshot.current_question
    return {
        "attempt_id": snapshot.attempt_id,
        "user_id": snapshot.user_id,
        "quiz_id": snapshot.quiz_id,
        "state": snapshot.state.name.lower(),
        "question_index": snapshot.current_question_index,
        "total_questions": snapshot.total_questions,
        "question": question_to_public_document(question) if question else None,
        "selected_option_id": snapshot.pending_option_id,
        "answered_count": snapshot.answered_count,
        "remaining_seconds": snapshot.remaining_seconds,
        "low_on_time": snapshot.is_low_on_time,
        "progress": snapshot.progress,
        "result": result_to_document(snapshot.result) if snapshot.result else None,
        "error": str(snapshot.error) if snapshot.error else None,
        "error_type": type(snapshot.error).__name__ if snapshot.error else None,
    }


_ERROR_STATUS_CODES: tuple[tuple[type[Exception], int], ...] = (
    (UnknownAttemptError, 404),
    (QuizNotFoundError, 404),
    (SessionStateError, 409),
    (InvalidQuizError, 422),
    (GradingError, 422),
    (ValueError, 422),
    (PersistenceError, 502),
    (FetchError, 502),
)


def _error_detail(exc: Exception) -> str:
    if isinstance(exc, UnknownAttemptError):
        return f"Attempt '{exc.args[0]}' not found."
    return str(exc)


def _register_error_handlers(app: FastAPI) -> None:
    for exc_type, status_code in _ERROR_STATUS_CODES:

        def handler(request: Request, exc: Exception, status_code: int = status_code) -> JSONResponse:
            return JSONResponse(status_code=status_code, content={"detail": _error_detail(exc)})

        app.add_exception_handler(exc_type, handler)


def create_api_app(attempt_manager: AttemptManager) -> FastAPI:
    """Create a FastAPI application wired to the provided attempt manager."""
    app = FastAPI(title="MentorQuiz API", version="0.1.0")
    manager_dep = _get_attempt_manager_dependency(attempt_manager)

    _register_error_handlers(app)

    @app.get("/quizzes")
    def list_quizzes(
        category: str | None = None,
        difficulty: str | None = None,
        manager: AttemptManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        quizzes = manager.list_quizzes(category=category, difficulty=difficulty)
        return [quiz_to_public_document(quiz) for quiz in quizzes]

    @app.post("/attempts", status_code=201)
    def start_attempt(
        payload: StartAttemptPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        snapshot = manager.start_attempt(payload.user_id, payload.quiz_id)
        return _attempt_to_response(snapshot)

    @app.get("/attempts/{attempt_id}")
    def get_attempt(attempt_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        snapshot = manager.get_attempt(attempt_id)
        return _attempt_to_response(snapshot)

    @app.post("/attempts/{attempt_id}/select")
    def select_option(
        attempt_id: str,
        payload: SelectOptionPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        snapshot = manager.select_option(attempt_id, payload.option_id)
        return _attempt_to_response(snapshot)

    @app.post("/attempts/{attempt_id}/advance")
    def advance(attempt_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        snapshot = manager.advance(attempt_id)
        return _attempt_to_response(snapshot)

    @app.post("/attempts/{attempt_id}/submit", status_code=201)
    def submit(attempt_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        result = manager.submit(attempt_id)
        return result_to_document(result)

    @app.delete("/attempts/{attempt_id}")
    def cancel_attempt(attempt_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        snapshot = manager.cancel_attempt(attempt_id)
        return _attempt_to_response(snapshot)

    @app.get("/users/{user_id}/analytics")
    def user_analytics(user_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        summary = manager.user_analytics(user_id)
        return user_summary_to_document(summary)

    @app.get("/mentors/{mentor_id}/dashboard")
    def mentor_dashboard(mentor_id: str, manager: AttemptManager = Depends(manager_dep)) -> dict[str, object]:
        summary = manager.mentor_dashboard(mentor_id)
        return mentor_summary_to_document(summary)

    return app


def run_api_server(
    attempt_manager: AttemptManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(attempt_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    try:
        uvicorn.Server(config).run()
    finally:
        attempt_manager.shutdown()
