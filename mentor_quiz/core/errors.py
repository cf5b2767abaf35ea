"""Exceptions raised by the quiz attempt and analytics services."""

from __future__ import annotations


class QuizError(Exception):
    """Base class for quiz core failures."""


class InvalidQuizError(QuizError):
    """Raised when a quiz definition cannot be attempted (no questions)."""


class GradingError(QuizError):
    """Raised when submitted answers do not match the quiz definition."""


class PersistenceError(QuizError):
    """Raised when a result could not be written to the store."""


class FetchError(QuizError):
    """Raised when records could not be read from the store."""


class QuizNotFoundError(FetchError):
    """Raised when a quiz id is unknown to the store."""


class SessionStateError(QuizError):
    """Raised when an operation is not valid in the session's current state."""


class SessionCancelledError(QuizError):
    """Recorded on a session that was torn down before completion."""
