"""Error taxonomy for the progress and ranking engine.

Every engine failure is one of these kinds. The HTTP layer maps each kind to
a status code in ``examprep.middleware.error_handler``.
"""

from __future__ import annotations


class ProgressError(Exception):
    """Base class for engine errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ProgressError, ValueError):
    """Malformed numeric input: negative score, time, progress or counter."""

    status_code = 422


class NotFoundError(ProgressError, LookupError):
    """The record being operated on does not exist for this user."""

    status_code = 404


class AlreadyCompletedError(ProgressError):
    """Mission progress update after the mission was completed."""

    status_code = 409


class ExpiredError(ProgressError):
    """Mission progress update after ``expires_at``."""

    status_code = 410


class ConflictError(ProgressError):
    """Uniqueness violation in neighbouring CRUD layers. Not raised by the engine."""

    status_code = 409
