"""Domain exceptions and their HTTP mapping.

Services raise these; ``main.py`` registers a handler that renders them as
the standard :class:`~studybuddy.schemas.common.ErrorResponse` envelope.
"""

from typing import Any


class StudyBuddyError(Exception):
    """Base class for errors the API knows how to render."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(StudyBuddyError):
    """Malformed input rejected before any state is touched."""

    status_code = 422
    error_code = "validation_error"


class NotFoundError(StudyBuddyError):
    status_code = 404
    error_code = "not_found"


class ConflictError(StudyBuddyError):
    """A concurrent write won the race for the same record."""

    status_code = 409
    error_code = "conflict"


class UpstreamError(StudyBuddyError):
    """The generative-text or persistence collaborator failed."""

    status_code = 502
    error_code = "upstream_error"
