"""Domain errors raised by the streak and study plan services.

Each error carries the HTTP status and envelope code it maps to, so the
exception handlers in ``app.main`` stay a single lookup.
"""

from typing import Any


class DomainError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(DomainError):
    """Missing or invalid input (bad dates, exam in the past, ...)."""

    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidTransitionError(ValidationError):
    """A status change that the state machine does not allow."""

    code = "INVALID_TRANSITION"


class NotFoundError(DomainError):
    """Plan, day, topic, course, user or confidence record is absent."""

    status_code = 404
    code = "NOT_FOUND"


class AuthorizationError(DomainError):
    """Caller is authenticated but may not perform this action."""

    status_code = 403
    code = "FORBIDDEN"


class ConflictError(DomainError):
    """An active study plan already exists for the (user, course) pair."""

    status_code = 400
    code = "CONFLICT"

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class ConcurrentUpdateError(DomainError):
    """The plan changed underneath us and retries were exhausted."""

    status_code = 409
    code = "CONCURRENT_UPDATE"


class UpstreamError(DomainError):
    """The plan-generation collaborator failed or returned garbage.

    ``message`` is what the client sees; ``detail`` is logged only.
    """

    status_code = 500
    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, *, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail
