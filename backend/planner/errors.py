"""Domain exceptions shared by services, repositories and HTTP handlers.

Services raise these instead of `HTTPException` so they stay usable
outside a request. `planner.main` registers one handler per class that
renders the standard `{success, message, errors}` envelope.
"""

from typing import List, Optional


class PlannerError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(PlannerError):
    """Malformed or out-of-range input."""
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class DuplicateResource(PlannerError):
    """A unique constraint would be violated (e.g. email)."""
    status_code = 400
    default_message = "Resource already exists"


class AuthenticationFailure(PlannerError):
    """Missing, invalid or expired credentials.

    The message is chosen by the caller from a small fixed set so the
    response never reveals which check failed.
    """
    status_code = 401
    default_message = "Authentication required"


class NotFound(PlannerError):
    """Record absent, or owned by another user."""
    status_code = 404
    default_message = "Not found"


class PersistenceFailure(PlannerError):
    """The store rejected a write or could not be reached."""
    status_code = 500
    default_message = "Server error"


class InvalidCredentials(AuthenticationFailure):
    """Login rejected; one message for unknown email, inactive account and wrong password."""
    status_code = 400
    default_message = "Invalid credentials"
