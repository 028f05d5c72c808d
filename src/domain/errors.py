"""
Domain error taxonomy.

Every error carries a stable ``kind`` string and the HTTP status the API
layer renders it with.  Services raise these; routes never build
``HTTPException`` for domain failures.
"""


class DomainError(Exception):
    kind = "domain"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """A referenced entity (trip, request, profile...) does not exist."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(DomainError):
    """The principal does not own the entity or has the wrong role."""

    kind = "forbidden"
    status_code = 403


class InvalidStateError(DomainError):
    """The entity is not in a state that allows the operation."""

    kind = "invalid_state"
    status_code = 409


class ConflictError(DomainError):
    """Duplicate or concurrently superseded request."""

    kind = "conflict"
    status_code = 409


class ValidationError(DomainError):
    kind = "validation"
    status_code = 422
