"""
core/errors.py -- Error taxonomy shared by the auth and catalog layers.

Every error carries the HTTP status it maps to and the message that is safe to
show a client. The API layer registers a single exception handler for
ServiceError that renders {"message": ...} with that status; nothing else
needs to know about HTTP.

Layer rule: core/ is the kernel. No imports from api/, auth/, or beers/.
"""

from __future__ import annotations

GENERIC_ERROR_MESSAGE = "Oeeeps, something went wrong."
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials."


class ServiceError(Exception):
    """Base class for errors that are translated into an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Missing or duplicate field on create. The message is passed through to the client."""

    status_code = 400

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def from_fields(cls, entity: str, errors: dict[str, str]) -> "ValidationError":
        """Build the combined "<entity> validation failed: field: msg, ..." message."""
        detail = ", ".join(f"{field}: {msg}" for field, msg in errors.items())
        return cls(f"{entity} validation failed: {detail}", errors)


class AuthenticationError(ServiceError):
    """Unknown account or wrong password. Never says which."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class NotFoundError(ServiceError):
    status_code = 404


class InternalError(ServiceError):
    """Unexpected failure. The client only ever sees the generic message."""

    status_code = 500

    def __init__(self) -> None:
        super().__init__(GENERIC_ERROR_MESSAGE)
