from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(ServiceError):
    """A required field is missing or has the wrong type."""

    status_code = 400


class AuthError(ServiceError):
    status_code = 401


class NotFoundError(AuthError):
    """No account matches the supplied username."""


class UnauthorizedError(AuthError):
    """Wrong password, or no usable bearer header on the request."""


class ForbiddenError(AuthError):
    """The bearer token is invalid or expired."""

    status_code = 403


class StoreError(ServiceError):
    """The database failed.

    Raised by the store with the driver error as ``__cause__``. Routes log that
    cause and re-raise with a message that is safe to show to clients.
    """

    status_code = 500
