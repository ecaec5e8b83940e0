"""Domain exceptions shared by the services and mapped to HTTP responses."""


class ServiceError(Exception):
    """Base exception for service errors.

    Every subclass carries the HTTP status code the API reports it with, so
    the exception handlers in ``main`` never need to know about individual
    error kinds.
    """

    default_message = "Internal server error"
    default_status_code = 500

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message or self.default_message)
        self.status_code = status_code or self.default_status_code

    @property
    def message(self) -> str:
        return str(self)


class UnauthenticatedError(ServiceError):
    """Raised when a bearer token is missing, invalid, or expired."""

    default_message = "Not authenticated"
    default_status_code = 401


class ForbiddenError(ServiceError):
    """Raised when an authenticated user may not act on a resource."""

    default_message = "Not authorized"
    default_status_code = 403


class NotFoundError(ServiceError):
    """Raised when a user, friend, or pending request is not found."""

    default_message = "Resource not found"
    default_status_code = 404


class ConflictError(ServiceError):
    """Raised for duplicate accounts, duplicate requests, and existing friendships."""

    default_message = "Conflict"
    default_status_code = 409


class InvalidOperationError(ServiceError):
    """Raised for self-friending and malformed input."""

    default_message = "Invalid operation"
    default_status_code = 400


class UpstreamError(ServiceError):
    """Raised when the database or mail transport cannot be reached."""

    default_message = "Upstream service unavailable"
    default_status_code = 503
