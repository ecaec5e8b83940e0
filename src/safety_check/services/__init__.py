"""Business logic: user directory, friend relationships, and notifications.

Only the exception types and the notifier are re-exported here; the
directory and friend services depend on the ORM models and are imported
from their own modules.
"""

from safety_check.services.base import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ServiceError,
    UnauthenticatedError,
    UpstreamError,
)
from safety_check.services.notifier import Notifier, get_notifier

__all__ = [
    "ConflictError",
    "ForbiddenError",
    "InvalidOperationError",
    "NotFoundError",
    "ServiceError",
    "UnauthenticatedError",
    "UpstreamError",
    "Notifier",
    "get_notifier",
]
