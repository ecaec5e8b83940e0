"""SQLAlchemy ORM models."""

from safety_check.models.friendship import FriendRequest, Friendship
from safety_check.models.user import User

__all__ = [
    "FriendRequest",
    "Friendship",
    "User",
]
