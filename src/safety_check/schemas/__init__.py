"""Pydantic schemas for request/response validation."""

from safety_check.schemas.friends import (
    AcceptFriendRequest,
    AcceptResponse,
    DeleteFriendRequest,
    FriendSummary,
    MessageResponse,
    PendingRequest,
    PingRequest,
    PingResponse,
    RelationshipsResponse,
    SendFriendRequest,
)
from safety_check.schemas.user import (
    AdminUserEntry,
    AdminUsersResponse,
    AuthResponse,
    TokenPayload,
    UserCreate,
    UserEnvelope,
    UserLogin,
    UserResponse,
    UserSearchResponse,
    UserSearchResult,
)

__all__ = [
    # User schemas
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserEnvelope",
    "AuthResponse",
    "TokenPayload",
    "UserSearchResult",
    "UserSearchResponse",
    "AdminUserEntry",
    "AdminUsersResponse",
    # Friend schemas
    "FriendSummary",
    "PendingRequest",
    "RelationshipsResponse",
    "SendFriendRequest",
    "AcceptFriendRequest",
    "DeleteFriendRequest",
    "MessageResponse",
    "AcceptResponse",
    "PingRequest",
    "PingResponse",
]
