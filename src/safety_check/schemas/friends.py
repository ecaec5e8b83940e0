"""Pydantic schemas for friend and ping API endpoints."""

from pydantic import Field, model_validator

from safety_check.schemas.base import CamelModel, UTCDateTime, UserId


class FriendSummary(CamelModel):
    """A friend as listed to the user."""

    id: int
    name: str
    username: str
    email: str
    last_check_in: UTCDateTime | None = None


class PendingRequest(CamelModel):
    """An inbound pending request, described by its sender."""

    id: int = Field(description="Sender's user ID; use it to accept or reject")
    name: str
    username: str
    email: str
    created_at: UTCDateTime


class RelationshipsResponse(CamelModel):
    friends: list[FriendSummary]
    friend_requests: list[PendingRequest]


class SendFriendRequest(CamelModel):
    """Target of a new friend request, by username or by user ID."""

    username: str | None = Field(default=None, min_length=1)
    friend_id: UserId | None = None

    @model_validator(mode="after")
    def require_one_target(self) -> "SendFriendRequest":
        if (self.username is None) == (self.friend_id is None):
            raise ValueError("Provide exactly one of username or friendId")
        return self


class AcceptFriendRequest(CamelModel):
    """Accept the pending request sent by ``request_id``."""

    request_id: UserId = Field(description="Sender's user ID")


class DeleteFriendRequest(CamelModel):
    """Reject a pending request (``request_id``) or remove a friend (``friend_id``)."""

    request_id: UserId | None = None
    friend_id: UserId | None = None

    @model_validator(mode="after")
    def require_one_target(self) -> "DeleteFriendRequest":
        if (self.request_id is None) == (self.friend_id is None):
            raise ValueError("Provide exactly one of requestId or friendId")
        return self


class MessageResponse(CamelModel):
    message: str


class AcceptResponse(MessageResponse):
    friend: FriendSummary


class PingRequest(CamelModel):
    friend_id: UserId


class PingResponse(MessageResponse):
    """Outcome of a ping; delivery failures are reported, not raised."""

    delivered: bool
    warning: str | None = None
