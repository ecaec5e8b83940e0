"""Endpoints for the signed-in user: check-in, friends, pings, and search."""

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.api.auth import build_user_response
from safety_check.config import Settings, get_settings
from safety_check.database import get_db
from safety_check.models.user import User
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
from safety_check.schemas.user import UserEnvelope, UserSearchResponse, UserSearchResult
from safety_check.services.directory import UserDirectory
from safety_check.services.friends import FriendService
from safety_check.services.notifier import Notifier, get_notifier
from safety_check.utils.security import CurrentUser

router = APIRouter(prefix="/user", tags=["user"])


@router.post("/check-in", response_model=UserEnvelope)
async def check_in(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    """Mark the current user as safe by recording a check-in time."""
    directory = UserDirectory(db)
    user = await directory.update_check_in(current_user.id)
    return UserEnvelope(user=await build_user_response(directory, user))


@router.get("/friends", response_model=RelationshipsResponse)
async def list_friends(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> RelationshipsResponse:
    """List the user's friends and inbound pending friend requests."""
    relationships = await FriendService(db).list_relationships(current_user)

    return RelationshipsResponse(
        friends=[FriendSummary.model_validate(friend) for friend in relationships.friends],
        friend_requests=[
            PendingRequest(
                id=pending.sender.id,
                name=pending.sender.name,
                username=pending.sender.username,
                email=pending.sender.email,
                created_at=pending.created_at,
            )
            for pending in relationships.friend_requests
        ],
    )


@router.post("/friends", response_model=MessageResponse)
async def send_friend_request(
    current_user: CurrentUser,
    request: SendFriendRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Send a friend request to a user identified by username or ID."""
    await FriendService(db).send_request(
        current_user,
        target_username=request.username,
        target_id=request.friend_id,
    )
    return MessageResponse(message="Friend request sent successfully")


@router.put("/friends", response_model=AcceptResponse)
async def accept_friend_request(
    current_user: CurrentUser,
    request: AcceptFriendRequest,
    db: AsyncSession = Depends(get_db),
) -> AcceptResponse:
    """Accept the pending friend request sent by ``requestId``."""
    friend = await FriendService(db).accept_request(current_user, request.request_id)
    return AcceptResponse(
        message="Friend request accepted",
        friend=FriendSummary.model_validate(friend),
    )


@router.delete("/friends", response_model=MessageResponse)
async def reject_or_remove_friend(
    current_user: CurrentUser,
    request: DeleteFriendRequest = Body(...),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Reject a pending request (``requestId``) or remove a friend (``friendId``)."""
    service = FriendService(db)

    if request.request_id is not None:
        await service.reject_request(current_user, request.request_id)
        return MessageResponse(message="Friend request rejected")

    await service.remove_friend(current_user, request.friend_id)
    return MessageResponse(message="Friend removed successfully")


@router.post("/ping", response_model=PingResponse)
async def ping_friend(
    current_user: CurrentUser,
    request: PingRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> PingResponse:
    """Email a friend asking them to check in.

    A failed email does not fail the request; it is reported as a warning.
    """
    result = await FriendService(db, notifier).ping(current_user, request.friend_id)

    if result.delivered:
        return PingResponse(message="Ping sent successfully", delivered=True)
    return PingResponse(
        message="Ping could not be delivered",
        delivered=False,
        warning=result.warning,
    )


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    current_user: CurrentUser,
    q: str = Query(..., description="Search query for name or username"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserSearchResponse:
    """Search users who are not yet friends by name or username."""
    users: list[User] = await UserDirectory(db).search(
        q,
        excluding_user_id=current_user.id,
        limit=settings.search_result_limit,
    )
    return UserSearchResponse(users=[UserSearchResult.model_validate(user) for user in users])
