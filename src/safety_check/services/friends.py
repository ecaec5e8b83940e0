"""Friend relationship manager.

Per ordered pair of users (A, B) the relationship is one of ``none``,
``A->B pending``, ``B->A pending``, or ``friends``. Pending requests live in
``friend_requests`` (one row, keyed by sender and recipient); friendships
live in ``friendships`` as two rows, one per direction.

Every mutation runs inside the request's transaction. Accepting and
rejecting use a single conditional DELETE as both the existence check and
the removal, so two racing calls on the same request cannot both succeed.
Accepting and removing write both friendship directions in the same
transaction, so a failure rolls back to the previous state instead of
leaving a one-sided friendship.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import and_, delete, exists, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.models.friendship import FriendRequest, Friendship
from safety_check.models.user import User
from safety_check.services.base import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
)
from safety_check.services.directory import UserDirectory
from safety_check.services.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass
class PendingRequestView:
    """An inbound request joined with its sender."""

    sender: User
    created_at: datetime


@dataclass
class Relationships:
    friends: list[User]
    friend_requests: list[PendingRequestView]


@dataclass
class PingResult:
    delivered: bool
    warning: str | None = None


class FriendService:
    """Request/accept/reject/remove state machine over the user directory."""

    def __init__(self, session: AsyncSession, notifier: Notifier | None = None) -> None:
        self.session = session
        self.directory = UserDirectory(session)
        self.notifier = notifier

    async def are_friends(self, user_id: int, other_id: int) -> bool:
        result = await self.session.execute(
            select(
                exists().where(Friendship.user_id == user_id, Friendship.friend_id == other_id)
            )
        )
        return bool(result.scalar())

    async def has_pending_request(self, sender_id: int, recipient_id: int) -> bool:
        result = await self.session.execute(
            select(
                exists().where(
                    FriendRequest.sender_id == sender_id,
                    FriendRequest.recipient_id == recipient_id,
                )
            )
        )
        return bool(result.scalar())

    async def send_request(
        self,
        requester: User,
        target_username: str | None = None,
        target_id: int | None = None,
    ) -> User:
        """Create a pending request from ``requester`` to the target.

        Returns the target user.

        Raises:
            InvalidOperationError: No target given, or the target is the requester.
            NotFoundError: The target does not exist.
            ConflictError: Already friends, or a request is already pending
                in either direction.
        """
        if (target_username is None) == (target_id is None):
            raise InvalidOperationError("Provide exactly one of username or friendId")

        if target_username is not None:
            target = await self.directory.get_by_username(target_username)
        else:
            target = await self.directory.get_by_id(target_id)
        if target is None:
            raise NotFoundError("User not found")

        if target.id == requester.id:
            raise InvalidOperationError("Cannot add yourself as a friend")

        if await self.are_friends(requester.id, target.id):
            raise ConflictError("Already friends")

        if await self.has_pending_request(requester.id, target.id):
            raise ConflictError("Friend request already sent")

        if await self.has_pending_request(target.id, requester.id):
            raise ConflictError(
                "This user has already sent you a friend request. "
                "Check your friend requests to accept it."
            )

        self.session.add(
            FriendRequest(
                sender_id=requester.id,
                recipient_id=target.id,
                created_at=datetime.now(UTC),
            )
        )
        try:
            await self.session.flush()
        except IntegrityError:
            raise ConflictError("Friend request already sent") from None

        logger.info("Friend request sent from user %s to user %s", requester.id, target.id)
        return target

    async def _take_pending_request(self, accepter: User, requester_id: int) -> None:
        """Remove the pending request from ``requester_id`` to ``accepter``.

        The removal is the existence check: NotFoundError when nothing matched.
        """
        result = await self.session.execute(
            delete(FriendRequest).where(
                FriendRequest.recipient_id == accepter.id,
                FriendRequest.sender_id == requester_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("No friend request found from this user")

    async def accept_request(self, accepter: User, requester_id: int) -> User:
        """Turn the pending request from ``requester_id`` into a friendship.

        Any request in the opposite direction is dropped in the same
        transaction. Returns the new friend.
        """
        await self._take_pending_request(accepter, requester_id)

        requester = await self.directory.get_by_id(requester_id)
        if requester is None:
            raise NotFoundError("User not found")

        # Two racing sends can leave a request in each direction
        await self.session.execute(
            delete(FriendRequest).where(
                FriendRequest.sender_id == accepter.id,
                FriendRequest.recipient_id == requester_id,
            )
        )

        now = datetime.now(UTC)
        try:
            await self.session.execute(
                insert(Friendship),
                [
                    {"user_id": accepter.id, "friend_id": requester_id, "created_at": now},
                    {"user_id": requester_id, "friend_id": accepter.id, "created_at": now},
                ],
            )
        except IntegrityError:
            raise ConflictError("Already friends") from None

        logger.info("User %s accepted friend request from user %s", accepter.id, requester_id)
        return requester

    async def reject_request(self, accepter: User, requester_id: int) -> None:
        """Drop the pending request from ``requester_id`` without befriending.

        A second call for the same pair fails with NotFoundError.
        """
        await self._take_pending_request(accepter, requester_id)
        logger.info("User %s rejected friend request from user %s", accepter.id, requester_id)

    async def remove_friend(self, user: User, friend_id: int) -> None:
        """End the friendship between ``user`` and ``friend_id`` on both sides."""
        result = await self.session.execute(
            delete(Friendship).where(
                or_(
                    and_(Friendship.user_id == user.id, Friendship.friend_id == friend_id),
                    and_(Friendship.user_id == friend_id, Friendship.friend_id == user.id),
                )
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("Not friends with this user")

        logger.info("User %s removed friend %s", user.id, friend_id)

    async def list_relationships(self, user: User) -> Relationships:
        """Friends (by name) and inbound pending requests (oldest first)."""
        friends_result = await self.session.execute(
            select(User)
            .join(Friendship, Friendship.friend_id == User.id)
            .where(Friendship.user_id == user.id)
            .order_by(func.lower(User.name), User.id)
        )
        requests_result = await self.session.execute(
            select(User, FriendRequest.created_at)
            .join(FriendRequest, FriendRequest.sender_id == User.id)
            .where(FriendRequest.recipient_id == user.id)
            .order_by(FriendRequest.created_at, FriendRequest.id)
        )
        return Relationships(
            friends=list(friends_result.scalars().all()),
            friend_requests=[
                PendingRequestView(sender=sender, created_at=created_at)
                for sender, created_at in requests_result.all()
            ],
        )

    async def ping(self, user: User, friend_id: int) -> PingResult:
        """Ask a friend by email to check in.

        Delivery is best-effort: a failed send is logged and reported in the
        result, never raised.
        """
        friend = await self.directory.get_by_id(friend_id)
        if friend is None:
            raise NotFoundError("Friend not found")

        if not await self.are_friends(user.id, friend.id):
            raise ForbiddenError("Not authorized to ping this user")

        if self.notifier is None:
            logger.warning("No notifier configured; ping from %s to %s dropped", user.id, friend.id)
            return PingResult(delivered=False, warning="Notifications are not configured")

        delivered = await self.notifier.notify(friend.email, friend.name, user.name)
        if not delivered:
            logger.warning("Ping from user %s to user %s was not delivered", user.id, friend.id)
            return PingResult(delivered=False, warning="Notification email could not be sent")

        logger.info("User %s pinged friend %s", user.id, friend.id)
        return PingResult(delivered=True)
