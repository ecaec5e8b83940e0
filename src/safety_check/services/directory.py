"""User directory: persisted users, uniqueness, credentials, and search."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.models.friendship import FriendRequest, Friendship
from safety_check.models.user import User
from safety_check.services.base import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    UnauthenticatedError,
)
from safety_check.utils import security

logger = logging.getLogger(__name__)

# Registration conflicts are reported as 400 on the HTTP surface
REGISTRATION_CONFLICT_STATUS = 400


@dataclass
class UserCounts:
    """A user together with the sizes of its relationship collections."""

    user: User
    friends: int
    friend_requests: int


class UserDirectory:
    """Storage and lookup for User rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_user(self, email: str, username: str, name: str, password: str) -> User:
        """Create a user with no friends, no requests, and no check-in.

        Raises:
            ConflictError: If the email or username is already registered,
                compared case-insensitively.
        """
        email = email.strip().lower()
        username = username.strip().lower()

        result = await self.session.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        existing = result.scalars().first()
        if existing is not None:
            if existing.email == email:
                raise ConflictError("Email already registered", REGISTRATION_CONFLICT_STATUS)
            raise ConflictError("Username already taken", REGISTRATION_CONFLICT_STATUS)

        user = User(
            email=email,
            username=username,
            name=name,
            hashed_password=security.hash_password(password),
            last_check_in=None,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError:
            # A concurrent registration won the race for the same email/username
            raise ConflictError(
                "Email or username already registered", REGISTRATION_CONFLICT_STATUS
            ) from None
        await self.session.refresh(user)

        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.username == username.strip().lower())
        )
        return result.scalar_one_or_none()

    async def find_by_credential(self, email_or_username: str) -> User | None:
        """Look up a user by email or username, case-insensitively."""
        key = email_or_username.strip().lower()
        result = await self.session.execute(
            select(User).where(or_(User.email == key, User.username == key))
        )
        return result.scalars().first()

    def verify_password(self, user: User, password: str) -> bool:
        return security.verify_password(password, user.hashed_password)

    async def authenticate(self, email_or_username: str, password: str) -> User:
        """Return the user for valid credentials.

        Unknown users and wrong passwords fail the same way so callers cannot
        discover which accounts exist.
        """
        user = await self.find_by_credential(email_or_username)
        if user is None or not self.verify_password(user, password):
            raise UnauthenticatedError("Invalid credentials")
        return user

    async def update_check_in(self, user_id: int) -> User:
        """Set the user's last check-in to now and return the updated row."""
        now = datetime.now(UTC)
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_check_in=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")

        user = await self.session.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def friend_ids(self, user_id: int) -> list[int]:
        result = await self.session.execute(
            select(Friendship.friend_id)
            .where(Friendship.user_id == user_id)
            .order_by(Friendship.created_at, Friendship.friend_id)
        )
        return list(result.scalars().all())

    async def search(self, query: str, excluding_user_id: int, limit: int = 10) -> list[User]:
        """Case-insensitive substring search over name and username.

        Excludes the requester and the requester's friends. Result order is
        not guaranteed.
        """
        needle = query.strip().lower()
        if not needle:
            raise InvalidOperationError("Search query is required")

        friends_of_requester = select(Friendship.friend_id).where(
            Friendship.user_id == excluding_user_id
        )
        result = await self.session.execute(
            select(User)
            .where(
                User.id != excluding_user_id,
                User.id.not_in(friends_of_requester),
                or_(
                    func.lower(User.name).contains(needle, autoescape=True),
                    User.username.contains(needle, autoescape=True),
                ),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_users(self) -> list[UserCounts]:
        """All users with their friend and pending-request counts."""
        friend_counts = (
            select(Friendship.user_id, func.count().label("n"))
            .group_by(Friendship.user_id)
            .subquery()
        )
        request_counts = (
            select(FriendRequest.recipient_id, func.count().label("n"))
            .group_by(FriendRequest.recipient_id)
            .subquery()
        )
        result = await self.session.execute(
            select(
                User,
                func.coalesce(friend_counts.c.n, 0),
                func.coalesce(request_counts.c.n, 0),
            )
            .outerjoin(friend_counts, friend_counts.c.user_id == User.id)
            .outerjoin(request_counts, request_counts.c.recipient_id == User.id)
            .order_by(User.id)
        )
        return [
            UserCounts(user=user, friends=friends, friend_requests=requests)
            for user, friends, requests in result.all()
        ]
