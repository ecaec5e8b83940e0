"""Tests for the friend relationship state machine."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from safety_check.database import Database
from safety_check.models import FriendRequest, Friendship, User
from safety_check.services.base import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
)
from safety_check.services.directory import UserDirectory
from safety_check.services.friends import FriendService
from safety_check.services.notifier import Notifier


@pytest.fixture
async def session(database: Database) -> AsyncGenerator[AsyncSession]:
    async with database.session() as session:
        yield session


@pytest.fixture
async def users(session: AsyncSession) -> tuple[User, User, User]:
    directory = UserDirectory(session)
    alice = await directory.create_user("alice@x.com", "alice", "Alice", "pw1")
    bob = await directory.create_user("bob@x.com", "bob", "Bob", "pw2")
    carol = await directory.create_user("carol@x.com", "carol", "Carol", "pw3")
    await session.commit()
    return alice, bob, carol


@pytest.fixture
async def file_database(tmp_path: Path) -> AsyncGenerator[Database]:
    """File-backed SQLite so concurrent sessions use separate connections."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'friends.db'}")
    await db.connect()
    await db.create_all()
    try:
        yield db
    finally:
        await db.disconnect()


async def count(session: AsyncSession, model, *conditions) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar_one()


class TestSendRequest:
    async def test_creates_exactly_one_pending_entry(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)

        target = await service.send_request(alice, target_username="bob")

        assert target.id == bob.id
        assert await count(
            session,
            FriendRequest,
            FriendRequest.sender_id == alice.id,
            FriendRequest.recipient_id == bob.id,
        ) == 1
        # Only the recipient's pending list changes
        assert await count(session, FriendRequest, FriendRequest.recipient_id == alice.id) == 0

    async def test_second_send_conflicts(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)

        with pytest.raises(ConflictError, match="already sent"):
            await service.send_request(alice, target_id=bob.id)

    async def test_reverse_pending_request_conflicts(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)

        with pytest.raises(ConflictError, match="accept"):
            await service.send_request(bob, target_id=alice.id)

    async def test_self_request_is_invalid(self, session, users) -> None:
        alice, _, _ = users

        with pytest.raises(InvalidOperationError):
            await FriendService(session).send_request(alice, target_id=alice.id)

    async def test_requires_exactly_one_target(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)

        with pytest.raises(InvalidOperationError):
            await service.send_request(alice)
        with pytest.raises(InvalidOperationError):
            await service.send_request(alice, target_username="bob", target_id=bob.id)

    async def test_unknown_target(self, session, users) -> None:
        alice, _, _ = users

        with pytest.raises(NotFoundError):
            await FriendService(session).send_request(alice, target_username="ghost")


class TestAcceptRequest:
    async def test_accept_creates_symmetric_friendship(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)

        friend = await service.accept_request(bob, alice.id)

        assert friend.id == alice.id
        directory = UserDirectory(session)
        assert await directory.friend_ids(alice.id) == [bob.id]
        assert await directory.friend_ids(bob.id) == [alice.id]
        assert await count(session, FriendRequest, FriendRequest.recipient_id == bob.id) == 0

    async def test_accept_twice_only_succeeds_once(self, session, users) -> None:
        """The conditional delete is the existence check, so a replay finds nothing."""
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)
        await session.commit()

        await service.accept_request(bob, alice.id)
        with pytest.raises(NotFoundError):
            await service.accept_request(bob, alice.id)

        assert await count(session, Friendship) == 2

    async def test_concurrent_accepts_only_one_succeeds(self, file_database: Database) -> None:
        async with file_database.session() as setup:
            directory = UserDirectory(setup)
            alice = await directory.create_user("alice@x.com", "alice", "Alice", "pw1")
            bob = await directory.create_user("bob@x.com", "bob", "Bob", "pw2")
            await FriendService(setup).send_request(alice, target_id=bob.id)
            await setup.commit()

        async def accept() -> User:
            async with file_database.session() as session:
                friend = await FriendService(session).accept_request(bob, alice.id)
                await session.commit()
                return friend

        results = await asyncio.gather(accept(), accept(), return_exceptions=True)

        accepted = [r for r in results if isinstance(r, User)]
        not_found = [r for r in results if isinstance(r, NotFoundError)]
        assert len(accepted) == 1, results
        assert len(not_found) == 1, results
        async with file_database.session() as check:
            assert await count(check, Friendship) == 2
            assert await count(check, FriendRequest) == 0

    async def test_accept_clears_request_in_both_directions(self, session, users) -> None:
        alice, bob, _ = users
        # Racing sends can each pass the reverse-pending check
        session.add_all(
            [
                FriendRequest(sender_id=alice.id, recipient_id=bob.id),
                FriendRequest(sender_id=bob.id, recipient_id=alice.id),
            ]
        )
        await session.commit()
        service = FriendService(session)

        await service.accept_request(bob, alice.id)

        relationships = await service.list_relationships(alice)
        assert [friend.id for friend in relationships.friends] == [bob.id]
        assert relationships.friend_requests == []
        assert await count(session, FriendRequest) == 0
        with pytest.raises(NotFoundError):
            await service.accept_request(alice, bob.id)

    async def test_accept_without_request(self, session, users) -> None:
        alice, bob, _ = users

        with pytest.raises(NotFoundError):
            await FriendService(session).accept_request(bob, alice.id)

        assert await count(session, Friendship) == 0

    async def test_failed_second_write_rolls_back(self, database, session, users) -> None:
        """If the friendship write fails, the pending request survives the rollback."""
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)
        # Seed one direction so the paired insert violates the primary key
        session.add(Friendship(user_id=alice.id, friend_id=bob.id))
        await session.commit()

        with pytest.raises(ConflictError):
            await service.accept_request(bob, alice.id)
        await session.rollback()

        async with database.session() as fresh:
            assert await count(
                fresh, FriendRequest, FriendRequest.sender_id == alice.id
            ) == 1
            assert await count(fresh, Friendship) == 1

    async def test_pending_request_blocked_between_friends(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)
        await service.accept_request(bob, alice.id)

        with pytest.raises(ConflictError, match="Already friends"):
            await service.send_request(bob, target_id=alice.id)


class TestRejectAndRemove:
    async def test_reject_twice(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)

        await service.reject_request(bob, alice.id)
        with pytest.raises(NotFoundError):
            await service.reject_request(bob, alice.id)

        assert await count(session, Friendship) == 0

    async def test_remove_when_not_friends(self, session, users) -> None:
        alice, bob, _ = users

        with pytest.raises(NotFoundError):
            await FriendService(session).remove_friend(alice, bob.id)

    async def test_remove_clears_both_sides(self, session, users) -> None:
        alice, bob, carol = users
        service = FriendService(session)
        for other in (bob, carol):
            await service.send_request(alice, target_id=other.id)
            await service.accept_request(other, alice.id)

        await service.remove_friend(bob, alice.id)

        directory = UserDirectory(session)
        assert await directory.friend_ids(alice.id) == [carol.id]
        assert await directory.friend_ids(bob.id) == []
        assert await directory.friend_ids(carol.id) == [alice.id]


class TestListRelationships:
    async def test_lists_friends_and_pending_requests(self, session, users) -> None:
        alice, bob, carol = users
        service = FriendService(session)
        await service.send_request(bob, target_id=alice.id)
        await service.accept_request(alice, bob.id)
        await service.send_request(carol, target_id=alice.id)

        relationships = await service.list_relationships(alice)

        assert [friend.id for friend in relationships.friends] == [bob.id]
        assert [pending.sender.id for pending in relationships.friend_requests] == [carol.id]
        assert relationships.friend_requests[0].created_at is not None


class TestPing:
    async def test_ping_requires_friendship(self, session, users) -> None:
        alice, bob, _ = users
        notifier = MagicMock(spec=Notifier)
        notifier.notify = AsyncMock(return_value=True)

        with pytest.raises(ForbiddenError):
            await FriendService(session, notifier).ping(alice, bob.id)
        notifier.notify.assert_not_awaited()

    async def test_ping_without_notifier_reports_warning(self, session, users) -> None:
        alice, bob, _ = users
        service = FriendService(session)
        await service.send_request(alice, target_id=bob.id)
        await service.accept_request(bob, alice.id)

        result = await service.ping(alice, bob.id)

        assert result.delivered is False
        assert result.warning
