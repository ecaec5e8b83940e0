"""Tests for the Database connection pool object."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.pool import StaticPool

from safety_check.database import Database
from safety_check.services.base import UpstreamError

UNREACHABLE_URL = "sqlite+aiosqlite:////nonexistent-directory/for/tests/safety.db"


def in_memory_database() -> Database:
    return Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


class TestConnect:
    async def test_connect_and_disconnect(self) -> None:
        database = in_memory_database()
        assert not database.is_connected

        await database.connect()
        assert database.is_connected
        assert await database.ping() is True

        await database.disconnect()
        assert not database.is_connected

    async def test_connect_and_disconnect_are_idempotent(self) -> None:
        database = in_memory_database()

        await database.connect()
        engine = database.engine
        await database.connect()
        assert database.engine is engine

        await database.disconnect()
        await database.disconnect()
        assert not database.is_connected

    async def test_connect_retries_with_backoff_then_fails(self) -> None:
        database = Database(UNREACHABLE_URL, connect_retries=3, retry_backoff=0.5)

        with patch("safety_check.database.asyncio.sleep", new=AsyncMock()) as sleep:
            with pytest.raises(UpstreamError, match="Database unavailable"):
                await database.connect()

        # Two waits between three attempts, doubling each time
        assert [call.args[0] for call in sleep.await_args_list] == [0.5, 1.0]
        assert not database.is_connected

    async def test_session_requires_connection(self) -> None:
        database = in_memory_database()

        with pytest.raises(RuntimeError):
            database.session()

    async def test_ping_when_disconnected(self) -> None:
        database = in_memory_database()

        assert await database.ping() is False

    async def test_create_all_builds_tables(self) -> None:
        database = in_memory_database()
        await database.connect()
        try:
            await database.create_all()
            async with database.engine.connect() as conn:
                table_names = await conn.run_sync(
                    lambda sync_conn: sync_conn.dialect.get_table_names(sync_conn)
                )
        finally:
            await database.disconnect()

        assert {"users", "friend_requests", "friendships"} <= set(table_names)
