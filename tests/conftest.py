"""Pytest fixtures and configuration."""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing the app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-at-least-32-characters-long")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ADMIN_USERNAMES", '["admin"]')

from safety_check.database import Database, get_database
from safety_check.main import app
from safety_check.services.notifier import Notifier, get_notifier

RegisterFn = Callable[..., Awaitable[tuple[dict, str]]]


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
async def database() -> AsyncGenerator[Database]:
    """In-memory SQLite database with all tables created."""
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.connect()
    await db.create_all()
    try:
        yield db
    finally:
        await db.disconnect()


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Notifier that reports every email as delivered."""
    notifier = MagicMock(spec=Notifier)
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
async def client(database: Database, mock_notifier: MagicMock) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for testing FastAPI endpoints against the test database."""
    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_notifier] = lambda: mock_notifier

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register(client: AsyncClient) -> RegisterFn:
    """Register a user through the API and return (user, token)."""

    async def _register(
        username: str,
        email: str | None = None,
        password: str = "password123",
        name: str | None = None,
    ) -> tuple[dict, str]:
        response = await client.post(
            "/api/auth/register",
            json={
                "email": email or f"{username}@example.com",
                "password": password,
                "name": name or username.capitalize(),
                "username": username,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["user"], data["token"]

    return _register
