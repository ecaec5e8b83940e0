"""Database configuration with async SQLAlchemy support."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from safety_check.services.base import UpstreamError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Database:
    """Connection pool owner for the application.

    Built once at startup, connected explicitly, and disposed at shutdown.
    Request handlers get sessions from it through :func:`get_db`.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        connect_retries: int = 3,
        retry_backoff: float = 0.5,
        **engine_kwargs: Any,
    ) -> None:
        self.url = url
        self.echo = echo
        self.connect_retries = max(1, connect_retries)
        self.retry_backoff = retry_backoff
        self.engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and verify connectivity.

        Retries with exponential backoff. Raises UpstreamError once every
        attempt has failed.
        """
        if self._engine is not None:
            return

        engine = create_async_engine(self.url, echo=self.echo, **self.engine_kwargs)
        delay = self.retry_backoff

        for attempt in range(1, self.connect_retries + 1):
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                break
            except (OperationalError, DBAPIError, OSError) as e:
                logger.warning(
                    "Database connection attempt %d/%d failed: %s",
                    attempt,
                    self.connect_retries,
                    e,
                )
                if attempt == self.connect_retries:
                    await engine.dispose()
                    raise UpstreamError("Database unavailable") from e
                await asyncio.sleep(delay)
                delay *= 2

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database connected")

    async def disconnect(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database disconnected")

    def session(self) -> AsyncSession:
        """Create a new session bound to the pool."""
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, DBAPIError, OSError, RuntimeError):
            logger.exception("Database ping failed")
            return False
        return True

    async def create_all(self) -> None:
        """Create all tables known to the ORM metadata."""
        # Import here so every model is registered on Base.metadata
        import safety_check.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


def get_database(request: Request) -> Database:
    """Dependency that returns the process-wide Database from app state."""
    return request.app.state.database


async def get_db(database: Database = Depends(get_database)) -> AsyncGenerator[AsyncSession]:
    """Dependency that provides an async database session.

    Yields a session and ensures it's closed after the request.
    """
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
