# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Platform database engines and sessions using SQLAlchemy async.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

asyncpg connections belong to the event loop that opened them, so each
worker thread builds its own engine with create_engine_and_sessionmaker
(see coursenotify.infrastructure.background.tasks.base). Each task opens
its own sessions; delivery channels open short sessions of their own so
concurrent per-recipient lookups never share an AsyncSession.

Example:
    engine, sessionmaker = create_engine_and_sessionmaker(settings)

    async with session_scope(sessionmaker) as session:
        repository = SQLCourseRepository(session)
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from coursenotify.core.config.settings import Settings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_engine_and_sessionmaker(
    settings: "Settings",
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an engine and its sessionmaker from settings.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        The engine and a sessionmaker bound to it.

    Raises:
        DatabaseError: If engine creation fails.
    """
    try:
        engine = create_async_engine(
            settings.database.url,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    sessionmaker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine, sessionmaker


@asynccontextmanager
async def session_scope(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Args:
        sessionmaker: Sessionmaker to open the session from.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If a database operation fails.
    """
    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise
