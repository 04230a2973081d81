# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for session_scope transaction handling."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from coursenotify.infrastructure.database.connection import DatabaseError, session_scope
from coursenotify.infrastructure.database.models import Base, User

pytestmark = pytest.mark.database


@pytest_asyncio.fixture
async def sessionmaker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create an in-memory database with the platform schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


async def user_ids(sessionmaker: async_sessionmaker[AsyncSession]) -> list[str]:
    async with sessionmaker() as session:
        return list((await session.scalars(select(User.id))).all())


class TestSessionScope:
    """Tests for session_scope."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, sessionmaker) -> None:
        """Test that work done in the scope is committed."""
        async with session_scope(sessionmaker) as session:
            session.add(User(id="user-1", name="Asha"))

        assert await user_ids(sessionmaker) == ["user-1"]

    @pytest.mark.asyncio
    async def test_store_error_is_wrapped(self, sessionmaker) -> None:
        """Test that a database error rolls back and surfaces as DatabaseError."""
        async with session_scope(sessionmaker) as session:
            session.add(User(id="user-1", name="Asha"))

        with pytest.raises(DatabaseError) as exc_info:
            async with session_scope(sessionmaker) as session:
                session.add(User(id="user-2", name="Ben"))
                await session.flush()
                session.add(User(id="user-1", name="Duplicate"))
                await session.flush()

        assert exc_info.value.original_error is not None
        assert await user_ids(sessionmaker) == ["user-1"]

    @pytest.mark.asyncio
    async def test_other_errors_roll_back_and_propagate(self, sessionmaker) -> None:
        """Test that non-database errors roll back and are re-raised unchanged."""
        with pytest.raises(KeyError):
            async with session_scope(sessionmaker) as session:
                session.add(User(id="user-3", name="Chen"))
                await session.flush()
                raise KeyError("payload")

        assert await user_ids(sessionmaker) == []
