# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base utilities for Dramatiq tasks.

Provides common utilities used across all task modules.

Thread-Local Event Loop Management:
    Dramatiq workers use multiple threads (--threads N) to process tasks
    concurrently. SQLAlchemy async engines and asyncpg connections are
    bound to specific event loops and cannot be used across different loops.

    This module provides thread-local event loop management that:
    1. Creates a persistent event loop per worker thread
    2. Reuses the same loop for all tasks in that thread
    3. Keeps one database engine per thread, bound to that loop
"""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Coroutine, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursenotify.core.config import get_settings
from coursenotify.infrastructure.database.connection import (
    create_engine_and_sessionmaker,
    session_scope,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Thread-local storage for event loops and database engines
_thread_local = threading.local()


def _get_thread_event_loop() -> asyncio.AbstractEventLoop:
    """Get or create a persistent event loop for the current thread.

    When a new loop is created (first task in thread or after loop
    closure), the thread's cached engine is dropped so the next session
    opens connections on the new loop.

    Returns:
        Event loop for current thread.
    """
    loop = getattr(_thread_local, "event_loop", None)

    if loop is None or loop.is_closed():
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        _thread_local.event_loop = loop

        # Engine of a previous loop is unusable here
        _thread_local.engine = None
        _thread_local.sessionmaker = None

        logger.debug(
            "Created new event loop for thread %s",
            threading.current_thread().name,
        )

    return loop


def get_worker_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the current thread's sessionmaker, creating its engine on first use.

    Returns:
        Sessionmaker bound to this thread's engine.
    """
    sessionmaker = getattr(_thread_local, "sessionmaker", None)
    if sessionmaker is None:
        engine, sessionmaker = create_engine_and_sessionmaker(get_settings())
        _thread_local.engine = engine
        _thread_local.sessionmaker = sessionmaker
        logger.debug(
            "Created database engine for thread %s",
            threading.current_thread().name,
        )
    return sessionmaker


@asynccontextmanager
async def worker_session() -> AsyncIterator[AsyncSession]:
    """Open a session on the current thread's engine.

    Yields:
        AsyncSession committed on success and rolled back on error.
    """
    async with session_scope(get_worker_sessionmaker()) as session:
        yield session


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async coroutine in sync Dramatiq worker context.

    Uses thread-local persistent event loops to ensure SQLAlchemy
    async engines remain properly bound across task executions within
    the same thread.

    Args:
        coro: Coroutine to run.

    Returns:
        Result of coroutine.

    Example:
        @dramatiq.actor
        def my_task(run_id: str):
            async def _process():
                async with worker_session() as session:
                    ...
            return run_async(_process())
    """
    loop = _get_thread_event_loop()
    return loop.run_until_complete(coro)
