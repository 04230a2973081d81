# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Platform database access: connection management, models and queries."""

from coursenotify.infrastructure.database.connection import (
    DatabaseError,
    create_engine_and_sessionmaker,
    session_scope,
)
from coursenotify.infrastructure.database.repository import (
    ActivityRecord,
    CourseDataStore,
    CourseRecord,
    GroupRecord,
    RecipientDirectory,
    RunRecord,
    SQLCourseRepository,
    UserRecord,
)

__all__ = [
    # Connection
    "DatabaseError",
    "create_engine_and_sessionmaker",
    "session_scope",
    # Queries
    "ActivityRecord",
    "CourseDataStore",
    "CourseRecord",
    "GroupRecord",
    "RecipientDirectory",
    "RunRecord",
    "SQLCourseRepository",
    "UserRecord",
]
