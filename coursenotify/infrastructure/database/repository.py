# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed query interface over the learning platform tables.

CourseDataStore declares one method per lookup the notification engine
needs. SQLCourseRepository implements it with SQLAlchemy statements bound
to a single AsyncSession.

Every recipient query filters on exactly one scope key (group_id for
students, course_id for managers). A user's memberships in other groups
never widen a result.

Example:
    async with worker_session() as session:
        repository = SQLCourseRepository(session)
        students = await repository.list_group_students("group-1")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import distinct, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursenotify.infrastructure.database.connection import session_scope
from coursenotify.infrastructure.database.models import (
    Activity,
    AssignmentSubmission,
    Course,
    CourseActivity,
    CourseManager,
    CourseRun,
    ExamSubmission,
    Group,
    GroupMember,
    PushSubscription,
    QuizAttempt,
    User,
)

logger = logging.getLogger(__name__)

STUDENT_ROLE = "student"


@dataclass(frozen=True)
class ActivityRecord:
    """An activity addressed through its course-activity join row.

    Attributes:
        course_activity_id: Id of the course-activity join row.
        activity_id: Id of the underlying activity.
        activity_type: Raw activity type (quiz, assignment, exam, ...).
        payload: Raw payload document as stored.
        course_id: Course the activity is attached to.
        course_name: Name of that course, None when the course row is missing.
        order: Ordering position within the course.
    """

    course_activity_id: str
    activity_id: str
    activity_type: str
    payload: Any
    course_id: str
    course_name: str | None
    order: int = 0


@dataclass(frozen=True)
class RunRecord:
    """A course run and the group it is bound to."""

    id: str
    name: str | None
    course_id: str
    group_id: str | None
    end_date: datetime | None = None


@dataclass(frozen=True)
class CourseRecord:
    """A course."""

    id: str
    name: str | None


@dataclass(frozen=True)
class GroupRecord:
    """A group."""

    id: str
    name: str | None


@dataclass(frozen=True)
class UserRecord:
    """A platform user with contact details."""

    id: str
    name: str | None
    email: str | None = None


class CourseDataStore(ABC):
    """Read interface over the platform tables, plus auto-submit writes."""

    @abstractmethod
    async def get_course_activity(self, course_activity_id: str) -> ActivityRecord | None:
        """Look up an activity through its course-activity id."""
        ...

    @abstractmethod
    async def get_course_run(self, run_id: str) -> RunRecord | None:
        """Look up a course run."""
        ...

    @abstractmethod
    async def get_course(self, course_id: str) -> CourseRecord | None:
        """Look up a course."""
        ...

    @abstractmethod
    async def get_group(self, group_id: str) -> GroupRecord | None:
        """Look up a group."""
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> UserRecord | None:
        """Look up a user."""
        ...

    @abstractmethod
    async def list_group_students(self, group_id: str) -> list[UserRecord]:
        """List users holding the student role in one group, ordered by id."""
        ...

    @abstractmethod
    async def list_course_managers(self, course_id: str) -> list[UserRecord]:
        """List managers of one course, ordered by id."""
        ...

    @abstractmethod
    async def list_course_runs(self, course_id: str) -> list[RunRecord]:
        """List runs of one course, ordered by id."""
        ...

    @abstractmethod
    async def list_submitted_user_ids(
        self,
        activity_type: str,
        activity_id: str,
        run_id: str,
    ) -> set[str]:
        """Return ids of users who submitted an activity within one run.

        Exactly one submission table is consulted, chosen by activity_type.
        """
        ...

    @abstractmethod
    async def get_user_email(self, user_id: str) -> str | None:
        """Return a user's email address, if any."""
        ...

    @abstractmethod
    async def list_push_subscriptions(self, user_id: str) -> list[Any]:
        """Return the raw stored value of each active push subscription."""
        ...

    @abstractmethod
    async def auto_submit(
        self,
        activity_type: str,
        activity_id: str,
        run_id: str,
        submitted_at: datetime,
        user_id: str | None = None,
    ) -> list[str]:
        """Close open quiz attempts or exam submissions.

        Returns:
            Ids of the users whose attempts were closed.
        """
        ...


class SQLCourseRepository(CourseDataStore):
    """CourseDataStore backed by SQLAlchemy.

    Attributes:
        session: Async session all statements run in.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_course_activity(self, course_activity_id: str) -> ActivityRecord | None:
        stmt = (
            select(
                CourseActivity.id,
                CourseActivity.order,
                CourseActivity.course_id,
                Activity.id,
                Activity.type,
                Activity.payload,
                Course.name,
            )
            .join(Activity, CourseActivity.activity_id == Activity.id)
            .outerjoin(Course, CourseActivity.course_id == Course.id)
            .where(CourseActivity.id == course_activity_id)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None

        ca_id, order, course_id, activity_id, activity_type, payload, course_name = row
        return ActivityRecord(
            course_activity_id=ca_id,
            activity_id=activity_id,
            activity_type=activity_type,
            payload=payload,
            course_id=course_id,
            course_name=course_name,
            order=order or 0,
        )

    async def get_course_run(self, run_id: str) -> RunRecord | None:
        run = await self.session.get(CourseRun, run_id)
        if run is None:
            return None
        return _run_record(run)

    async def get_course(self, course_id: str) -> CourseRecord | None:
        course = await self.session.get(Course, course_id)
        if course is None:
            return None
        return CourseRecord(id=course.id, name=course.name)

    async def get_group(self, group_id: str) -> GroupRecord | None:
        group = await self.session.get(Group, group_id)
        if group is None:
            return None
        return GroupRecord(id=group.id, name=group.name)

    async def get_user(self, user_id: str) -> UserRecord | None:
        user = await self.session.get(User, user_id)
        if user is None:
            return None
        return UserRecord(id=user.id, name=user.name, email=user.email)

    async def list_group_students(self, group_id: str) -> list[UserRecord]:
        stmt = (
            select(User.id, User.name, User.email)
            .join(GroupMember, GroupMember.user_id == User.id)
            .where(
                GroupMember.group_id == group_id,
                GroupMember.role == STUDENT_ROLE,
            )
            .distinct()
            .order_by(User.id)
        )
        rows = (await self.session.execute(stmt)).all()
        return [UserRecord(id=r[0], name=r[1], email=r[2]) for r in rows]

    async def list_course_managers(self, course_id: str) -> list[UserRecord]:
        stmt = (
            select(User.id, User.name, User.email)
            .join(CourseManager, CourseManager.user_id == User.id)
            .where(CourseManager.course_id == course_id)
            .distinct()
            .order_by(User.id)
        )
        rows = (await self.session.execute(stmt)).all()
        return [UserRecord(id=r[0], name=r[1], email=r[2]) for r in rows]

    async def list_course_runs(self, course_id: str) -> list[RunRecord]:
        stmt = select(CourseRun).where(CourseRun.course_id == course_id).order_by(CourseRun.id)
        runs = (await self.session.execute(stmt)).scalars().all()
        return [_run_record(run) for run in runs]

    async def list_submitted_user_ids(
        self,
        activity_type: str,
        activity_id: str,
        run_id: str,
    ) -> set[str]:
        if activity_type == "assignment":
            stmt = select(distinct(AssignmentSubmission.user_id)).where(
                AssignmentSubmission.activity_id == activity_id,
                AssignmentSubmission.course_run_id == run_id,
            )
        elif activity_type == "quiz":
            stmt = select(distinct(QuizAttempt.user_id)).where(
                QuizAttempt.activity_id == activity_id,
                QuizAttempt.course_run_id == run_id,
                QuizAttempt.completed_at.is_not(None),
            )
        elif activity_type == "exam":
            stmt = select(distinct(ExamSubmission.user_id)).where(
                ExamSubmission.activity_id == activity_id,
                ExamSubmission.course_run_id == run_id,
                ExamSubmission.submitted_at.is_not(None),
            )
        else:
            raise ValueError(f"No submission table for activity type: {activity_type}")

        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_user_email(self, user_id: str) -> str | None:
        result = await self.session.execute(select(User.email).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def list_push_subscriptions(self, user_id: str) -> list[Any]:
        stmt = (
            select(PushSubscription.subscription)
            .where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .order_by(PushSubscription.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def auto_submit(
        self,
        activity_type: str,
        activity_id: str,
        run_id: str,
        submitted_at: datetime,
        user_id: str | None = None,
    ) -> list[str]:
        if activity_type == "quiz":
            stmt = (
                update(QuizAttempt)
                .where(
                    QuizAttempt.activity_id == activity_id,
                    QuizAttempt.course_run_id == run_id,
                    QuizAttempt.completed_at.is_(None),
                )
                .values(completed_at=submitted_at)
                .returning(QuizAttempt.user_id)
            )
            if user_id is not None:
                stmt = stmt.where(QuizAttempt.user_id == user_id)
        elif activity_type == "exam":
            stmt = (
                update(ExamSubmission)
                .where(
                    ExamSubmission.activity_id == activity_id,
                    ExamSubmission.course_run_id == run_id,
                    ExamSubmission.submitted_at.is_(None),
                )
                .values(submitted_at=submitted_at, updated_at=submitted_at)
                .returning(ExamSubmission.user_id)
            )
            if user_id is not None:
                stmt = stmt.where(ExamSubmission.user_id == user_id)
        else:
            raise ValueError(f"Auto-submit is not supported for activity type: {activity_type}")

        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        updated = list(result.scalars().all())
        logger.debug(
            "Auto-submitted %d %s record(s) for activity %s in run %s",
            len(updated),
            activity_type,
            activity_id,
            run_id,
        )
        return updated


class RecipientDirectory:
    """Contact lookups that open a fresh session per call.

    Delivery channels run concurrently for many recipients, and an
    AsyncSession must not be shared between concurrent tasks.

    Attributes:
        sessionmaker: Sessionmaker each lookup opens its session from.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self.sessionmaker = sessionmaker

    async def get_user_email(self, user_id: str) -> str | None:
        async with session_scope(self.sessionmaker) as session:
            return await SQLCourseRepository(session).get_user_email(user_id)

    async def list_push_subscriptions(self, user_id: str) -> list[Any]:
        async with session_scope(self.sessionmaker) as session:
            return await SQLCourseRepository(session).list_push_subscriptions(user_id)


def _run_record(run: CourseRun) -> RunRecord:
    return RunRecord(
        id=run.id,
        name=run.name,
        course_id=run.course_id,
        group_id=run.group_id,
        end_date=run.end_date,
    )
