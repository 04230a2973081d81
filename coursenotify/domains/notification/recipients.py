# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recipient set construction.

Student notifications are scoped to the one group bound to the run;
manager notifications to the one course of the activity or run. A user's
other group memberships and other managed courses never contribute.
Sets are ordered by user id and contain each user once.
"""

import logging

from coursenotify.domains.notification.exceptions import MissingUser
from coursenotify.domains.notification.models import (
    NotificationKind,
    Recipient,
    RecipientRole,
    RecipientSet,
    ResolvedContext,
    SubmissionStats,
)
from coursenotify.infrastructure.database.repository import CourseDataStore, UserRecord

logger = logging.getLogger(__name__)

STUDENT_KINDS = frozenset(
    {
        NotificationKind.STUDENT_DEADLINE_REMINDER,
        NotificationKind.SCORE_PUBLISHED,
        NotificationKind.ACTIVITY_POSTED,
    }
)
MANAGER_KINDS = frozenset(
    {
        NotificationKind.MANAGER_DEADLINE_WARNING,
        NotificationKind.COURSE_RUN_FINALIZED,
    }
)
SINGLE_USER_KINDS = frozenset(
    {
        NotificationKind.REDO_ENABLED,
        NotificationKind.ADDED_TO_GROUP,
    }
)


def _to_recipients(users: list[UserRecord], role: RecipientRole) -> dict[str, Recipient]:
    return {u.id: Recipient(id=u.id, name=u.name, email=u.email, role=role) for u in users}


def _ordered(recipients: dict[str, Recipient]) -> tuple[Recipient, ...]:
    return tuple(recipients[user_id] for user_id in sorted(recipients))


class RecipientSetBuilder:
    """Computes who receives a notification.

    Attributes:
        store: Query interface over the platform tables.
    """

    def __init__(self, store: CourseDataStore) -> None:
        self.store = store

    async def build(self, context: ResolvedContext) -> RecipientSet:
        """Build the recipient set for a resolved context.

        Args:
            context: Context returned by the resolver.

        Returns:
            Ordered, duplicate-free recipients, plus submission counts for
            post-deadline summaries.

        Raises:
            MissingUser: If the user of a single-recipient kind no longer exists.
        """
        kind = context.kind

        if kind in STUDENT_KINDS:
            return RecipientSet(_ordered(await self._students(context.group_id)))

        if kind in MANAGER_KINDS:
            return RecipientSet(_ordered(await self._managers(context.course_id)))

        if kind in SINGLE_USER_KINDS:
            return RecipientSet((await self._single_user(context.user_id),))

        if kind == NotificationKind.MISSED_DEADLINE:
            return await self._not_submitted(context)

        if kind == NotificationKind.POST_DEADLINE_SUMMARY:
            return await self._summary(context)

        if kind == NotificationKind.NEW_DOCUMENT:
            return await self._students_and_managers(context)

        raise ValueError(f"Unsupported notification kind: {kind}")

    async def _students(self, group_id: str | None) -> dict[str, Recipient]:
        if not group_id:
            return {}
        users = await self.store.list_group_students(group_id)
        return _to_recipients(users, RecipientRole.STUDENT)

    async def _managers(self, course_id: str | None) -> dict[str, Recipient]:
        if not course_id:
            return {}
        users = await self.store.list_course_managers(course_id)
        return _to_recipients(users, RecipientRole.MANAGER)

    async def _single_user(self, user_id: str | None) -> Recipient:
        user = await self.store.get_user(user_id) if user_id else None
        if user is None:
            raise MissingUser(f"User not found: {user_id}", user_id)
        return Recipient(id=user.id, name=user.name, email=user.email)

    async def _submitted_ids(self, context: ResolvedContext) -> set[str]:
        # One table, chosen by the activity type
        return await self.store.list_submitted_user_ids(
            context.activity_type,
            context.activity_id,
            context.run_id,
        )

    async def _not_submitted(self, context: ResolvedContext) -> RecipientSet:
        students = await self._students(context.group_id)
        if not students:
            logger.info("No students in group %s; nothing to send", context.group_id)
            return RecipientSet()

        submitted = await self._submitted_ids(context)
        remaining = {uid: r for uid, r in students.items() if uid not in submitted}
        logger.debug(
            "Missed deadline for %s: %d of %d students did not submit",
            context.course_activity_id,
            len(remaining),
            len(students),
        )
        return RecipientSet(_ordered(remaining))

    async def _summary(self, context: ResolvedContext) -> RecipientSet:
        students = await self._students(context.group_id)
        if not students:
            logger.info("No students in group %s; no summary to send", context.group_id)
            return RecipientSet(stats=SubmissionStats(submitted_count=0, not_submitted_count=0))

        submitted = await self._submitted_ids(context)
        submitted_count = len(students.keys() & submitted)
        stats = SubmissionStats(
            submitted_count=submitted_count,
            not_submitted_count=len(students) - submitted_count,
        )
        managers = await self._managers(context.course_id)
        return RecipientSet(_ordered(managers), stats=stats)

    async def _students_and_managers(self, context: ResolvedContext) -> RecipientSet:
        recipients = await self._managers(context.course_id)
        # Student role wins for a user who is both
        recipients.update(await self._students(context.group_id))
        return RecipientSet(_ordered(recipients))
