# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Context resolution for notifications.

ContextResolver turns the identifiers of a trigger into the facts a
notification needs: activity title and type, run and group, course,
user. Every lookup is read-only and happens at fire time, so a
notification never relies on data captured when it was scheduled.

Failures raise a ResolutionError subclass and abort the notification
before recipients are computed. Kinds that only apply to graded
activities raise NotificationSkipped for any other activity type.
"""

import logging
from datetime import datetime
from typing import Any

from coursenotify.domains.notification.exceptions import (
    MissingActivity,
    MissingCourse,
    MissingGroup,
    MissingRun,
    MissingRunName,
    MissingUser,
    NotificationSkipped,
)
from coursenotify.domains.notification.models import (
    GRADED_ONLY_KINDS,
    ActivityCourseTrigger,
    ActivityPayload,
    ActivityRunTrigger,
    DeadlineTrigger,
    DocumentTrigger,
    GroupMembershipTrigger,
    NotificationKind,
    RedoTrigger,
    ResolvedContext,
    RunTrigger,
    is_graded,
)
from coursenotify.infrastructure.database.repository import (
    ActivityRecord,
    CourseDataStore,
    CourseRecord,
    RunRecord,
    UserRecord,
)
from coursenotify.utils.datetime import to_display_string

logger = logging.getLogger(__name__)

# Trigger model each kind is resolved from
TRIGGER_MODELS: dict[NotificationKind, type] = {
    NotificationKind.STUDENT_DEADLINE_REMINDER: DeadlineTrigger,
    NotificationKind.MANAGER_DEADLINE_WARNING: DeadlineTrigger,
    NotificationKind.MISSED_DEADLINE: DeadlineTrigger,
    NotificationKind.POST_DEADLINE_SUMMARY: DeadlineTrigger,
    NotificationKind.SCORE_PUBLISHED: ActivityRunTrigger,
    NotificationKind.ACTIVITY_POSTED: ActivityRunTrigger,
    NotificationKind.REDO_ENABLED: RedoTrigger,
    NotificationKind.ADDED_TO_GROUP: GroupMembershipTrigger,
    NotificationKind.NEW_DOCUMENT: DocumentTrigger,
    NotificationKind.COURSE_RUN_FINALIZED: RunTrigger,
}


class ContextResolver:
    """Resolves trigger identifiers into a ResolvedContext.

    Attributes:
        store: Query interface over the platform tables.
        display_timezone: IANA timezone deadlines are rendered in.
    """

    def __init__(self, store: CourseDataStore, display_timezone: str = "Asia/Kolkata") -> None:
        self.store = store
        self.display_timezone = display_timezone

    async def resolve(self, kind: NotificationKind, trigger: Any) -> ResolvedContext:
        """Resolve the context of one notification.

        Args:
            kind: Notification kind.
            trigger: Trigger model for the kind, or a mapping to validate into one.

        Returns:
            Context carrying every field the kind's content needs.

        Raises:
            ResolutionError: If an identifier cannot be resolved.
            NotificationSkipped: If the notification does not apply.
            pydantic.ValidationError: If a mapping trigger is invalid.
        """
        model = TRIGGER_MODELS[kind]
        if not isinstance(trigger, model):
            trigger = model.model_validate(trigger)

        if isinstance(trigger, DeadlineTrigger):
            return await self._resolve_deadline(kind, trigger)
        if isinstance(trigger, ActivityRunTrigger):
            return await self._resolve_activity_in_run(kind, trigger)
        if isinstance(trigger, RedoTrigger):
            return await self._resolve_redo(trigger)
        if isinstance(trigger, GroupMembershipTrigger):
            return await self._resolve_group_membership(trigger)
        if isinstance(trigger, DocumentTrigger):
            return await self._resolve_document(trigger)
        return await self._resolve_run_finalized(trigger)

    async def resolve_activity(self, course_activity_id: str) -> ActivityRecord:
        """Look up an activity through its course-activity id.

        Raises:
            MissingActivity: If the course-activity id has no activity.
        """
        record = await self.store.get_course_activity(course_activity_id)
        if record is None:
            raise MissingActivity(
                f"Activity not found for course activity {course_activity_id}",
                course_activity_id,
            )
        return record

    async def resolve_course_runs(self, trigger: ActivityCourseTrigger) -> list[RunRecord]:
        """List the runs of the course an activity belongs to.

        Raises:
            MissingActivity: If the course-activity id has no activity.
            MissingCourse: If the activity's course does not exist.
        """
        activity = await self.resolve_activity(trigger.course_activity_id)
        await self._require_course(activity.course_id)
        return await self.store.list_course_runs(activity.course_id)

    def display(self, instant: datetime | None) -> str | None:
        """Render an instant in the display timezone."""
        if instant is None:
            return None
        return to_display_string(instant, self.display_timezone)

    # ------------------------------------------------------------------
    # Per-trigger resolution
    # ------------------------------------------------------------------

    async def _resolve_deadline(
        self, kind: NotificationKind, trigger: DeadlineTrigger
    ) -> ResolvedContext:
        activity = await self.resolve_activity(trigger.course_activity_id)
        self._check_graded(kind, activity)
        title = ActivityPayload.parse(activity.payload, activity.course_activity_id).title
        run = await self._require_run(trigger.run_id)
        course = await self._require_course(activity.course_id)

        return ResolvedContext(
            kind=kind,
            course_activity_id=activity.course_activity_id,
            activity_id=activity.activity_id,
            activity_type=activity.activity_type,
            activity_title=title,
            course_id=course.id,
            course_name=course.name,
            run_id=run.id,
            run_name=run.name,
            group_id=run.group_id,
            deadline=trigger.deadline,
            deadline_display=self.display(trigger.deadline),
        )

    async def _resolve_activity_in_run(
        self, kind: NotificationKind, trigger: ActivityRunTrigger
    ) -> ResolvedContext:
        activity = await self.resolve_activity(trigger.course_activity_id)
        title = ActivityPayload.parse(activity.payload, activity.course_activity_id).title
        run = await self._require_run(trigger.run_id)
        course = await self._require_course(activity.course_id)

        return ResolvedContext(
            kind=kind,
            course_activity_id=activity.course_activity_id,
            activity_id=activity.activity_id,
            activity_type=activity.activity_type,
            activity_title=title,
            course_id=course.id,
            course_name=course.name,
            run_id=run.id,
            run_name=run.name,
            group_id=run.group_id,
        )

    async def _resolve_redo(self, trigger: RedoTrigger) -> ResolvedContext:
        activity = await self.resolve_activity(trigger.course_activity_id)
        title = ActivityPayload.parse(activity.payload, activity.course_activity_id).title
        user = await self._require_user(trigger.user_id)
        course = await self._require_course(activity.course_id, need_name=False)

        run_id = None
        run_name = None
        group_id = None
        if trigger.run_id is not None:
            run = await self.store.get_course_run(trigger.run_id)
            if run is None:
                raise MissingRun(f"Course run not found: {trigger.run_id}", trigger.run_id)
            run_id, run_name, group_id = run.id, run.name, run.group_id

        # Redo text names the run, or the course when the run has no name
        if not run_name and not course.name:
            raise MissingCourse(f"Course has no name: {course.id}", course.id)

        return ResolvedContext(
            kind=NotificationKind.REDO_ENABLED,
            course_activity_id=activity.course_activity_id,
            activity_id=activity.activity_id,
            activity_type=activity.activity_type,
            activity_title=title,
            course_id=course.id,
            course_name=course.name,
            run_id=run_id,
            run_name=run_name,
            group_id=group_id,
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            deadline=trigger.new_deadline,
            deadline_display=self.display(trigger.new_deadline),
        )

    async def _resolve_group_membership(self, trigger: GroupMembershipTrigger) -> ResolvedContext:
        user = await self._require_user(trigger.user_id)
        group = await self.store.get_group(trigger.group_id)
        if group is None or not group.name:
            raise MissingGroup(f"Group not found: {trigger.group_id}", trigger.group_id)

        return ResolvedContext(
            kind=NotificationKind.ADDED_TO_GROUP,
            group_id=group.id,
            group_name=group.name,
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
        )

    async def _resolve_document(self, trigger: DocumentTrigger) -> ResolvedContext:
        run = await self._require_run(trigger.run_id)
        course = await self._require_course(run.course_id)

        return ResolvedContext(
            kind=NotificationKind.NEW_DOCUMENT,
            course_id=course.id,
            course_name=course.name,
            run_id=run.id,
            run_name=run.name,
            group_id=run.group_id,
            document_name=trigger.document_name,
        )

    async def _resolve_run_finalized(self, trigger: RunTrigger) -> ResolvedContext:
        run = await self.store.get_course_run(trigger.run_id)
        if run is None:
            raise MissingRun(f"Course run not found: {trigger.run_id}", trigger.run_id)
        if not run.name:
            raise MissingRunName(f"Course run has no name: {run.id}", run.id)
        course = await self._require_course(run.course_id)

        return ResolvedContext(
            kind=NotificationKind.COURSE_RUN_FINALIZED,
            course_id=course.id,
            course_name=course.name,
            run_id=run.id,
            run_name=run.name,
            group_id=run.group_id,
            end_date=run.end_date,
            end_date_display=self.display(run.end_date),
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _check_graded(self, kind: NotificationKind, activity: ActivityRecord) -> None:
        if kind in GRADED_ONLY_KINDS and not is_graded(activity.activity_type):
            raise NotificationSkipped(
                f"{kind.value} does not apply to activity type {activity.activity_type!r}"
            )

    async def _require_run(self, run_id: str) -> RunRecord:
        """Look up a run bound to a group and carrying a name."""
        run = await self.store.get_course_run(run_id)
        if run is None:
            raise MissingRun(f"Course run not found: {run_id}", run_id)
        if not run.group_id:
            raise MissingGroup(f"Course run has no group: {run_id}", run_id)
        if not run.name:
            raise MissingRunName(f"Course run has no name: {run_id}", run_id)
        return run

    async def _require_course(self, course_id: str, need_name: bool = True) -> CourseRecord:
        course = await self.store.get_course(course_id)
        if course is None or (need_name and not course.name):
            raise MissingCourse(f"Course not found: {course_id}", course_id)
        return course

    async def _require_user(self, user_id: str) -> UserRecord:
        user = await self.store.get_user(user_id)
        if user is None:
            raise MissingUser(f"User not found: {user_id}", user_id)
        return user
