# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service: schedule and fire operations.

Every fire operation runs the same pipeline:

    resolve context -> build recipients -> build content x dispatch

Resolution errors propagate to the caller. A skipped notification or an
empty recipient set completes with an empty report.

Schedule operations check the activity against current data and register
the matching fire operation with the task scheduler at its offset from
the deadline.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable

from coursenotify.domains.notification.content import ContentBuilder
from coursenotify.domains.notification.context import ContextResolver
from coursenotify.domains.notification.dispatcher import FanOutDispatcher
from coursenotify.domains.notification.exceptions import (
    MissingRun,
    NotificationSkipped,
    ResolutionError,
)
from coursenotify.domains.notification.models import (
    AUTO_SUBMIT_ACTIVITY_TYPES,
    ActivityCourseTrigger,
    ActivityRunTrigger,
    DeadlineTrigger,
    DispatchReport,
    DocumentTrigger,
    GroupMembershipTrigger,
    NotificationKind,
    RedoTrigger,
    RunTrigger,
    StudentDeadlineTrigger,
    is_graded,
)
from coursenotify.domains.notification.recipients import RecipientSetBuilder
from coursenotify.domains.notification.scheduling import (
    ScheduledFire,
    TaskNames,
    TaskScheduler,
    correlation_tags,
)
from coursenotify.infrastructure.database.repository import CourseDataStore
from coursenotify.utils.datetime import ensure_utc, format_iso, utc_now

if TYPE_CHECKING:
    from coursenotify.core.config.settings import Settings
    from coursenotify.infrastructure.notifications.channels.base import (
        BaseChannel,
        ContactDirectory,
    )

logger = logging.getLogger(__name__)


class NotificationService:
    """Resolves, addresses and delivers notifications.

    Attributes:
        store: Query interface over the platform tables.
        dispatcher: Fan-out dispatcher with injected delivery channels.
        scheduler: Task scheduler used by schedule operations.
        content: Content builder.
        resolver: Context resolver.
        recipients: Recipient set builder.
    """

    def __init__(
        self,
        store: CourseDataStore,
        dispatcher: FanOutDispatcher,
        scheduler: TaskScheduler | None = None,
        content: ContentBuilder | None = None,
        display_timezone: str = "Asia/Kolkata",
        student_reminder_lead: timedelta = timedelta(hours=2),
        manager_warning_lead: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.content = content or ContentBuilder(
            manager_warning_lead_minutes=int(manager_warning_lead.total_seconds() // 60)
        )
        self.resolver = ContextResolver(store, display_timezone)
        self.recipients = RecipientSetBuilder(store)
        self.student_reminder_lead = student_reminder_lead
        self.manager_warning_lead = manager_warning_lead
        self.clock = clock

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def notify(self, kind: NotificationKind, trigger: Any) -> DispatchReport:
        """Run resolve, recipients and dispatch for one notification.

        Args:
            kind: Notification kind.
            trigger: Trigger model (or mapping) for the kind.

        Returns:
            Dispatch report; empty when skipped or nobody is entitled.

        Raises:
            ResolutionError: If the trigger cannot be resolved.
        """
        try:
            context = await self.resolver.resolve(kind, trigger)
        except NotificationSkipped as e:
            logger.info("Skipping %s: %s", kind.value, e.reason)
            return DispatchReport(kind=kind, skipped_reason=e.reason)

        recipient_set = await self.recipients.build(context)
        if recipient_set.stats is not None:
            context = replace(context, stats=recipient_set.stats)

        if not recipient_set:
            logger.info("No recipients for %s (%s)", kind.value, context.log_fields())

        return await self.dispatcher.dispatch(
            kind,
            recipient_set.recipients,
            lambda recipient: self.content.build(context, recipient),
            stats=recipient_set.stats,
        )

    # ------------------------------------------------------------------
    # Fire operations
    # ------------------------------------------------------------------

    async def send_student_deadline_reminder(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> DispatchReport:
        """Remind the run's students of an upcoming deadline."""
        return await self.notify(
            NotificationKind.STUDENT_DEADLINE_REMINDER,
            DeadlineTrigger(
                course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
            ),
        )

    async def send_manager_deadline_warning(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> DispatchReport:
        """Warn the course managers shortly before a deadline."""
        return await self.notify(
            NotificationKind.MANAGER_DEADLINE_WARNING,
            DeadlineTrigger(
                course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
            ),
        )

    async def notify_score_published(self, course_activity_id: str, run_id: str) -> DispatchReport:
        """Tell the run's students that scores are available."""
        return await self.notify(
            NotificationKind.SCORE_PUBLISHED,
            ActivityRunTrigger(course_activity_id=course_activity_id, run_id=run_id),
        )

    async def notify_activity_posted(self, course_activity_id: str, run_id: str) -> DispatchReport:
        """Tell the run's students about a new activity."""
        return await self.notify(
            NotificationKind.ACTIVITY_POSTED,
            ActivityRunTrigger(course_activity_id=course_activity_id, run_id=run_id),
        )

    async def notify_activity_posted_to_course(
        self, course_activity_id: str
    ) -> list[DispatchReport]:
        """Announce a new activity in every run of its course.

        Each run is a separate fan-out to that run's group. A run that
        cannot be resolved is reported as skipped and does not stop the
        other runs.

        Raises:
            MissingActivity: If the activity does not exist.
            MissingCourse: If its course does not exist.
        """
        runs = await self.resolver.resolve_course_runs(
            ActivityCourseTrigger(course_activity_id=course_activity_id)
        )
        reports: list[DispatchReport] = []
        for run in runs:
            try:
                report = await self.notify_activity_posted(course_activity_id, run.id)
            except ResolutionError as e:
                logger.error(
                    "Activity %s not announced in run %s: %s", course_activity_id, run.id, e
                )
                report = DispatchReport(
                    kind=NotificationKind.ACTIVITY_POSTED,
                    skipped_reason=f"{type(e).__name__}: {e}",
                )
            reports.append(report)
        return reports

    async def notify_redo_enabled(
        self,
        user_id: str,
        course_activity_id: str,
        new_deadline: datetime | str,
        run_id: str | None = None,
    ) -> DispatchReport:
        """Tell one student a redo was granted."""
        return await self.notify(
            NotificationKind.REDO_ENABLED,
            RedoTrigger(
                user_id=user_id,
                course_activity_id=course_activity_id,
                new_deadline=new_deadline,
                run_id=run_id,
            ),
        )

    async def notify_student_added_to_group(self, user_id: str, group_id: str) -> DispatchReport:
        """Tell one student they joined a group."""
        return await self.notify(
            NotificationKind.ADDED_TO_GROUP,
            GroupMembershipTrigger(user_id=user_id, group_id=group_id),
        )

    async def notify_new_document_added(self, run_id: str, document_name: str) -> DispatchReport:
        """Tell the run's students and the course managers about a new document."""
        return await self.notify(
            NotificationKind.NEW_DOCUMENT,
            DocumentTrigger(run_id=run_id, document_name=document_name),
        )

    async def notify_missed_deadline(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> DispatchReport:
        """Tell the run's students who did not submit that the deadline passed."""
        return await self.notify(
            NotificationKind.MISSED_DEADLINE,
            DeadlineTrigger(
                course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
            ),
        )

    async def notify_facilitator_post_deadline_summary(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> DispatchReport:
        """Send the course managers submission counts after a deadline."""
        return await self.notify(
            NotificationKind.POST_DEADLINE_SUMMARY,
            DeadlineTrigger(
                course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
            ),
        )

    async def notify_facilitator_course_run_finalized(self, run_id: str) -> DispatchReport:
        """Tell the course managers a run has ended."""
        return await self.notify(
            NotificationKind.COURSE_RUN_FINALIZED,
            RunTrigger(run_id=run_id),
        )

    # ------------------------------------------------------------------
    # Schedule operations
    # ------------------------------------------------------------------

    async def schedule_student_deadline_reminder(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> ScheduledFire | None:
        """Schedule the student reminder ahead of a deadline."""
        return await self._schedule_deadline_task(
            TaskNames.SEND_STUDENT_DEADLINE_REMINDER,
            course_activity_id,
            run_id,
            deadline,
            lead=self.student_reminder_lead,
        )

    async def schedule_manager_deadline_warning(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> ScheduledFire | None:
        """Schedule the manager warning ahead of a deadline."""
        return await self._schedule_deadline_task(
            TaskNames.SEND_MANAGER_DEADLINE_WARNING,
            course_activity_id,
            run_id,
            deadline,
            lead=self.manager_warning_lead,
        )

    async def schedule_missed_deadline(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> ScheduledFire | None:
        """Schedule the missed-deadline notice at the deadline."""
        return await self._schedule_deadline_task(
            TaskNames.NOTIFY_MISSED_DEADLINE, course_activity_id, run_id, deadline
        )

    async def schedule_post_deadline_summary(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> ScheduledFire | None:
        """Schedule the manager summary at the deadline."""
        return await self._schedule_deadline_task(
            TaskNames.NOTIFY_POST_DEADLINE_SUMMARY, course_activity_id, run_id, deadline
        )

    async def schedule_course_run_finalized(self, run_id: str) -> ScheduledFire | None:
        """Schedule the finalization notice at the run's end date.

        Returns:
            The registered fire, or None when the run has no end date.

        Raises:
            MissingRun: If the run does not exist.
        """
        run = await self.store.get_course_run(run_id)
        if run is None:
            raise MissingRun(f"Course run not found: {run_id}", run_id)
        if run.end_date is None:
            logger.info("Course run %s has no end date; finalization not scheduled", run_id)
            return None

        return await self._schedule(
            ensure_utc(run.end_date),
            TaskNames.NOTIFY_COURSE_RUN_FINALIZED,
            {"run_id": run.id},
            correlation_tags(run.id),
        )

    async def schedule_auto_submit(
        self, course_activity_id: str, run_id: str, deadline: datetime | str
    ) -> ScheduledFire | None:
        """Schedule closing of open quiz attempts or exam submissions at the deadline."""
        trigger = DeadlineTrigger(
            course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
        )
        activity = await self.resolver.resolve_activity(trigger.course_activity_id)
        if activity.activity_type not in AUTO_SUBMIT_ACTIVITY_TYPES:
            logger.info(
                "Skipping auto-submit scheduling for activity type %s (course activity %s)",
                activity.activity_type,
                course_activity_id,
            )
            return None

        return await self._schedule(
            trigger.deadline,
            TaskNames.AUTO_SUBMIT_UNSUBMITTED,
            {
                "activity_id": activity.activity_id,
                "activity_type": activity.activity_type,
                "run_id": trigger.run_id,
                "deadline": format_iso(trigger.deadline),
            },
            correlation_tags(trigger.run_id, trigger.course_activity_id, None, "auto_submit"),
        )

    async def schedule_auto_submit_student_redo(
        self,
        user_id: str,
        course_activity_id: str,
        run_id: str,
        deadline: datetime | str,
    ) -> ScheduledFire | None:
        """Schedule closing of one student's redo attempt at its deadline."""
        trigger = StudentDeadlineTrigger(
            user_id=user_id,
            course_activity_id=course_activity_id,
            run_id=run_id,
            deadline=deadline,
        )
        activity = await self.resolver.resolve_activity(trigger.course_activity_id)
        if activity.activity_type not in AUTO_SUBMIT_ACTIVITY_TYPES:
            logger.info(
                "Skipping student auto-submit scheduling for activity type %s "
                "(course activity %s, user %s)",
                activity.activity_type,
                course_activity_id,
                user_id,
            )
            return None

        return await self._schedule(
            trigger.deadline,
            TaskNames.AUTO_SUBMIT_STUDENT_REDO,
            {
                "user_id": trigger.user_id,
                "activity_id": activity.activity_id,
                "activity_type": activity.activity_type,
                "run_id": trigger.run_id,
                "deadline": format_iso(trigger.deadline),
            },
            correlation_tags(
                trigger.run_id, trigger.course_activity_id, trigger.user_id, "auto_submit_redo"
            ),
        )

    async def _schedule_deadline_task(
        self,
        task: str,
        course_activity_id: str,
        run_id: str,
        deadline: datetime | str,
        lead: timedelta = timedelta(0),
    ) -> ScheduledFire | None:
        trigger = DeadlineTrigger(
            course_activity_id=course_activity_id, run_id=run_id, deadline=deadline
        )
        activity = await self.resolver.resolve_activity(trigger.course_activity_id)
        if not is_graded(activity.activity_type):
            logger.info(
                "Not scheduling %s for activity type %s (course activity %s)",
                task,
                activity.activity_type,
                course_activity_id,
            )
            return None

        return await self._schedule(
            trigger.deadline - lead,
            task,
            {
                "course_activity_id": trigger.course_activity_id,
                "run_id": trigger.run_id,
                "deadline": format_iso(trigger.deadline),
            },
            correlation_tags(trigger.run_id, trigger.course_activity_id),
        )

    async def _schedule(
        self,
        when: datetime,
        task: str,
        payload: dict[str, Any],
        tags: tuple[str, ...],
    ) -> ScheduledFire:
        if self.scheduler is None:
            raise RuntimeError("No task scheduler configured")

        now = self.clock()
        if when < now:
            logger.warning("%s fire time %s is in the past; running now", task, when.isoformat())
            when = now

        fire = await self.scheduler.schedule_at(when, task, payload, tags)
        logger.info("Scheduled %s at %s (tags=%s)", task, when.isoformat(), ",".join(tags))
        return fire


def create_notification_service(
    store: CourseDataStore,
    settings: "Settings",
    directory: "ContactDirectory",
    scheduler: TaskScheduler | None = None,
    push_gateway: "BaseChannel | None" = None,
    email_gateway: "BaseChannel | None" = None,
) -> NotificationService:
    """Wire a NotificationService from settings.

    Args:
        store: Query interface bound to the task's session.
        settings: Application settings.
        directory: Session-per-call contact lookups for the channels.
        scheduler: Task scheduler for schedule operations.
        push_gateway: Push channel override.
        email_gateway: Email channel override.

    Returns:
        Configured NotificationService.
    """
    from coursenotify.infrastructure.notifications.channels import EmailChannel, PushChannel

    notifications = settings.notifications
    dispatcher = FanOutDispatcher(
        push_gateway=push_gateway or PushChannel(settings.push, directory),
        email_gateway=email_gateway or EmailChannel(settings.smtp, notifications, directory),
    )
    return NotificationService(
        store=store,
        dispatcher=dispatcher,
        scheduler=scheduler,
        content=ContentBuilder(
            manager_warning_lead_minutes=notifications.manager_warning_lead_minutes,
            app_url=notifications.app_url,
        ),
        display_timezone=notifications.display_timezone,
        student_reminder_lead=timedelta(minutes=notifications.student_reminder_lead_minutes),
        manager_warning_lead=timedelta(minutes=notifications.manager_warning_lead_minutes),
    )
