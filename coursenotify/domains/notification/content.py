# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification content per kind.

ContentBuilder maps a resolved context and one recipient to the push and
email content for that recipient. It performs no I/O. Every interpolated
value was resolved beforehand, so no template ever prints a placeholder.
"""

from dataclasses import replace
from typing import Any, Callable

from coursenotify.domains.notification.models import (
    EmailContent,
    NotificationContent,
    NotificationKind,
    PushContent,
    Recipient,
    ResolvedContext,
)
from coursenotify.utils.datetime import format_iso

# Label of the link each notification opens
ACTION_LABELS: dict[NotificationKind, str] = {
    NotificationKind.STUDENT_DEADLINE_REMINDER: "Open Activity",
    NotificationKind.MANAGER_DEADLINE_WARNING: "Open Dashboard",
    NotificationKind.SCORE_PUBLISHED: "View Results",
    NotificationKind.ACTIVITY_POSTED: "Open Activity",
    NotificationKind.REDO_ENABLED: "Open Activity",
    NotificationKind.ADDED_TO_GROUP: "Open Dashboard",
    NotificationKind.NEW_DOCUMENT: "View Document",
    NotificationKind.MISSED_DEADLINE: "Open Activity",
    NotificationKind.POST_DEADLINE_SUMMARY: "View Submissions",
    NotificationKind.COURSE_RUN_FINALIZED: "Open Dashboard",
}


class ContentBuilder:
    """Builds push and email content for one recipient.

    Attributes:
        manager_warning_lead_minutes: Lead time quoted in manager deadline warnings.
        app_url: Platform URL every notification links to, if known.
    """

    def __init__(
        self, manager_warning_lead_minutes: int = 30, app_url: str | None = None
    ) -> None:
        self.manager_warning_lead_minutes = manager_warning_lead_minutes
        self.app_url = app_url
        self._templates: dict[
            NotificationKind, Callable[[ResolvedContext, Recipient], NotificationContent]
        ] = {
            NotificationKind.STUDENT_DEADLINE_REMINDER: self._student_deadline_reminder,
            NotificationKind.MANAGER_DEADLINE_WARNING: self._manager_deadline_warning,
            NotificationKind.SCORE_PUBLISHED: self._score_published,
            NotificationKind.ACTIVITY_POSTED: self._activity_posted,
            NotificationKind.REDO_ENABLED: self._redo_enabled,
            NotificationKind.ADDED_TO_GROUP: self._added_to_group,
            NotificationKind.NEW_DOCUMENT: self._new_document,
            NotificationKind.MISSED_DEADLINE: self._missed_deadline,
            NotificationKind.POST_DEADLINE_SUMMARY: self._post_deadline_summary,
            NotificationKind.COURSE_RUN_FINALIZED: self._course_run_finalized,
        }

    def build(self, context: ResolvedContext, recipient: Recipient) -> NotificationContent:
        """Build the content of one notification for one recipient.

        Args:
            context: Resolved notification context.
            recipient: The recipient being addressed.

        Returns:
            Push and email content with the link it opens.
        """
        content = self._templates[context.kind](context, recipient)
        return replace(
            content, action_url=self.app_url, action_label=ACTION_LABELS[context.kind]
        )

    @staticmethod
    def _data(context: ResolvedContext, **extra: Any) -> dict[str, Any]:
        """Correlating identifiers attached to a push message."""
        data: dict[str, Any] = {"type": context.kind.value}
        data.update({key: value for key, value in extra.items() if value is not None})
        return data

    def _student_deadline_reminder(
        self, ctx: ResolvedContext, recipient: Recipient
    ) -> NotificationContent:
        activity, run, deadline = ctx.activity_title, ctx.run_name, ctx.deadline_display
        return NotificationContent(
            push=PushContent(
                title=f'Deadline Reminder: "{activity}"',
                body=(
                    f'Hi {recipient.greeting_name}, the deadline for "{activity}" in "{run}" '
                    f"is approaching ({deadline}). Make sure to complete it on time!"
                ),
                data=self._data(
                    ctx,
                    courseActivityId=ctx.course_activity_id,
                    runId=ctx.run_id,
                    deadline=format_iso(ctx.deadline),
                ),
            ),
            email=EmailContent(
                subject=f"Deadline Reminder: {activity}",
                heading="Upcoming Deadline",
                subheading=activity,
                body=(
                    f"The deadline for this activity in {run} is {deadline}. "
                    "Please complete it on time."
                ),
            ),
        )

    def _manager_deadline_warning(
        self, ctx: ResolvedContext, recipient: Recipient
    ) -> NotificationContent:
        activity, run, deadline = ctx.activity_title, ctx.run_name, ctx.deadline_display
        lead = self.manager_warning_lead_minutes
        return NotificationContent(
            push=PushContent(
                title=f'Manager Alert: Deadline Approaching for "{activity}"',
                body=(
                    f'Hi {recipient.greeting_name}, the deadline for activity "{activity}" in '
                    f'"{run}" is in {lead} minutes ({deadline}). '
                    "Students may need last-minute support."
                ),
                data=self._data(
                    ctx,
                    courseActivityId=ctx.course_activity_id,
                    runId=ctx.run_id,
                    deadline=format_iso(ctx.deadline),
                ),
            ),
            email=EmailContent(
                subject=f"Manager Alert: {activity}",
                heading="Deadline Warning",
                subheading=activity,
                body=f"The deadline for this activity in {run} is {deadline} (in {lead} minutes).",
            ),
        )

    def _score_published(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        activity, run = ctx.activity_title, ctx.run_name
        return NotificationContent(
            push=PushContent(
                title=f'Scores Published: "{activity}"',
                body=(
                    f'Hi {recipient.greeting_name}, scores for "{activity}" in "{run}" have been '
                    "published. Check your dashboard to view your results!"
                ),
                data=self._data(ctx, courseActivityId=ctx.course_activity_id, runId=ctx.run_id),
            ),
            email=EmailContent(
                subject=f"Scores Published: {activity}",
                heading="Results Available",
                subheading=activity,
                body=(
                    f"Your scores for this activity in {run} have been published. "
                    "Log in to view your results."
                ),
            ),
        )

    def _activity_posted(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        activity, run = ctx.activity_title, ctx.run_name
        return NotificationContent(
            push=PushContent(
                title=f'New Activity Posted: "{activity}"',
                body=(
                    f'Hi {recipient.greeting_name}, a new activity "{activity}" has been posted '
                    f'in "{run}". Check it out!'
                ),
                data=self._data(ctx, courseActivityId=ctx.course_activity_id, runId=ctx.run_id),
            ),
            email=EmailContent(
                subject=f"New Activity: {activity}",
                heading="New Activity Available",
                subheading=activity,
                body=f"A new activity has been posted in {run}.",
            ),
        )

    def _redo_enabled(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        activity, deadline = ctx.activity_title, ctx.deadline_display
        where = ctx.run_name or ctx.course_name
        return NotificationContent(
            push=PushContent(
                title=f'Redo enabled for "{activity}" in "{where}"',
                body=(
                    f'Hi {recipient.greeting_name}, redo for activity "{activity}" is enabled. '
                    f"New deadline: {deadline}."
                ),
                data=self._data(
                    ctx,
                    courseActivityId=ctx.course_activity_id,
                    activityId=ctx.activity_id,
                    runId=ctx.run_id,
                    newDeadline=format_iso(ctx.deadline),
                ),
            ),
            email=EmailContent(
                subject=f"Redo Enabled: {activity}",
                heading="Redo Opportunity",
                subheading=activity,
                body=(
                    f"You have been granted a redo opportunity for this activity in {where}. "
                    f"New deadline: {deadline}."
                ),
            ),
        )

    def _added_to_group(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        group = ctx.group_name
        return NotificationContent(
            push=PushContent(
                title=f"You've been added to group: {group}",
                body=(
                    f'Hi {recipient.greeting_name}, you have been added to group "{group}". '
                    "Check your dashboard for details!"
                ),
                data=self._data(ctx, groupId=ctx.group_id),
            ),
            email=EmailContent(
                subject=f"Added to Group: {group}",
                heading="Group Membership",
                subheading=group,
                body="You have been added to this group.",
            ),
        )

    def _new_document(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        document, course = ctx.document_name, ctx.course_name
        return NotificationContent(
            push=PushContent(
                title=f'New Document: "{document}"',
                body=(
                    f'Hi {recipient.greeting_name}, a new document "{document}" has been added '
                    f'to "{course}".'
                ),
                data=self._data(ctx, runId=ctx.run_id, documentName=document),
            ),
            email=EmailContent(
                subject=f"New Document: {document}",
                heading="New Resource Available",
                subheading=document,
                body=f"A new document has been added to {course}.",
            ),
        )

    def _missed_deadline(self, ctx: ResolvedContext, recipient: Recipient) -> NotificationContent:
        activity, run = ctx.activity_title, ctx.run_name
        return NotificationContent(
            push=PushContent(
                title=f'Missed Deadline: "{activity}"',
                body=(
                    f'Hi {recipient.greeting_name}, you missed the deadline for "{activity}" in '
                    f'"{run}". Please contact your instructor if you need assistance.'
                ),
                data=self._data(
                    ctx,
                    courseActivityId=ctx.course_activity_id,
                    runId=ctx.run_id,
                    deadline=format_iso(ctx.deadline),
                ),
            ),
            email=EmailContent(
                subject=f"Missed Deadline: {activity}",
                heading="Deadline Passed",
                subheading=activity,
                body=(
                    f"The deadline for this activity in {run} has passed. "
                    "You have not submitted your work."
                ),
            ),
        )

    def _post_deadline_summary(
        self, ctx: ResolvedContext, recipient: Recipient
    ) -> NotificationContent:
        activity, run = ctx.activity_title, ctx.run_name
        submitted = ctx.stats.submitted_count if ctx.stats else 0
        not_submitted = ctx.stats.not_submitted_count if ctx.stats else 0
        counts = f"Submitted: {submitted}, Not submitted: {not_submitted}"
        return NotificationContent(
            push=PushContent(
                title=f"Graded activity deadline passed: {activity}",
                body=f'Activity "{activity}" in "{run}" deadline passed. {counts}',
                data=self._data(
                    ctx,
                    courseActivityId=ctx.course_activity_id,
                    runId=ctx.run_id,
                    submitted=submitted,
                    notSubmitted=not_submitted,
                ),
            ),
            email=EmailContent(
                subject=f"Post-Deadline Summary: {activity}",
                heading="Activity Summary",
                subheading=activity,
                body=f"Deadline passed in {run}. {counts}",
            ),
        )

    def _course_run_finalized(
        self, ctx: ResolvedContext, recipient: Recipient
    ) -> NotificationContent:
        run, course = ctx.run_name, ctx.course_name
        if ctx.end_date_display:
            ended = f'reached its end date ({ctx.end_date_display})'
        else:
            ended = "been finalized"
        return NotificationContent(
            push=PushContent(
                title=f"Course run finalized: {run}",
                body=(
                    f'Hi {recipient.greeting_name}, the course run "{run}" of "{course}" has '
                    f"{ended}. Please check the dashboard for details."
                ),
                data=self._data(ctx, runId=ctx.run_id, endDate=format_iso(ctx.end_date)),
            ),
            email=EmailContent(
                subject=f"Course Run Finalized: {run}",
                heading="Course Run Finalized",
                subheading=run,
                body=(
                    f"The course run {run} of {course} has {ended}. "
                    "Please ensure all activities are graded and finalized."
                ),
            ),
        )
