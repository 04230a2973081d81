# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for CourseNotify.

This module provides all Dramatiq actors organized by domain:
- Notifications: Deadline reminders, activity and score announcements,
  group and document notices, manager summaries, and their schedulers
- Auto-submit: Closing open quiz attempts and exam submissions

Usage:
    from coursenotify.infrastructure.background.tasks import (
        notify_activity_posted,
        schedule_missed_deadline,
        get_all_actors,
    )

    # Send a task
    notify_activity_posted.send("ca-1", "run-1")

    # Register the deadline fires for an activity
    schedule_missed_deadline.send("ca-1", "run-1", "2025-06-01T10:00:00Z")

Running Workers:
    dramatiq coursenotify.infrastructure.background.tasks --processes 2 --threads 4
"""

from coursenotify.core.config import get_settings
from coursenotify.utils.logging import setup_logging

setup_logging(get_settings())

# Import all actors from submodules
from coursenotify.infrastructure.background.tasks.notifications import (  # noqa: E402
    get_notification_actors,
    notify_activity_posted,
    notify_activity_posted_to_course,
    notify_facilitator_course_run_finalized,
    notify_facilitator_post_deadline_summary,
    notify_missed_deadline,
    notify_new_document_added,
    notify_redo_enabled,
    notify_score_published,
    notify_student_added_to_group,
    schedule_course_run_finalized,
    schedule_manager_deadline_warning,
    schedule_missed_deadline,
    schedule_post_deadline_summary,
    schedule_student_deadline_reminder,
    send_manager_deadline_warning,
    send_student_deadline_reminder,
)
from coursenotify.infrastructure.background.tasks.auto_submit import (  # noqa: E402
    auto_submit_student_redo,
    auto_submit_unsubmitted,
    get_auto_submit_actors,
    schedule_auto_submit,
    schedule_auto_submit_student_redo,
)

# Re-export run_async for convenience
from coursenotify.infrastructure.background.tasks.base import run_async  # noqa: E402

__all__ = [
    # Notifications
    "send_student_deadline_reminder",
    "send_manager_deadline_warning",
    "notify_score_published",
    "notify_activity_posted",
    "notify_activity_posted_to_course",
    "notify_redo_enabled",
    "notify_student_added_to_group",
    "notify_new_document_added",
    "notify_missed_deadline",
    "notify_facilitator_post_deadline_summary",
    "notify_facilitator_course_run_finalized",
    "schedule_student_deadline_reminder",
    "schedule_manager_deadline_warning",
    "schedule_missed_deadline",
    "schedule_post_deadline_summary",
    "schedule_course_run_finalized",
    # Auto-submit
    "auto_submit_unsubmitted",
    "auto_submit_student_redo",
    "schedule_auto_submit",
    "schedule_auto_submit_student_redo",
    # Utilities
    "run_async",
    "get_all_actors",
]


def get_all_actors() -> list:
    """Get list of all defined actors.

    Returns:
        List of all Dramatiq actors from all domains.
    """
    actors = []
    actors.extend(get_notification_actors())
    actors.extend(get_auto_submit_actors())
    return actors
