# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification background tasks for CourseNotify.

One actor per fire operation and per schedule operation. Fire actors
resolve everything from the database when they run. Resolution errors
propagate so the broker records the failure and applies its retry
policy; skipped notifications and empty recipient sets complete normally.
"""

import logging
from typing import Any, Awaitable, Callable

import dramatiq

from coursenotify.core.config import get_settings
from coursenotify.domains.notification.exceptions import ResolutionError
from coursenotify.domains.notification.service import (
    NotificationService,
    create_notification_service,
)
from coursenotify.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from coursenotify.infrastructure.background.scheduler import DramatiqScheduler
from coursenotify.infrastructure.background.tasks.base import (
    get_worker_sessionmaker,
    run_async,
    worker_session,
)
from coursenotify.infrastructure.database.repository import (
    RecipientDirectory,
    SQLCourseRepository,
)
from coursenotify.utils.logging import bind_context, clear_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)

MAX_RETRIES = get_settings().worker.max_retries

ServiceOperation = Callable[[NotificationService], Awaitable[Any]]


def run_notification_task(task: str, operation: ServiceOperation, **log_context: Any) -> Any:
    """Run one service operation inside a worker session.

    Args:
        task: Task name bound to every log line.
        operation: Coroutine function receiving the wired service.
        **log_context: Identifiers bound to every log line.

    Returns:
        The operation's result converted to plain data.

    Raises:
        ResolutionError: If the notification cannot be resolved.
    """
    bind_context(task=task, **log_context)

    async def _process() -> Any:
        async with worker_session() as session:
            service = create_notification_service(
                SQLCourseRepository(session),
                get_settings(),
                RecipientDirectory(get_worker_sessionmaker()),
                scheduler=DramatiqScheduler(),
            )
            return await operation(service)

    try:
        result = run_async(_process())
    except ResolutionError as e:
        logger.error("%s failed to resolve: %s", task, e)
        raise
    finally:
        clear_context()

    return _to_plain(result)


def _to_plain(result: Any) -> Any:
    if result is None:
        return None
    if isinstance(result, list):
        return [_to_plain(item) for item in result]
    if hasattr(result, "to_dict"):
        return result.to_dict()
    return {
        "task": result.task,
        "fire_at": result.fire_at.isoformat(),
        "tags": list(result.tags),
        "message_id": result.message_id,
    }


# =============================================================================
# Fire operations
# =============================================================================


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.HIGH,
)
def send_student_deadline_reminder(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any]:
    """Remind the run's students of an upcoming deadline.

    Args:
        course_activity_id: Course-activity id.
        run_id: Course run id.
        deadline: Deadline as ISO 8601.

    Returns:
        Dispatch report summary.
    """
    return run_notification_task(
        "send_student_deadline_reminder",
        lambda s: s.send_student_deadline_reminder(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.HIGH,
)
def send_manager_deadline_warning(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any]:
    """Warn the course managers shortly before a deadline."""
    return run_notification_task(
        "send_manager_deadline_warning",
        lambda s: s.send_manager_deadline_warning(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def notify_score_published(course_activity_id: str, run_id: str) -> dict[str, Any]:
    """Tell the run's students that scores are available."""
    return run_notification_task(
        "notify_score_published",
        lambda s: s.notify_score_published(course_activity_id, run_id),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def notify_activity_posted(course_activity_id: str, run_id: str) -> dict[str, Any]:
    """Tell the run's students about a new activity."""
    return run_notification_task(
        "notify_activity_posted",
        lambda s: s.notify_activity_posted(course_activity_id, run_id),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=900000,  # 15 minutes
    priority=Priority.NORMAL,
)
def notify_activity_posted_to_course(course_activity_id: str) -> list[dict[str, Any]]:
    """Announce a new activity in every run of its course."""
    return run_notification_task(
        "notify_activity_posted_to_course",
        lambda s: s.notify_activity_posted_to_course(course_activity_id),
        course_activity_id=course_activity_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.HIGH,
)
def notify_redo_enabled(
    user_id: str,
    course_activity_id: str,
    new_deadline: str,
    run_id: str | None = None,
) -> dict[str, Any]:
    """Tell one student a redo was granted."""
    return run_notification_task(
        "notify_redo_enabled",
        lambda s: s.notify_redo_enabled(user_id, course_activity_id, new_deadline, run_id),
        user_id=user_id,
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def notify_student_added_to_group(user_id: str, group_id: str) -> dict[str, Any]:
    """Tell one student they joined a group."""
    return run_notification_task(
        "notify_student_added_to_group",
        lambda s: s.notify_student_added_to_group(user_id, group_id),
        user_id=user_id,
        group_id=group_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def notify_new_document_added(run_id: str, document_name: str) -> dict[str, Any]:
    """Tell the run's students and the course managers about a new document."""
    return run_notification_task(
        "notify_new_document_added",
        lambda s: s.notify_new_document_added(run_id, document_name),
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.HIGH,
)
def notify_missed_deadline(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any]:
    """Tell the run's students who did not submit that the deadline passed."""
    return run_notification_task(
        "notify_missed_deadline",
        lambda s: s.notify_missed_deadline(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def notify_facilitator_post_deadline_summary(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any]:
    """Send the course managers submission counts after a deadline."""
    return run_notification_task(
        "notify_facilitator_post_deadline_summary",
        lambda s: s.notify_facilitator_post_deadline_summary(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=300000,  # 5 minutes
    priority=Priority.NORMAL,
)
def notify_facilitator_course_run_finalized(run_id: str) -> dict[str, Any]:
    """Tell the course managers a run has ended."""
    return run_notification_task(
        "notify_facilitator_course_run_finalized",
        lambda s: s.notify_facilitator_course_run_finalized(run_id),
        run_id=run_id,
    )


# =============================================================================
# Schedule operations
# =============================================================================


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_student_deadline_reminder(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the student reminder ahead of a deadline."""
    return run_notification_task(
        "schedule_student_deadline_reminder",
        lambda s: s.schedule_student_deadline_reminder(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_manager_deadline_warning(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the manager warning ahead of a deadline."""
    return run_notification_task(
        "schedule_manager_deadline_warning",
        lambda s: s.schedule_manager_deadline_warning(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_missed_deadline(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the missed-deadline notice at the deadline."""
    return run_notification_task(
        "schedule_missed_deadline",
        lambda s: s.schedule_missed_deadline(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_post_deadline_summary(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the manager summary at the deadline."""
    return run_notification_task(
        "schedule_post_deadline_summary",
        lambda s: s.schedule_post_deadline_summary(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.NOTIFICATIONS,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_course_run_finalized(run_id: str) -> dict[str, Any] | None:
    """Schedule the finalization notice at the run's end date."""
    return run_notification_task(
        "schedule_course_run_finalized",
        lambda s: s.schedule_course_run_finalized(run_id),
        run_id=run_id,
    )


def get_notification_actors() -> list:
    """Get all notification actors.

    Returns:
        List of notification actor functions.
    """
    return [
        send_student_deadline_reminder,
        send_manager_deadline_warning,
        notify_score_published,
        notify_activity_posted,
        notify_activity_posted_to_course,
        notify_redo_enabled,
        notify_student_added_to_group,
        notify_new_document_added,
        notify_missed_deadline,
        notify_facilitator_post_deadline_summary,
        notify_facilitator_course_run_finalized,
        schedule_student_deadline_reminder,
        schedule_manager_deadline_warning,
        schedule_missed_deadline,
        schedule_post_deadline_summary,
        schedule_course_run_finalized,
    ]
