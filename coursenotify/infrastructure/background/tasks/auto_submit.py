# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Auto-submit background tasks for CourseNotify.

Closes open quiz attempts and exam submissions when a deadline passes,
and schedules those closings ahead of time.
"""

import logging
from typing import Any

import dramatiq

from coursenotify.core.config import get_settings
from coursenotify.domains.submission.service import AutoSubmitService
from coursenotify.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from coursenotify.infrastructure.background.tasks.base import run_async, worker_session
from coursenotify.infrastructure.background.tasks.notifications import run_notification_task
from coursenotify.infrastructure.database.repository import SQLCourseRepository
from coursenotify.utils.logging import bind_context, clear_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)

MAX_RETRIES = get_settings().worker.max_retries


@dramatiq.actor(
    queue_name=Queues.AUTO_SUBMIT,
    max_retries=MAX_RETRIES,
    time_limit=120000,  # 2 minutes
    priority=Priority.CRITICAL,
)
def auto_submit_unsubmitted(
    activity_id: str,
    activity_type: str,
    run_id: str,
    deadline: str | None = None,
) -> dict[str, Any]:
    """Close every open attempt of an activity in a run.

    Args:
        activity_id: Activity id.
        activity_type: Activity type (quiz or exam).
        run_id: Course run id.
        deadline: Deadline the closing was scheduled for, for the logs.

    Returns:
        Auto-submit result summary.
    """
    bind_context(
        task="auto_submit_unsubmitted",
        activity_id=activity_id,
        activity_type=activity_type,
        run_id=run_id,
    )
    logger.info(
        "Auto-submitting %s %s in run %s (deadline %s)",
        activity_type,
        activity_id,
        run_id,
        deadline,
    )

    async def _process() -> dict[str, Any]:
        async with worker_session() as session:
            service = AutoSubmitService(SQLCourseRepository(session))
            result = await service.auto_submit_unsubmitted(activity_id, activity_type, run_id)
        return result.to_dict()

    try:
        return run_async(_process())
    finally:
        clear_context()


@dramatiq.actor(
    queue_name=Queues.AUTO_SUBMIT,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.CRITICAL,
)
def auto_submit_student_redo(
    user_id: str,
    activity_id: str,
    activity_type: str,
    run_id: str,
    deadline: str | None = None,
) -> dict[str, Any]:
    """Close one student's open redo attempt."""
    bind_context(
        task="auto_submit_student_redo",
        user_id=user_id,
        activity_id=activity_id,
        activity_type=activity_type,
        run_id=run_id,
    )
    logger.info(
        "Auto-submitting redo of %s %s for user %s (deadline %s)",
        activity_type,
        activity_id,
        user_id,
        deadline,
    )

    async def _process() -> dict[str, Any]:
        async with worker_session() as session:
            service = AutoSubmitService(SQLCourseRepository(session))
            result = await service.auto_submit_student_redo(
                user_id, activity_id, activity_type, run_id
            )
        return result.to_dict()

    try:
        return run_async(_process())
    finally:
        clear_context()


@dramatiq.actor(
    queue_name=Queues.AUTO_SUBMIT,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_auto_submit(
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the deadline auto-submit of a quiz or exam."""
    return run_notification_task(
        "schedule_auto_submit",
        lambda s: s.schedule_auto_submit(course_activity_id, run_id, deadline),
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


@dramatiq.actor(
    queue_name=Queues.AUTO_SUBMIT,
    max_retries=MAX_RETRIES,
    time_limit=60000,  # 1 minute
    priority=Priority.NORMAL,
)
def schedule_auto_submit_student_redo(
    user_id: str,
    course_activity_id: str,
    run_id: str,
    deadline: str,
) -> dict[str, Any] | None:
    """Schedule the auto-submit of one student's redo."""
    return run_notification_task(
        "schedule_auto_submit_student_redo",
        lambda s: s.schedule_auto_submit_student_redo(
            user_id, course_activity_id, run_id, deadline
        ),
        user_id=user_id,
        course_activity_id=course_activity_id,
        run_id=run_id,
    )


def get_auto_submit_actors() -> list:
    """Get all auto-submit actors.

    Returns:
        List of auto-submit actor functions.
    """
    return [
        auto_submit_unsubmitted,
        auto_submit_student_redo,
        schedule_auto_submit,
        schedule_auto_submit_student_redo,
    ]
