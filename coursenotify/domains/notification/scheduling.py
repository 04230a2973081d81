# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduling contract between schedule operations and the task queue.

A schedule operation validates the activity and registers one future
task; the task re-resolves everything when it fires.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class TaskNames:
    """Names of the tasks schedule operations register."""

    SEND_STUDENT_DEADLINE_REMINDER = "send_student_deadline_reminder"
    SEND_MANAGER_DEADLINE_WARNING = "send_manager_deadline_warning"
    NOTIFY_MISSED_DEADLINE = "notify_missed_deadline"
    NOTIFY_POST_DEADLINE_SUMMARY = "notify_facilitator_post_deadline_summary"
    NOTIFY_COURSE_RUN_FINALIZED = "notify_facilitator_course_run_finalized"
    AUTO_SUBMIT_UNSUBMITTED = "auto_submit_unsubmitted"
    AUTO_SUBMIT_STUDENT_REDO = "auto_submit_student_redo"


@dataclass(frozen=True)
class ScheduledFire:
    """A task registered to run at a future time.

    Attributes:
        task: Task name.
        fire_at: Requested run time in UTC.
        payload: Keyword arguments the task receives.
        tags: Correlation tags.
        message_id: Queue message id, when the scheduler reports one.
    """

    task: str
    fire_at: datetime
    payload: dict[str, Any]
    tags: tuple[str, ...] = ()
    message_id: str | None = None


def correlation_tags(
    run_id: str,
    course_activity_id: str | None = None,
    user_id: str | None = None,
    *extra: str,
) -> tuple[str, ...]:
    """Tags operators use to find or cancel scheduled tasks."""
    tags = [f"run_{run_id}"]
    if course_activity_id is not None:
        tags.append(f"activity_{course_activity_id}")
    if user_id is not None:
        tags.append(f"user_{user_id}")
    tags.extend(extra)
    return tuple(tags)


class TaskScheduler(ABC):
    """Registers a task to run at a given time."""

    @abstractmethod
    async def schedule_at(
        self,
        when: datetime,
        task: str,
        payload: dict[str, Any],
        tags: tuple[str, ...] = (),
    ) -> ScheduledFire:
        """Schedule a task.

        Registering may do network I/O against the queue backend, so
        implementations must not block the event loop.

        Args:
            when: Time to run at; past times run as soon as possible.
            task: Task name.
            payload: Keyword arguments for the task.
            tags: Correlation tags.

        Returns:
            The registered fire.
        """
        ...
