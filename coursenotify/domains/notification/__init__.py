# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recipient resolution and fan-out of course notifications.

Key Components:
- ContextResolver: identifiers -> resolved facts
- RecipientSetBuilder: resolved facts -> exactly the entitled users
- ContentBuilder: (facts, recipient) -> push and email content
- FanOutDispatcher: concurrent delivery with per-recipient failure isolation
- NotificationService: schedule and fire operations over the pipeline

Usage:
    from coursenotify.domains.notification import create_notification_service

    service = create_notification_service(repository, settings, directory)
    report = await service.notify_missed_deadline("ca-2", "run-3", deadline)
"""

from coursenotify.domains.notification.content import ContentBuilder
from coursenotify.domains.notification.context import ContextResolver
from coursenotify.domains.notification.dispatcher import FanOutDispatcher
from coursenotify.domains.notification.exceptions import (
    MalformedPayload,
    MissingActivity,
    MissingCourse,
    MissingGroup,
    MissingRun,
    MissingRunName,
    MissingTitle,
    MissingUser,
    NotificationError,
    NotificationSkipped,
    ResolutionError,
)
from coursenotify.domains.notification.models import (
    ActivityPayload,
    ActivityType,
    DispatchReport,
    EmailContent,
    NotificationContent,
    NotificationKind,
    PushContent,
    Recipient,
    RecipientOutcome,
    RecipientRole,
    RecipientSet,
    ResolvedContext,
    SubmissionStats,
)
from coursenotify.domains.notification.recipients import RecipientSetBuilder
from coursenotify.domains.notification.scheduling import (
    ScheduledFire,
    TaskNames,
    TaskScheduler,
    correlation_tags,
)
from coursenotify.domains.notification.service import (
    NotificationService,
    create_notification_service,
)

__all__ = [
    # Pipeline
    "ContentBuilder",
    "ContextResolver",
    "FanOutDispatcher",
    "NotificationService",
    "RecipientSetBuilder",
    "create_notification_service",
    # Scheduling
    "ScheduledFire",
    "TaskNames",
    "TaskScheduler",
    "correlation_tags",
    # Models
    "ActivityPayload",
    "ActivityType",
    "DispatchReport",
    "EmailContent",
    "NotificationContent",
    "NotificationKind",
    "PushContent",
    "Recipient",
    "RecipientOutcome",
    "RecipientRole",
    "RecipientSet",
    "ResolvedContext",
    "SubmissionStats",
    # Errors
    "MalformedPayload",
    "MissingActivity",
    "MissingCourse",
    "MissingGroup",
    "MissingRun",
    "MissingRunName",
    "MissingTitle",
    "MissingUser",
    "NotificationError",
    "NotificationSkipped",
    "ResolutionError",
]
