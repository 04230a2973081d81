# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised while resolving a notification.

A ResolutionError aborts the whole notification before any recipient is
computed; the background actor lets it propagate so the broker records a
failed task. NotificationSkipped is not an error: the notification does
not apply and the task completes without sending anything.
"""


class NotificationError(Exception):
    """Base exception for notification errors."""

    pass


class ResolutionError(NotificationError):
    """Raised when an identifier cannot be resolved to the facts a notification needs.

    Attributes:
        identifier: The identifier that failed to resolve.
    """

    def __init__(self, message: str, identifier: str | None = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class MissingActivity(ResolutionError):
    """Raised when a course-activity id has no activity behind it."""

    pass


class MalformedPayload(ResolutionError):
    """Raised when an activity payload is not a JSON object."""

    pass


class MissingTitle(ResolutionError):
    """Raised when an activity payload carries no usable title."""

    pass


class MissingRun(ResolutionError):
    """Raised when a course run is not found."""

    pass


class MissingGroup(ResolutionError):
    """Raised when a group is not found or a run is bound to none."""

    pass


class MissingRunName(ResolutionError):
    """Raised when a course run has no name."""

    pass


class MissingCourse(ResolutionError):
    """Raised when a course is not found."""

    pass


class MissingUser(ResolutionError):
    """Raised when a user is not found."""

    pass


class NotificationSkipped(NotificationError):
    """Raised when a notification does not apply, e.g. to an ungraded activity.

    Attributes:
        reason: Why the notification was skipped.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
