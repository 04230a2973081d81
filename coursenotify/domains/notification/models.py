# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data structures of the notification engine.

Trigger models (pydantic) validate what a background task receives.
Everything downstream of resolution is a frozen dataclass that lives for
one fan-out and is then discarded.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from coursenotify.domains.notification.exceptions import MalformedPayload, MissingTitle
from coursenotify.infrastructure.notifications.channels.base import ChannelResult, DeliveryStatus
from coursenotify.utils.datetime import ensure_utc

# ============================================================================
# Enumerations
# ============================================================================


class NotificationKind(str, Enum):
    """Every notification the engine can send."""

    STUDENT_DEADLINE_REMINDER = "student_deadline_reminder"
    MANAGER_DEADLINE_WARNING = "manager_deadline_warning"
    SCORE_PUBLISHED = "score_published"
    ACTIVITY_POSTED = "activity_posted"
    REDO_ENABLED = "redo_enabled"
    ADDED_TO_GROUP = "added_to_group"
    NEW_DOCUMENT = "new_document"
    MISSED_DEADLINE = "missed_deadline"
    POST_DEADLINE_SUMMARY = "post_deadline_summary"
    COURSE_RUN_FINALIZED = "course_run_finalized"


class ActivityType(str, Enum):
    """Activity types that carry submissions."""

    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    EXAM = "exam"


class RecipientRole(str, Enum):
    """Capacity in which a recipient is addressed."""

    STUDENT = "student"
    MANAGER = "manager"


GRADED_ACTIVITY_TYPES = frozenset(t.value for t in ActivityType)
AUTO_SUBMIT_ACTIVITY_TYPES = frozenset({ActivityType.QUIZ.value, ActivityType.EXAM.value})

# Kinds that only apply to graded activities
GRADED_ONLY_KINDS = frozenset(
    {
        NotificationKind.STUDENT_DEADLINE_REMINDER,
        NotificationKind.MANAGER_DEADLINE_WARNING,
        NotificationKind.MISSED_DEADLINE,
        NotificationKind.POST_DEADLINE_SUMMARY,
    }
)


def is_graded(activity_type: str | None) -> bool:
    """Check whether an activity type carries submissions."""
    return activity_type in GRADED_ACTIVITY_TYPES


# ============================================================================
# Activity Payload
# ============================================================================


class ActivityPayload(BaseModel):
    """Structured document stored with an activity.

    Only the title is read. Older documents named the field "name".
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = Field(
        default=None,
        validation_alias=AliasChoices("title", "name"),
    )

    @classmethod
    def parse(cls, raw: Any, course_activity_id: str | None = None) -> "ActivityPayload":
        """Validate a stored payload once and require a title.

        Args:
            raw: Stored payload, a JSON string or an already decoded object.
            course_activity_id: Identifier used in error messages.

        Returns:
            Validated payload with a non-blank title.

        Raises:
            MalformedPayload: If the payload is not a JSON object.
            MissingTitle: If no non-blank title is present.
        """
        document = raw
        if isinstance(raw, (str, bytes)):
            try:
                document = json.loads(raw)
            except ValueError as e:
                raise MalformedPayload(
                    f"Activity payload is not valid JSON: {e}", course_activity_id
                ) from e

        if document is None:
            raise MissingTitle("Activity has no payload", course_activity_id)

        if not isinstance(document, dict):
            raise MalformedPayload("Activity payload is not a JSON object", course_activity_id)

        try:
            payload = cls.model_validate(document)
        except ValidationError as e:
            raise MalformedPayload(f"Activity payload is invalid: {e}", course_activity_id) from e

        if payload.title is None or not payload.title.strip():
            raise MissingTitle("Activity payload has no title", course_activity_id)

        payload.title = payload.title.strip()
        return payload


# ============================================================================
# Trigger Models
# ============================================================================


class TriggerModel(BaseModel):
    """Base for task payloads; accepts snake_case or camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )


class DeadlineTrigger(TriggerModel):
    """Deadline-bound notification of one activity in one run."""

    course_activity_id: str
    run_id: str
    deadline: datetime

    @field_validator("deadline")
    @classmethod
    def _deadline_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class ActivityRunTrigger(TriggerModel):
    """Notification about one activity in one run."""

    course_activity_id: str
    run_id: str


class ActivityCourseTrigger(TriggerModel):
    """Notification about one activity for every run of its course."""

    course_activity_id: str


class RedoTrigger(TriggerModel):
    """Redo granted to one student."""

    user_id: str
    course_activity_id: str
    new_deadline: datetime
    run_id: str | None = None

    @field_validator("new_deadline")
    @classmethod
    def _deadline_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class GroupMembershipTrigger(TriggerModel):
    """A student added to a group."""

    user_id: str
    group_id: str


class DocumentTrigger(TriggerModel):
    """A document shared with a run."""

    run_id: str
    document_name: str = Field(min_length=1)


class RunTrigger(TriggerModel):
    """Notification about a whole course run."""

    run_id: str = Field(
        validation_alias=AliasChoices("run_id", "runId", "course_run_id", "courseRunId")
    )


class StudentDeadlineTrigger(DeadlineTrigger):
    """Deadline of one student's redo attempt."""

    user_id: str


# ============================================================================
# Resolution Results
# ============================================================================


@dataclass(frozen=True)
class SubmissionStats:
    """Submission counts of one activity within one run's group."""

    submitted_count: int
    not_submitted_count: int


@dataclass(frozen=True)
class Recipient:
    """A user a notification is addressed to.

    Attributes:
        id: User id.
        name: Display name, None when the user has none.
        email: Email address, None when the user has none.
        role: Capacity the user is addressed in.
    """

    id: str
    name: str | None = None
    email: str | None = None
    role: RecipientRole = RecipientRole.STUDENT

    @property
    def greeting_name(self) -> str:
        """Name used in salutations."""
        return self.name or "there"


@dataclass(frozen=True)
class ResolvedContext:
    """Facts resolved fresh from the store for one notification.

    Only the fields the kind needs are set. Resolution guarantees those
    fields are present, so content templates never see a placeholder.
    """

    kind: NotificationKind
    course_activity_id: str | None = None
    activity_id: str | None = None
    activity_type: str | None = None
    activity_title: str | None = None
    course_id: str | None = None
    course_name: str | None = None
    run_id: str | None = None
    run_name: str | None = None
    group_id: str | None = None
    group_name: str | None = None
    user_id: str | None = None
    user_name: str | None = None
    user_email: str | None = None
    document_name: str | None = None
    deadline: datetime | None = None
    deadline_display: str | None = None
    end_date: datetime | None = None
    end_date_display: str | None = None
    stats: SubmissionStats | None = None

    def log_fields(self) -> dict[str, Any]:
        """Identifiers worth attaching to log lines."""
        fields = {
            "kind": self.kind.value,
            "course_activity_id": self.course_activity_id,
            "run_id": self.run_id,
            "group_id": self.group_id,
            "course_id": self.course_id,
            "user_id": self.user_id,
        }
        return {key: value for key, value in fields.items() if value is not None}


@dataclass(frozen=True)
class RecipientSet:
    """Recipients of one fan-out, ordered by user id and free of duplicates."""

    recipients: tuple[Recipient, ...] = ()
    stats: SubmissionStats | None = None

    @property
    def ids(self) -> list[str]:
        """Recipient ids in dispatch order."""
        return [r.id for r in self.recipients]

    def __len__(self) -> int:
        return len(self.recipients)

    def __bool__(self) -> bool:
        return bool(self.recipients)


# ============================================================================
# Content
# ============================================================================


@dataclass(frozen=True)
class PushContent:
    """Push notification payload."""

    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmailContent:
    """Email payload rendered into the branded template."""

    subject: str
    heading: str
    subheading: str
    body: str


@dataclass(frozen=True)
class NotificationContent:
    """Push and email content for one recipient.

    action_url and action_label describe the link a push click or the email
    button opens; channels fall back to the app URL when it is unset.
    """

    push: PushContent
    email: EmailContent
    action_url: str | None = None
    action_label: str | None = None


# ============================================================================
# Dispatch Results
# ============================================================================


@dataclass(frozen=True)
class RecipientOutcome:
    """Settled outcome of both channels for one recipient."""

    recipient_id: str
    push: ChannelResult
    email: ChannelResult

    @property
    def failed(self) -> bool:
        """Check whether any channel failed."""
        return self.push.is_failure or self.email.is_failure


@dataclass(frozen=True)
class DispatchReport:
    """Result of one notification: per-recipient channel outcomes.

    Attributes:
        kind: Notification kind.
        outcomes: One entry per recipient, in dispatch order.
        skipped_reason: Set when the notification did not apply.
        stats: Submission counts, for summary notifications.
    """

    kind: NotificationKind
    outcomes: tuple[RecipientOutcome, ...] = ()
    skipped_reason: str | None = None
    stats: SubmissionStats | None = None

    @property
    def recipient_ids(self) -> list[str]:
        """Ids of every recipient addressed."""
        return [o.recipient_id for o in self.outcomes]

    @property
    def skipped(self) -> bool:
        """Check whether the notification was skipped entirely."""
        return self.skipped_reason is not None

    def count(self, channel: str, status: DeliveryStatus) -> int:
        """Count outcomes of one channel with one status."""
        return sum(1 for o in self.outcomes if getattr(o, channel).status == status)

    def to_dict(self) -> dict[str, Any]:
        """Summarize for logging and task results.

        Returns:
            Dictionary with counts per channel and status.
        """
        summary: dict[str, Any] = {
            "kind": self.kind.value,
            "recipients": len(self.outcomes),
            "skipped_reason": self.skipped_reason,
        }
        for channel in ("push", "email"):
            summary[channel] = {
                status.value: self.count(channel, status)
                for status in (DeliveryStatus.SENT, DeliveryStatus.FAILED, DeliveryStatus.SKIPPED)
            }
        if self.stats is not None:
            summary["submitted_count"] = self.stats.submitted_count
            summary["not_submitted_count"] = self.stats.not_submitted_count
        return summary
