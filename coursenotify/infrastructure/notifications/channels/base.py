# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for notification channels.

This module defines the abstract base class and shared types
for all notification channels. Each channel handles delivery
through a specific medium (push, email).

Channels never raise for a delivery problem; they report it as a
ChannelResult so a fan-out can record it and move on.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol


class ChannelType(str, Enum):
    """Available notification channel types."""

    PUSH = "push"
    EMAIL = "email"


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class ContactDirectory(Protocol):
    """Lookups a channel needs to reach one user."""

    async def get_user_email(self, user_id: str) -> str | None: ...

    async def list_push_subscriptions(self, user_id: str) -> list[Any]: ...


@dataclass
class NotificationPayload:
    """Payload for sending a notification through one channel.

    Attributes:
        recipient_id: User ID of the recipient.
        title: Push title or email subject.
        message: Notification message body.
        recipient_email: Email address, when already known.
        heading: Email heading line.
        subheading: Email subheading line.
        data: Structured data attached to a push message.
        action_url: URL opened from the email call-to-action.
        action_label: Label for the action button.
    """

    recipient_id: str
    title: str
    message: str
    recipient_email: str | None = None
    heading: str | None = None
    subheading: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    action_label: str | None = None


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        message_id: External message ID (if available).
        error_message: Error message if failed or reason if skipped.
        sent_at: When the attempt settled.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_failure(self) -> bool:
        """Check whether the attempt failed."""
        return self.status == DeliveryStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary representation.
        """
        return {
            "channel": self.channel.value,
            "status": self.status.value,
            "message_id": self.message_id,
            "error_message": self.error_message,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "metadata": self.metadata,
        }


class BaseChannel(ABC):
    """Abstract base class for notification channels.

    Each channel implementation handles delivery through
    a specific medium. Channels must implement the send
    method and handle their own error recovery.

    Attributes:
        channel_type: The type of this channel.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send a notification through this channel.

        Args:
            payload: The notification payload to send.

        Returns:
            ChannelResult with delivery status.
        """
        ...

    def create_success_result(
        self,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful channel result.

        Args:
            message_id: External message ID.
            metadata: Additional metadata.

        Returns:
            ChannelResult with SENT status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            message_id=message_id,
            sent_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )

    def create_failure_result(
        self,
        error_message: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a failed channel result.

        Args:
            error_message: Error description.
            metadata: Additional metadata.

        Returns:
            ChannelResult with FAILED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            sent_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )

    def create_skipped_result(
        self,
        reason: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a skipped channel result.

        Args:
            reason: Why the send was skipped.
            metadata: Optional metadata.

        Returns:
            ChannelResult with SKIPPED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            error_message=reason,
            sent_at=datetime.now(timezone.utc),
            metadata=metadata or {},
        )
