# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification channels for delivering notifications.

This package provides channel implementations for sending
notifications through the two delivery mechanisms:

- PushChannel: Sends push notifications via FCM (devices) and Web Push (browsers)
- EmailChannel: Sends email notifications via SMTP

Usage:
    from coursenotify.infrastructure.notifications.channels import (
        EmailChannel,
        NotificationPayload,
        PushChannel,
    )

    push = PushChannel(settings.push, directory)
    result = await push.send(
        NotificationPayload(
            recipient_id="user-1",
            title="Deadline Reminder",
            message="Essay 1 is due soon",
        )
    )
"""

from coursenotify.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    ContactDirectory,
    DeliveryStatus,
    NotificationPayload,
)
from coursenotify.infrastructure.notifications.channels.email import EmailChannel
from coursenotify.infrastructure.notifications.channels.push import (
    PushChannel,
    parse_subscription,
)

__all__ = [
    # Base types
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "ContactDirectory",
    "DeliveryStatus",
    "NotificationPayload",
    # Channels
    "EmailChannel",
    "PushChannel",
    "parse_subscription",
]
