# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery gateways for CourseNotify.

Push goes out through Firebase Cloud Messaging and email through SMTP.
Both channels are constructed explicitly and injected into the fan-out
dispatcher; nothing here holds a module-level client.
"""

from coursenotify.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    ContactDirectory,
    DeliveryStatus,
    EmailChannel,
    NotificationPayload,
    PushChannel,
)
from coursenotify.infrastructure.notifications.templates import (
    render_email_html,
    render_email_text,
)

__all__ = [
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "ContactDirectory",
    "DeliveryStatus",
    "EmailChannel",
    "NotificationPayload",
    "PushChannel",
    "render_email_html",
    "render_email_text",
]
