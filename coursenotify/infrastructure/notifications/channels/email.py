# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Email notification channel using async SMTP.

This channel sends email notifications using aiosmtplib for
async SMTP communication. Each email carries a plain text and an
HTML alternative.

Configuration (via environment variables):
- SMTP_HOST: SMTP server hostname
- SMTP_PORT: SMTP server port (default: 587)
- SMTP_USERNAME: SMTP authentication username
- SMTP_PASSWORD: SMTP authentication password
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL: Sender email address
- SMTP_FROM_NAME: Sender display name
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

import aiosmtplib

from coursenotify.core.config.settings import NotificationSettings, SMTPSettings
from coursenotify.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    ContactDirectory,
    NotificationPayload,
)
from coursenotify.infrastructure.notifications.templates import (
    DEFAULT_CTA_TEXT,
    render_email_html,
    render_email_text,
)


class EmailChannel(BaseChannel):
    """Email notification channel using async SMTP.

    The recipient address comes from the payload when the caller already
    knows it, and from the contact directory otherwise. A user without an
    address is skipped, not failed.
    """

    def __init__(
        self,
        smtp: SMTPSettings,
        notifications: NotificationSettings,
        directory: ContactDirectory | None = None,
    ) -> None:
        """Initialize the email channel."""
        super().__init__()
        self._smtp = smtp
        self._notifications = notifications
        self._directory = directory
        self._warned_unconfigured = False

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.EMAIL

    async def _resolve_address(self, payload: NotificationPayload) -> str | None:
        if payload.recipient_email:
            return payload.recipient_email
        if self._directory is None:
            return None
        return await self._directory.get_user_email(payload.recipient_id)

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send email notification via SMTP.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self._smtp.is_configured:
            if not self._warned_unconfigured:
                self.logger.warning(
                    "Email notifications disabled: SMTP_HOST, SMTP_USERNAME, "
                    "SMTP_PASSWORD, or SMTP_FROM_EMAIL not set"
                )
                self._warned_unconfigured = True
            return self.create_skipped_result("SMTP configuration incomplete")

        address = await self._resolve_address(payload)
        if not address:
            return self.create_skipped_result("No recipient email address")

        message = self._build_email_message(payload, address)

        try:
            await aiosmtplib.send(
                message,
                hostname=self._smtp.host,
                port=self._smtp.port,
                username=self._smtp.username,
                password=self._smtp.password.get_secret_value() if self._smtp.password else None,
                start_tls=self._smtp.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            self.logger.error(
                "Failed to send email to %s: %s",
                payload.recipient_id,
                str(e),
            )
            return self.create_failure_result(
                f"SMTP error: {e}",
                metadata={"recipient": payload.recipient_id},
            )

        self.logger.info("Email sent to %s: %s", payload.recipient_id, payload.title)
        return self.create_success_result(
            message_id=message["Message-ID"],
            metadata={"recipient": payload.recipient_id},
        )

    def _build_email_message(self, payload: NotificationPayload, address: str) -> MIMEMultipart:
        """Build MIME email message.

        Args:
            payload: Notification payload.
            address: Recipient address.

        Returns:
            MIMEMultipart message ready to send.
        """
        settings = self._notifications
        heading = payload.heading or payload.title
        subheading = payload.subheading or ""
        template_args = {
            "app_name": settings.app_name,
            "cta_url": payload.action_url or settings.app_url,
            "support_email": settings.support_email,
            "cta_text": payload.action_label or DEFAULT_CTA_TEXT,
        }

        message = MIMEMultipart("alternative")
        message["From"] = f"{self._smtp.from_name} <{self._smtp.from_email}>"
        message["To"] = address
        message["Subject"] = payload.title
        message["Message-ID"] = make_msgid()

        message.attach(
            MIMEText(
                render_email_text(heading, subheading, payload.message, **template_args),
                "plain",
                "utf-8",
            )
        )
        message.attach(
            MIMEText(
                render_email_html(heading, subheading, payload.message, **template_args),
                "html",
                "utf-8",
            )
        )
        return message
