# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Concurrent fan-out of one notification over push and email.

Every recipient is dispatched concurrently, and push and email for one
recipient run concurrently too. The dispatch completes once every attempt
has settled. A failed or raising channel is logged and recorded as
FAILED for that recipient only; dispatch itself never raises for a
delivery problem and never retries.
"""

import asyncio
import logging
from typing import Callable, Iterable

from coursenotify.domains.notification.models import (
    DispatchReport,
    NotificationContent,
    NotificationKind,
    Recipient,
    RecipientOutcome,
    SubmissionStats,
)
from coursenotify.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
    NotificationPayload,
)

logger = logging.getLogger(__name__)

ContentFactory = Callable[[Recipient], NotificationContent]


def _failed(channel: ChannelType, error: str) -> ChannelResult:
    return ChannelResult(channel=channel, status=DeliveryStatus.FAILED, error_message=error)


class FanOutDispatcher:
    """Delivers one notification to a recipient set.

    Args:
        push_gateway: Channel used for push delivery.
        email_gateway: Channel used for email delivery.
    """

    def __init__(self, push_gateway: BaseChannel, email_gateway: BaseChannel) -> None:
        self.push_gateway = push_gateway
        self.email_gateway = email_gateway

    async def dispatch(
        self,
        kind: NotificationKind,
        recipients: Iterable[Recipient],
        build_content: ContentFactory,
        stats: SubmissionStats | None = None,
    ) -> DispatchReport:
        """Send one notification to every recipient.

        Args:
            kind: Notification kind, for logging and the report.
            recipients: Recipients to address.
            build_content: Builds the content for one recipient.
            stats: Submission counts carried into the report.

        Returns:
            Report with one outcome per recipient, in recipient order.
        """
        recipients = list(recipients)
        if not recipients:
            logger.info("No recipients for %s; nothing dispatched", kind.value)
            return DispatchReport(kind=kind, stats=stats)

        settled = await asyncio.gather(
            *[self._dispatch_one(kind, recipient, build_content) for recipient in recipients],
            return_exceptions=True,
        )
        outcomes = [
            self._settle(kind, recipient, result)
            for recipient, result in zip(recipients, settled)
        ]
        report = DispatchReport(kind=kind, outcomes=tuple(outcomes), stats=stats)

        logger.info(
            "Dispatched %s to %d recipient(s): push %d sent / %d failed, "
            "email %d sent / %d failed",
            kind.value,
            len(outcomes),
            report.count("push", DeliveryStatus.SENT),
            report.count("push", DeliveryStatus.FAILED),
            report.count("email", DeliveryStatus.SENT),
            report.count("email", DeliveryStatus.FAILED),
        )
        return report

    async def _dispatch_one(
        self,
        kind: NotificationKind,
        recipient: Recipient,
        build_content: ContentFactory,
    ) -> RecipientOutcome:
        try:
            content = build_content(recipient)
        except Exception as e:
            logger.error(
                "Failed to build %s content for recipient %s: %s",
                kind.value,
                recipient.id,
                str(e),
                exc_info=True,
            )
            error = f"Content error: {e}"
            return RecipientOutcome(
                recipient_id=recipient.id,
                push=_failed(ChannelType.PUSH, error),
                email=_failed(ChannelType.EMAIL, error),
            )

        push_payload = NotificationPayload(
            recipient_id=recipient.id,
            title=content.push.title,
            message=content.push.body,
            data=content.push.data,
            action_url=content.action_url,
        )
        email_payload = NotificationPayload(
            recipient_id=recipient.id,
            recipient_email=recipient.email,
            title=content.email.subject,
            message=content.email.body,
            heading=content.email.heading,
            subheading=content.email.subheading,
            action_url=content.action_url,
            action_label=content.action_label,
        )

        push_result, email_result = await asyncio.gather(
            self._safe_send(self.push_gateway, ChannelType.PUSH, recipient, push_payload),
            self._safe_send(self.email_gateway, ChannelType.EMAIL, recipient, email_payload),
        )
        return RecipientOutcome(recipient_id=recipient.id, push=push_result, email=email_result)

    def _settle(
        self,
        kind: NotificationKind,
        recipient: Recipient,
        result: RecipientOutcome | BaseException,
    ) -> RecipientOutcome:
        if isinstance(result, RecipientOutcome):
            return result
        if not isinstance(result, Exception):
            raise result

        logger.error(
            "Dispatch of %s to recipient %s raised: %s",
            kind.value,
            recipient.id,
            str(result),
            exc_info=result,
        )
        error = f"Dispatch error: {result}"
        return RecipientOutcome(
            recipient_id=recipient.id,
            push=_failed(ChannelType.PUSH, error),
            email=_failed(ChannelType.EMAIL, error),
        )

    async def _safe_send(
        self,
        gateway: BaseChannel,
        channel: ChannelType,
        recipient: Recipient,
        payload: NotificationPayload,
    ) -> ChannelResult:
        """Call a gateway, turning any exception into a FAILED result."""
        try:
            result = await gateway.send(payload)
        except Exception as e:
            logger.error(
                "%s delivery raised for recipient %s: %s",
                channel.value,
                recipient.id,
                str(e),
                exc_info=True,
            )
            return _failed(channel, str(e))

        if result.is_failure:
            logger.warning(
                "%s delivery failed for recipient %s: %s",
                channel.value,
                recipient.id,
                result.error_message,
            )
        return result
