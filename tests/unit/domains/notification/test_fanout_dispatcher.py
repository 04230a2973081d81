# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for FanOutDispatcher."""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from conftest import RecordingChannel

from coursenotify.domains.notification.dispatcher import FanOutDispatcher
from coursenotify.domains.notification.models import (
    EmailContent,
    NotificationContent,
    NotificationKind,
    PushContent,
    Recipient,
)
from coursenotify.infrastructure.notifications.channels.base import (
    ChannelType,
    DeliveryStatus,
)

RECIPIENTS = [
    Recipient(id="user-1", name="Asha", email="asha@example.com"),
    Recipient(id="user-2", name="Ben", email="ben@example.com"),
    Recipient(id="user-3", email="user3@example.com"),
]


def simple_content(recipient: Recipient) -> NotificationContent:
    return NotificationContent(
        push=PushContent(title="Title", body=f"Hi {recipient.greeting_name}", data={"type": "x"}),
        email=EmailContent(subject="Subject", heading="Heading", subheading="Sub", body="Body"),
    )


class TestFanOutDispatcher:
    """Tests for FanOutDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_every_recipient_gets_both_channels(self) -> None:
        """Test that push and email are attempted once per recipient."""
        push = RecordingChannel(ChannelType.PUSH)
        email = RecordingChannel(ChannelType.EMAIL)
        dispatcher = FanOutDispatcher(push, email)

        report = await dispatcher.dispatch(
            NotificationKind.ACTIVITY_POSTED, RECIPIENTS, simple_content
        )

        assert report.recipient_ids == ["user-1", "user-2", "user-3"]
        assert sorted(push.recipient_ids) == ["user-1", "user-2", "user-3"]
        assert sorted(email.recipient_ids) == ["user-1", "user-2", "user-3"]
        assert report.count("push", DeliveryStatus.SENT) == 3
        assert report.count("email", DeliveryStatus.SENT) == 3

    @pytest.mark.asyncio
    async def test_payloads_carry_content(self) -> None:
        """Test that push and email payloads carry their content."""
        push = RecordingChannel(ChannelType.PUSH)
        email = RecordingChannel(ChannelType.EMAIL)

        await FanOutDispatcher(push, email).dispatch(
            NotificationKind.ACTIVITY_POSTED, RECIPIENTS[:1], simple_content
        )

        assert push.sent[0].title == "Title"
        assert push.sent[0].message == "Hi Asha"
        assert push.sent[0].data == {"type": "x"}
        assert email.sent[0].title == "Subject"
        assert email.sent[0].heading == "Heading"
        assert email.sent[0].subheading == "Sub"
        assert email.sent[0].recipient_email == "asha@example.com"

    @pytest.mark.asyncio
    async def test_payloads_carry_action_link(self) -> None:
        """Test that the link a notification opens reaches both channels."""
        push = RecordingChannel(ChannelType.PUSH)
        email = RecordingChannel(ChannelType.EMAIL)

        def linked_content(recipient: Recipient) -> NotificationContent:
            return replace(
                simple_content(recipient),
                action_url="https://lms.example.com",
                action_label="View Results",
            )

        await FanOutDispatcher(push, email).dispatch(
            NotificationKind.SCORE_PUBLISHED, RECIPIENTS[:1], linked_content
        )

        assert push.sent[0].action_url == "https://lms.example.com"
        assert email.sent[0].action_url == "https://lms.example.com"
        assert email.sent[0].action_label == "View Results"

    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self) -> None:
        """Test that one failing recipient does not affect the others."""
        push = RecordingChannel(ChannelType.PUSH, fail_for={"user-2"})
        email = RecordingChannel(ChannelType.EMAIL, raise_for={"user-2"})

        report = await FanOutDispatcher(push, email).dispatch(
            NotificationKind.ACTIVITY_POSTED, RECIPIENTS, simple_content
        )

        outcomes = {o.recipient_id: o for o in report.outcomes}
        assert outcomes["user-2"].push.status == DeliveryStatus.FAILED
        assert outcomes["user-2"].email.status == DeliveryStatus.FAILED
        assert "unreachable" in outcomes["user-2"].email.error_message
        assert not outcomes["user-1"].failed
        assert not outcomes["user-3"].failed

    @pytest.mark.asyncio
    async def test_push_failure_does_not_block_email(self) -> None:
        """Test that email is attempted for a recipient whose push raises."""
        push = RecordingChannel(ChannelType.PUSH, raise_for={"user-1"})
        email = RecordingChannel(ChannelType.EMAIL)

        report = await FanOutDispatcher(push, email).dispatch(
            NotificationKind.ACTIVITY_POSTED, RECIPIENTS[:1], simple_content
        )

        assert report.outcomes[0].push.status == DeliveryStatus.FAILED
        assert report.outcomes[0].email.status == DeliveryStatus.SENT

    @pytest.mark.asyncio
    async def test_content_error_fails_one_recipient(self) -> None:
        """Test that a content error marks only that recipient as failed."""
        push = RecordingChannel(ChannelType.PUSH)
        email = RecordingChannel(ChannelType.EMAIL)

        def content(recipient: Recipient) -> NotificationContent:
            if recipient.id == "user-3":
                raise KeyError("template")
            return simple_content(recipient)

        report = await FanOutDispatcher(push, email).dispatch(
            NotificationKind.ACTIVITY_POSTED, RECIPIENTS, content
        )

        outcomes = {o.recipient_id: o for o in report.outcomes}
        assert outcomes["user-3"].push.status == DeliveryStatus.FAILED
        assert outcomes["user-3"].email.status == DeliveryStatus.FAILED
        assert "user-3" not in push.recipient_ids
        assert outcomes["user-1"].push.status == DeliveryStatus.SENT

    @pytest.mark.asyncio
    async def test_empty_recipients_makes_no_calls(self) -> None:
        """Test that no channel is called for an empty set."""
        push = AsyncMock()
        email = AsyncMock()

        report = await FanOutDispatcher(push, email).dispatch(
            NotificationKind.MISSED_DEADLINE, [], simple_content
        )

        assert report.outcomes == ()
        push.send.assert_not_called()
        email.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_recipients_are_dispatched_concurrently(self) -> None:
        """Test that a slow recipient does not delay the start of the others."""
        started: list[str] = []
        release = asyncio.Event()

        class SlowChannel(RecordingChannel):
            async def send(self, payload):
                started.append(payload.recipient_id)
                if len(started) == len(RECIPIENTS):
                    release.set()
                await asyncio.wait_for(release.wait(), timeout=1)
                return await super().send(payload)

        report = await FanOutDispatcher(
            SlowChannel(ChannelType.PUSH), RecordingChannel(ChannelType.EMAIL)
        ).dispatch(NotificationKind.ACTIVITY_POSTED, RECIPIENTS, simple_content)

        assert sorted(started) == ["user-1", "user-2", "user-3"]
        assert report.count("push", DeliveryStatus.SENT) == 3
