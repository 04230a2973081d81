# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- An in-memory CourseDataStore seeded with a small platform dataset
- Recording delivery channels and a recording task scheduler
- A NotificationService wired to those fakes
"""

import os

# Actor modules set up the broker at import time
os.environ.setdefault("DRAMATIQ_TEST_MODE", "true")

from datetime import datetime, timezone
from typing import Any

import pytest

from coursenotify.domains.notification.dispatcher import FanOutDispatcher
from coursenotify.domains.notification.scheduling import ScheduledFire, TaskScheduler
from coursenotify.domains.notification.service import NotificationService
from coursenotify.infrastructure.database.repository import (
    ActivityRecord,
    CourseDataStore,
    CourseRecord,
    GroupRecord,
    RunRecord,
    UserRecord,
)
from coursenotify.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    NotificationPayload,
)

FIXED_NOW = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================


class FakeCourseStore(CourseDataStore):
    """In-memory CourseDataStore recording every call it receives."""

    def __init__(self) -> None:
        self.activities: dict[str, ActivityRecord] = {}
        self.runs: dict[str, RunRecord] = {}
        self.courses: dict[str, CourseRecord] = {}
        self.groups: dict[str, GroupRecord] = {}
        self.users: dict[str, UserRecord] = {}
        self.members: list[tuple[str, str, str]] = []
        self.managers: list[tuple[str, str]] = []
        self.submissions: dict[tuple[str, str, str], set[str]] = {}
        self.open_attempts: dict[tuple[str, str, str], list[str]] = {}
        self.subscriptions: dict[str, list[Any]] = {}
        self.calls: list[str] = []

    async def get_course_activity(self, course_activity_id: str) -> ActivityRecord | None:
        self.calls.append("get_course_activity")
        return self.activities.get(course_activity_id)

    async def get_course_run(self, run_id: str) -> RunRecord | None:
        self.calls.append("get_course_run")
        return self.runs.get(run_id)

    async def get_course(self, course_id: str) -> CourseRecord | None:
        self.calls.append("get_course")
        return self.courses.get(course_id)

    async def get_group(self, group_id: str) -> GroupRecord | None:
        self.calls.append("get_group")
        return self.groups.get(group_id)

    async def get_user(self, user_id: str) -> UserRecord | None:
        self.calls.append("get_user")
        return self.users.get(user_id)

    async def list_group_students(self, group_id: str) -> list[UserRecord]:
        self.calls.append("list_group_students")
        ids = {uid for gid, uid, role in self.members if gid == group_id and role == "student"}
        return [self.users[uid] for uid in sorted(ids)]

    async def list_course_managers(self, course_id: str) -> list[UserRecord]:
        self.calls.append("list_course_managers")
        ids = {uid for cid, uid in self.managers if cid == course_id}
        return [self.users[uid] for uid in sorted(ids)]

    async def list_course_runs(self, course_id: str) -> list[RunRecord]:
        self.calls.append("list_course_runs")
        return [run for _, run in sorted(self.runs.items()) if run.course_id == course_id]

    async def list_submitted_user_ids(
        self, activity_type: str, activity_id: str, run_id: str
    ) -> set[str]:
        self.calls.append("list_submitted_user_ids")
        return set(self.submissions.get((activity_type, activity_id, run_id), set()))

    async def get_user_email(self, user_id: str) -> str | None:
        self.calls.append("get_user_email")
        user = self.users.get(user_id)
        return user.email if user else None

    async def list_push_subscriptions(self, user_id: str) -> list[Any]:
        self.calls.append("list_push_subscriptions")
        return list(self.subscriptions.get(user_id, []))

    async def auto_submit(
        self,
        activity_type: str,
        activity_id: str,
        run_id: str,
        submitted_at: datetime,
        user_id: str | None = None,
    ) -> list[str]:
        self.calls.append("auto_submit")
        key = (activity_type, activity_id, run_id)
        open_ids = self.open_attempts.get(key, [])
        closed = [uid for uid in open_ids if user_id is None or uid == user_id]
        self.open_attempts[key] = [uid for uid in open_ids if uid not in closed]
        self.submissions.setdefault(key, set()).update(closed)
        return closed


class RecordingChannel(BaseChannel):
    """Channel that records payloads and fails or raises on request."""

    def __init__(
        self,
        channel: ChannelType,
        fail_for: set[str] | None = None,
        raise_for: set[str] | None = None,
    ) -> None:
        super().__init__()
        self._channel = channel
        self.fail_for = fail_for or set()
        self.raise_for = raise_for or set()
        self.sent: list[NotificationPayload] = []

    @property
    def channel_type(self) -> ChannelType:
        return self._channel

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        if payload.recipient_id in self.raise_for:
            raise ConnectionError(f"{self._channel.value} gateway unreachable")
        self.sent.append(payload)
        if payload.recipient_id in self.fail_for:
            return self.create_failure_result("rejected by gateway")
        return self.create_success_result(message_id=f"msg-{payload.recipient_id}")

    @property
    def recipient_ids(self) -> list[str]:
        return [p.recipient_id for p in self.sent]


class RecordingScheduler(TaskScheduler):
    """TaskScheduler that keeps registered fires in memory."""

    def __init__(self) -> None:
        self.fires: list[ScheduledFire] = []

    async def schedule_at(
        self,
        when: datetime,
        task: str,
        payload: dict[str, Any],
        tags: tuple[str, ...] = (),
    ) -> ScheduledFire:
        fire = ScheduledFire(task=task, fire_at=when, payload=payload, tags=tuple(tags))
        self.fires.append(fire)
        return fire


# =============================================================================
# Dataset
# =============================================================================


def _activity(
    ca_id: str,
    activity_id: str,
    activity_type: str,
    payload: Any,
    course_id: str,
    course_name: str | None,
) -> ActivityRecord:
    return ActivityRecord(
        course_activity_id=ca_id,
        activity_id=activity_id,
        activity_type=activity_type,
        payload=payload,
        course_id=course_id,
        course_name=course_name,
    )


def build_dataset() -> FakeCourseStore:
    """Seed a store with two courses, four runs and their groups.

    run-1 (course-1) -> group-1: user-1, user-2, user-3
    run-2 (course-1) -> group-2: user-1, user-4
    run-3 (course-2) -> group-3: user-6, user-7
    run-9 (course-1) -> group-9: nobody
    course-1 managers: mgr-1, mgr-2; course-2 managers: mgr-1
    """
    store = FakeCourseStore()

    for user in (
        UserRecord("user-1", "Asha", "asha@example.com"),
        UserRecord("user-2", "Ben", "ben@example.com"),
        UserRecord("user-3", None, "user3@example.com"),
        UserRecord("user-4", "Dev", None),
        UserRecord("user-5", "Esha", "esha@example.com"),
        UserRecord("user-6", "Farah", "farah@example.com"),
        UserRecord("user-7", "Gita", "gita@example.com"),
        UserRecord("mgr-1", "Maya", "maya@example.com"),
        UserRecord("mgr-2", "Nikhil", "nikhil@example.com"),
    ):
        store.users[user.id] = user

    for group in (
        GroupRecord("group-1", "Cohort A"),
        GroupRecord("group-2", "Cohort B"),
        GroupRecord("group-3", "Cohort C"),
        GroupRecord("group-9", "Empty Cohort"),
        GroupRecord("group-unnamed", None),
    ):
        store.groups[group.id] = group

    store.members = [
        ("group-1", "user-1", "student"),
        ("group-1", "user-2", "student"),
        ("group-1", "user-3", "student"),
        ("group-1", "mgr-2", "facilitator"),
        ("group-2", "user-1", "student"),
        ("group-2", "user-4", "student"),
        ("group-3", "user-6", "student"),
        ("group-3", "user-7", "student"),
    ]

    store.courses["course-1"] = CourseRecord("course-1", "Data Science 101")
    store.courses["course-2"] = CourseRecord("course-2", "Statistics")
    store.managers = [
        ("course-1", "mgr-1"),
        ("course-1", "mgr-2"),
        ("course-2", "mgr-1"),
    ]

    store.runs["run-1"] = RunRecord(
        "run-1",
        "Spring 2025",
        "course-1",
        "group-1",
        end_date=datetime(2025, 6, 30, 12, 30, tzinfo=timezone.utc),
    )
    store.runs["run-2"] = RunRecord("run-2", "Summer 2025", "course-1", "group-2")
    store.runs["run-3"] = RunRecord("run-3", "Autumn 2025", "course-2", "group-3")
    store.runs["run-9"] = RunRecord("run-9", "Empty Run", "course-1", "group-9")

    for record in (
        _activity("ca-1", "act-1", "assignment", '{"title": "Essay 1"}', "course-1", "Data Science 101"),
        _activity("ca-2", "act-2", "quiz", '{"title": "Quiz 1"}', "course-2", "Statistics"),
        _activity("ca-3", "act-3", "video", '{"title": "Intro Video"}', "course-1", "Data Science 101"),
        _activity("ca-4", "act-4", "exam", '{"name": "Final Exam"}', "course-1", "Data Science 101"),
    ):
        store.activities[record.course_activity_id] = record

    store.submissions[("assignment", "act-1", "run-1")] = {"user-2"}
    store.submissions[("quiz", "act-2", "run-3")] = {"user-6"}

    return store


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store() -> FakeCourseStore:
    """Provide a freshly seeded in-memory store."""
    return build_dataset()


@pytest.fixture
def push_channel() -> RecordingChannel:
    """Provide a recording push channel."""
    return RecordingChannel(ChannelType.PUSH)


@pytest.fixture
def email_channel() -> RecordingChannel:
    """Provide a recording email channel."""
    return RecordingChannel(ChannelType.EMAIL)


@pytest.fixture
def scheduler() -> RecordingScheduler:
    """Provide a recording task scheduler."""
    return RecordingScheduler()


@pytest.fixture
def service(
    store: FakeCourseStore,
    push_channel: RecordingChannel,
    email_channel: RecordingChannel,
    scheduler: RecordingScheduler,
) -> NotificationService:
    """Provide a NotificationService wired to the fakes with a fixed clock."""
    return NotificationService(
        store=store,
        dispatcher=FanOutDispatcher(push_channel, email_channel),
        scheduler=scheduler,
        clock=lambda: FIXED_NOW,
    )


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "database: mark test as running against an in-memory SQLite database"
    )
