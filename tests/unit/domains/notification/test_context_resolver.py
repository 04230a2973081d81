# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ContextResolver."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from coursenotify.domains.notification.context import ContextResolver
from coursenotify.domains.notification.exceptions import (
    MalformedPayload,
    MissingActivity,
    MissingCourse,
    MissingGroup,
    MissingRun,
    MissingRunName,
    MissingTitle,
    MissingUser,
    NotificationSkipped,
)
from coursenotify.domains.notification.models import (
    ActivityCourseTrigger,
    DeadlineTrigger,
    NotificationKind,
    RedoTrigger,
)
from coursenotify.infrastructure.database.repository import RunRecord

DEADLINE = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolver(store) -> ContextResolver:
    """Create a resolver rendering times in India Standard Time."""
    return ContextResolver(store, display_timezone="Asia/Kolkata")


def deadline_trigger(course_activity_id: str = "ca-1", run_id: str = "run-1") -> DeadlineTrigger:
    return DeadlineTrigger(course_activity_id=course_activity_id, run_id=run_id, deadline=DEADLINE)


class TestDeadlineResolution:
    """Tests for deadline-bound kinds."""

    @pytest.mark.asyncio
    async def test_resolves_activity_run_and_course(self, resolver: ContextResolver) -> None:
        """Test that every field of a deadline reminder is resolved."""
        context = await resolver.resolve(
            NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger()
        )

        assert context.kind == NotificationKind.STUDENT_DEADLINE_REMINDER
        assert context.activity_title == "Essay 1"
        assert context.activity_id == "act-1"
        assert context.activity_type == "assignment"
        assert context.run_name == "Spring 2025"
        assert context.group_id == "group-1"
        assert context.course_name == "Data Science 101"
        assert context.deadline == DEADLINE
        assert context.deadline_display == "2025-06-01 03:30:00 PM"

    @pytest.mark.asyncio
    async def test_accepts_mapping_trigger(self, resolver: ContextResolver) -> None:
        """Test that a raw task payload is validated into a trigger."""
        context = await resolver.resolve(
            NotificationKind.MISSED_DEADLINE,
            {"courseActivityId": "ca-4", "runId": "run-1", "deadline": "2025-06-01T10:00:00Z"},
        )

        assert context.activity_title == "Final Exam"
        assert context.activity_type == "exam"

    @pytest.mark.asyncio
    async def test_missing_activity(self, resolver: ContextResolver) -> None:
        """Test that an unknown course activity raises MissingActivity."""
        with pytest.raises(MissingActivity):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger("ca-missing")
            )

    @pytest.mark.asyncio
    async def test_ungraded_activity_is_skipped(self, store, resolver: ContextResolver) -> None:
        """Test that deadline kinds skip ungraded activities before reading the payload."""
        store.activities["ca-3"] = replace(store.activities["ca-3"], payload="{broken")

        with pytest.raises(NotificationSkipped):
            await resolver.resolve(NotificationKind.MISSED_DEADLINE, deadline_trigger("ca-3"))

        assert "get_course_run" not in store.calls

    @pytest.mark.asyncio
    async def test_malformed_payload(self, store, resolver: ContextResolver) -> None:
        """Test that an unparseable payload raises MalformedPayload."""
        store.activities["ca-1"] = replace(store.activities["ca-1"], payload="{broken")

        with pytest.raises(MalformedPayload):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger()
            )

    @pytest.mark.asyncio
    async def test_missing_title(self, store, resolver: ContextResolver) -> None:
        """Test that a payload without title raises MissingTitle."""
        store.activities["ca-1"] = replace(store.activities["ca-1"], payload='{"points": 5}')

        with pytest.raises(MissingTitle):
            await resolver.resolve(
                NotificationKind.MANAGER_DEADLINE_WARNING, deadline_trigger()
            )

    @pytest.mark.asyncio
    async def test_missing_run(self, resolver: ContextResolver) -> None:
        """Test that an unknown run raises MissingRun."""
        with pytest.raises(MissingRun):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger(run_id="run-x")
            )

    @pytest.mark.asyncio
    async def test_run_without_group(self, store, resolver: ContextResolver) -> None:
        """Test that a run bound to no group raises MissingGroup."""
        store.runs["run-1"] = replace(store.runs["run-1"], group_id=None)

        with pytest.raises(MissingGroup):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger()
            )

    @pytest.mark.asyncio
    async def test_run_without_name(self, store, resolver: ContextResolver) -> None:
        """Test that a nameless run raises MissingRunName."""
        store.runs["run-1"] = replace(store.runs["run-1"], name=None)

        with pytest.raises(MissingRunName):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger()
            )

    @pytest.mark.asyncio
    async def test_missing_course(self, store, resolver: ContextResolver) -> None:
        """Test that a deleted course raises MissingCourse."""
        del store.courses["course-1"]

        with pytest.raises(MissingCourse):
            await resolver.resolve(
                NotificationKind.STUDENT_DEADLINE_REMINDER, deadline_trigger()
            )


class TestActivityResolution:
    """Tests for score and posted kinds."""

    @pytest.mark.asyncio
    async def test_ungraded_activity_is_announced(self, resolver: ContextResolver) -> None:
        """Test that non-deadline kinds apply to any activity type."""
        context = await resolver.resolve(
            NotificationKind.ACTIVITY_POSTED,
            {"course_activity_id": "ca-3", "run_id": "run-1"},
        )

        assert context.activity_title == "Intro Video"
        assert context.deadline is None

    @pytest.mark.asyncio
    async def test_course_runs(self, resolver: ContextResolver) -> None:
        """Test that every run of the activity's course is listed."""
        runs = await resolver.resolve_course_runs(ActivityCourseTrigger(course_activity_id="ca-1"))

        assert [run.id for run in runs] == ["run-1", "run-2", "run-9"]


class TestRedoResolution:
    """Tests for redo resolution."""

    @pytest.mark.asyncio
    async def test_redo_without_run_uses_course(self, resolver: ContextResolver) -> None:
        """Test that a redo without run names the course."""
        context = await resolver.resolve(
            NotificationKind.REDO_ENABLED,
            RedoTrigger(user_id="user-1", course_activity_id="ca-1", new_deadline=DEADLINE),
        )

        assert context.user_id == "user-1"
        assert context.user_name == "Asha"
        assert context.run_name is None
        assert context.course_name == "Data Science 101"
        assert context.deadline_display == "2025-06-01 03:30:00 PM"

    @pytest.mark.asyncio
    async def test_redo_with_run(self, resolver: ContextResolver) -> None:
        """Test that a redo with a run carries the run name."""
        context = await resolver.resolve(
            NotificationKind.REDO_ENABLED,
            {
                "userId": "user-1",
                "courseActivityId": "ca-1",
                "newDeadline": "2025-06-01T10:00:00Z",
                "runId": "run-2",
            },
        )

        assert context.run_name == "Summer 2025"

    @pytest.mark.asyncio
    async def test_redo_with_unknown_run(self, resolver: ContextResolver) -> None:
        """Test that a named but missing run raises MissingRun."""
        with pytest.raises(MissingRun):
            await resolver.resolve(
                NotificationKind.REDO_ENABLED,
                RedoTrigger(
                    user_id="user-1",
                    course_activity_id="ca-1",
                    new_deadline=DEADLINE,
                    run_id="run-x",
                ),
            )

    @pytest.mark.asyncio
    async def test_redo_needs_a_name_to_show(self, store, resolver: ContextResolver) -> None:
        """Test that a redo with neither run nor course name raises MissingCourse."""
        store.courses["course-1"] = replace(store.courses["course-1"], name=None)

        with pytest.raises(MissingCourse):
            await resolver.resolve(
                NotificationKind.REDO_ENABLED,
                RedoTrigger(user_id="user-1", course_activity_id="ca-1", new_deadline=DEADLINE),
            )

    @pytest.mark.asyncio
    async def test_redo_unknown_user(self, resolver: ContextResolver) -> None:
        """Test that an unknown user raises MissingUser."""
        with pytest.raises(MissingUser):
            await resolver.resolve(
                NotificationKind.REDO_ENABLED,
                RedoTrigger(user_id="ghost", course_activity_id="ca-1", new_deadline=DEADLINE),
            )


class TestGroupAndRunResolution:
    """Tests for group membership, document and finalization kinds."""

    @pytest.mark.asyncio
    async def test_added_to_group(self, resolver: ContextResolver) -> None:
        """Test that the group name and user are resolved."""
        context = await resolver.resolve(
            NotificationKind.ADDED_TO_GROUP, {"user_id": "user-5", "group_id": "group-2"}
        )

        assert context.group_name == "Cohort B"
        assert context.user_name == "Esha"

    @pytest.mark.asyncio
    async def test_added_to_unnamed_group(self, resolver: ContextResolver) -> None:
        """Test that a group without name raises MissingGroup."""
        with pytest.raises(MissingGroup):
            await resolver.resolve(
                NotificationKind.ADDED_TO_GROUP,
                {"user_id": "user-5", "group_id": "group-unnamed"},
            )

    @pytest.mark.asyncio
    async def test_added_to_group_unknown_user(self, resolver: ContextResolver) -> None:
        """Test that an unknown user raises MissingUser."""
        with pytest.raises(MissingUser):
            await resolver.resolve(
                NotificationKind.ADDED_TO_GROUP, {"user_id": "ghost", "group_id": "group-2"}
            )

    @pytest.mark.asyncio
    async def test_new_document(self, resolver: ContextResolver) -> None:
        """Test that a document resolves to its run's course."""
        context = await resolver.resolve(
            NotificationKind.NEW_DOCUMENT, {"run_id": "run-2", "document_name": "Syllabus.pdf"}
        )

        assert context.course_name == "Data Science 101"
        assert context.group_id == "group-2"
        assert context.document_name == "Syllabus.pdf"

    @pytest.mark.asyncio
    async def test_run_finalized(self, resolver: ContextResolver) -> None:
        """Test that the end date is rendered in the display timezone."""
        context = await resolver.resolve(
            NotificationKind.COURSE_RUN_FINALIZED, {"courseRunId": "run-1"}
        )

        assert context.run_name == "Spring 2025"
        assert context.end_date_display == "2025-06-30 06:00:00 PM"

    @pytest.mark.asyncio
    async def test_run_finalized_without_group(self, store, resolver: ContextResolver) -> None:
        """Test that finalization does not need a group."""
        store.runs["run-solo"] = RunRecord("run-solo", "Solo Run", "course-1", None)

        context = await resolver.resolve(
            NotificationKind.COURSE_RUN_FINALIZED, {"run_id": "run-solo"}
        )

        assert context.group_id is None
        assert context.end_date_display is None
