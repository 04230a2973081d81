# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for DramatiqScheduler."""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import dramatiq
import pytest

from coursenotify.infrastructure.background.scheduler import DramatiqScheduler

NOW = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)


def mock_actor(message_id: str = "m-1") -> MagicMock:
    actor = MagicMock()
    actor.send_with_options.return_value = MagicMock(message_id=message_id)
    return actor


class TestDramatiqScheduler:
    """Tests for delayed message scheduling."""

    @pytest.mark.asyncio
    async def test_future_fire_is_delayed(self) -> None:
        """Test that the delay is the time left until the fire."""
        actor = mock_actor()
        scheduler = DramatiqScheduler({"notify_missed_deadline": actor}, clock=lambda: NOW)
        payload = {"course_activity_id": "ca-1", "run_id": "run-1", "deadline": "x"}

        fire = await scheduler.schedule_at(
            NOW + timedelta(hours=2),
            "notify_missed_deadline",
            payload,
            ("run_run-1", "activity_ca-1"),
        )

        actor.send_with_options.assert_called_once_with(
            kwargs=payload,
            delay=7_200_000,
            tags=["run_run-1", "activity_ca-1"],
        )
        assert fire.message_id == "m-1"
        assert fire.fire_at == NOW + timedelta(hours=2)
        assert fire.tags == ("run_run-1", "activity_ca-1")

    @pytest.mark.asyncio
    async def test_past_fire_runs_now(self) -> None:
        """Test that a fire in the past is sent without delay."""
        actor = mock_actor()
        scheduler = DramatiqScheduler({"task": actor}, clock=lambda: NOW)

        await scheduler.schedule_at(NOW - timedelta(minutes=5), "task", {})

        assert actor.send_with_options.call_args.kwargs["delay"] == 0

    @pytest.mark.asyncio
    async def test_send_runs_off_the_event_loop(self) -> None:
        """Test that the broker send does not run on the event loop thread."""
        send_threads: list[int] = []
        actor = mock_actor()
        actor.send_with_options.side_effect = lambda **kwargs: (
            send_threads.append(threading.get_ident()) or MagicMock(message_id="m-2")
        )
        scheduler = DramatiqScheduler({"task": actor}, clock=lambda: NOW)

        fire = await scheduler.schedule_at(NOW + timedelta(minutes=1), "task", {})

        assert fire.message_id == "m-2"
        assert send_threads and send_threads[0] != threading.get_ident()

    def test_naive_time_is_utc(self) -> None:
        """Test that naive times are read as UTC."""
        scheduler = DramatiqScheduler(clock=lambda: NOW)

        assert scheduler.delay_ms(datetime(2025, 6, 1, 8, 0, 30)) == 30_000

    @pytest.mark.asyncio
    async def test_unknown_task(self) -> None:
        """Test that a task without actor is rejected by the broker."""
        import coursenotify.infrastructure.background.tasks  # noqa: F401

        scheduler = DramatiqScheduler(clock=lambda: NOW)

        with pytest.raises(dramatiq.errors.ActorNotFound):
            await scheduler.schedule_at(NOW, "no_such_task", {})


class TestDramatiqSchedulerOnStubBroker:
    """Tests against the stub broker used in test mode."""

    @pytest.mark.asyncio
    async def test_message_lands_on_delay_queue(self) -> None:
        """Test that a delayed fire is enqueued on the queue's delay queue."""
        import coursenotify.infrastructure.background.tasks  # noqa: F401

        broker = dramatiq.get_broker()
        broker.flush_all()
        scheduler = DramatiqScheduler()

        fire = await scheduler.schedule_at(
            datetime.now(timezone.utc) + timedelta(hours=1),
            "notify_facilitator_course_run_finalized",
            {"run_id": "run-1"},
            ("run_run-1",),
        )

        queue = broker.queues["notifications.DQ"]
        assert queue.qsize() == 1
        assert fire.message_id is not None

        broker.flush_all()
