# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delayed task scheduling on the Dramatiq broker.

A scheduled fire is a message sent with a delay. The broker holds it
until it is due and then hands it to a worker like any other message.
Correlation tags travel in the message options so operators can find
the pending fires of a run or activity.

Example:
    from coursenotify.infrastructure.background.scheduler import DramatiqScheduler

    scheduler = DramatiqScheduler()
    await scheduler.schedule_at(
        deadline,
        "notify_missed_deadline",
        {"course_activity_id": "ca-1", "run_id": "run-1", "deadline": "..."},
        ("run_run-1", "activity_ca-1"),
    )
"""

import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable, Mapping

import dramatiq

from coursenotify.domains.notification.scheduling import ScheduledFire, TaskScheduler
from coursenotify.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class DramatiqScheduler(TaskScheduler):
    """TaskScheduler that sends delayed Dramatiq messages.

    Args:
        actors: Actors by task name; looked up on the global broker otherwise.
        clock: Source of the current time.
    """

    def __init__(
        self,
        actors: Mapping[str, dramatiq.Actor] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._actors = dict(actors or {})
        self._clock = clock

    def _get_actor(self, task: str) -> dramatiq.Actor:
        actor = self._actors.get(task)
        if actor is None:
            actor = dramatiq.get_broker().get_actor(task)
            self._actors[task] = actor
        return actor

    def delay_ms(self, when: datetime) -> int:
        """Milliseconds from now until when, never negative."""
        remaining = ensure_utc(when) - self._clock()
        return max(0, int(remaining.total_seconds() * 1000))

    async def schedule_at(
        self,
        when: datetime,
        task: str,
        payload: dict[str, Any],
        tags: tuple[str, ...] = (),
    ) -> ScheduledFire:
        """Send a delayed message for a task.

        The send runs in the default executor; enqueueing on Redis is blocking.

        Args:
            when: Time to run at; past times run immediately.
            task: Actor name.
            payload: Keyword arguments for the actor.
            tags: Correlation tags stored with the message.

        Returns:
            The registered fire with the broker's message id.

        Raises:
            dramatiq.errors.ActorNotFound: If no actor has that name.
        """
        actor = self._get_actor(task)
        delay = self.delay_ms(when)
        loop = asyncio.get_running_loop()
        message = await loop.run_in_executor(
            None,
            partial(actor.send_with_options, kwargs=payload, delay=delay, tags=list(tags)),
        )
        logger.debug(
            "Queued %s with delay %dms (message %s)", task, delay, message.message_id
        )
        return ScheduledFire(
            task=task,
            fire_at=ensure_utc(when),
            payload=payload,
            tags=tuple(tags),
            message_id=message.message_id,
        )
