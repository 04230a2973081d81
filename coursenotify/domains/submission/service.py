# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Auto-submission of open attempts at a deadline.

When a quiz or exam deadline passes, attempts still open in the run are
closed with the current time. After a redo deadline only the one
student's attempt is closed. Other activity types have nothing to close.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from coursenotify.domains.notification.models import AUTO_SUBMIT_ACTIVITY_TYPES
from coursenotify.infrastructure.database.repository import CourseDataStore
from coursenotify.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoSubmitResult:
    """Outcome of one auto-submit run.

    Attributes:
        activity_type: Activity type handled.
        updated_count: Number of attempts closed.
        updated_user_ids: Users whose attempts were closed.
        skipped_reason: Set when the activity type has nothing to close.
    """

    activity_type: str
    updated_count: int = 0
    updated_user_ids: list[str] = field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def success(self) -> bool:
        return self.skipped_reason is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "activity_type": self.activity_type,
            "updated_count": self.updated_count,
            "updated_user_ids": self.updated_user_ids,
            "skipped_reason": self.skipped_reason,
        }


class AutoSubmitService:
    """Closes open quiz attempts and exam submissions.

    Attributes:
        store: Store the updates are issued through.
        clock: Source of the submission time.
    """

    def __init__(
        self,
        store: CourseDataStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.clock = clock

    async def auto_submit_unsubmitted(
        self, activity_id: str, activity_type: str, run_id: str
    ) -> AutoSubmitResult:
        """Close every open attempt of an activity in one run."""
        return await self._auto_submit(activity_id, activity_type, run_id)

    async def auto_submit_student_redo(
        self, user_id: str, activity_id: str, activity_type: str, run_id: str
    ) -> AutoSubmitResult:
        """Close one student's open attempt of an activity in one run."""
        return await self._auto_submit(activity_id, activity_type, run_id, user_id=user_id)

    async def _auto_submit(
        self,
        activity_id: str,
        activity_type: str,
        run_id: str,
        user_id: str | None = None,
    ) -> AutoSubmitResult:
        if activity_type not in AUTO_SUBMIT_ACTIVITY_TYPES:
            logger.info("Skipping auto-submit for unsupported activity type: %s", activity_type)
            return AutoSubmitResult(
                activity_type=activity_type,
                skipped_reason=f"Unsupported activity type: {activity_type}",
            )

        updated = await self.store.auto_submit(
            activity_type,
            activity_id,
            run_id,
            submitted_at=self.clock(),
            user_id=user_id,
        )
        logger.info(
            "Auto-submitted %d %s attempt(s) for activity %s in run %s%s",
            len(updated),
            activity_type,
            activity_id,
            run_id,
            f" (user {user_id})" if user_id else "",
        )
        return AutoSubmitResult(
            activity_type=activity_type,
            updated_count=len(updated),
            updated_user_ids=updated,
        )
