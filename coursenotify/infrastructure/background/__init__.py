# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure module for CourseNotify.

Provides background task processing with Dramatiq:
- Redis broker for message persistence and durability
- Delayed messages for deadline-relative notifications
- Actor-based task definitions for notifications and auto-submit

Quick Start:
    # Setup broker (call once at startup)
    from coursenotify.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    # Send tasks
    from coursenotify.infrastructure.background.tasks import notify_redo_enabled

    notify_redo_enabled.send(
        user_id="user-1",
        course_activity_id="ca-1",
        new_deadline="2025-06-01T10:00:00Z",
    )

Running Workers:
    dramatiq coursenotify.infrastructure.background.tasks --processes 2 --threads 4
"""

# Re-export from broker module
from coursenotify.infrastructure.background.broker import (
    BrokerManager,
    Priority,
    Queues,
    get_broker_manager,
    setup_dramatiq,
)

# Re-export from scheduler module
from coursenotify.infrastructure.background.scheduler import DramatiqScheduler

# Task actors are imported from coursenotify.infrastructure.background.tasks
# to avoid circular imports

__all__ = [
    # Broker
    "BrokerManager",
    "Priority",
    "Queues",
    "get_broker_manager",
    "setup_dramatiq",
    # Scheduler
    "DramatiqScheduler",
]
