# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq broker configuration for CourseNotify.

Notification and auto-submit tasks run on a Redis broker. Scheduled
fires are ordinary messages sent with a delay, so Redis also holds every
pending deadline notification until it is due.

Example:
    from coursenotify.infrastructure.background.broker import setup_dramatiq

    # Task modules call this before declaring actors
    broker = setup_dramatiq()
"""

import logging
import os

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker

from coursenotify.core.config import get_settings

logger = logging.getLogger(__name__)


class Queues:
    """Queue name constants for task routing."""

    DEFAULT = "default"
    NOTIFICATIONS = "notifications"
    AUTO_SUBMIT = "auto_submit"


class Priority:
    """Task priority levels (lower number = higher priority)."""

    CRITICAL = 0
    HIGH = 1
    NORMAL = 3


class BrokerManager:
    """Manages Dramatiq broker lifecycle.

    Creates the broker once per process and declares the task queues.

    Attributes:
        _broker: The Dramatiq broker instance.
        _initialized: Whether the broker has been initialized.
    """

    def __init__(self) -> None:
        """Initialize broker manager."""
        self._broker: dramatiq.Broker | None = None
        self._initialized = False

    def setup(self) -> dramatiq.Broker:
        """Setup and configure the Dramatiq broker.

        Uses a StubBroker when DRAMATIQ_TEST_MODE=true.

        Returns:
            Configured broker instance.
        """
        if self._initialized:
            return self._broker  # type: ignore

        logger.info("Setting up Dramatiq broker...")

        use_stub = os.getenv("DRAMATIQ_TEST_MODE", "false").lower() == "true"

        if use_stub:
            self._broker = StubBroker()
            self._broker.emit_after("process_boot")
            logger.info("Using StubBroker for testing")
        else:
            redis_url = get_settings().redis.url
            self._broker = RedisBroker(url=redis_url)
            logger.info("Redis broker initialized (url: %s)", redis_url.split("@")[-1])

        # Declare queues up front so delayed messages have a home
        for queue in (Queues.DEFAULT, Queues.NOTIFICATIONS, Queues.AUTO_SUBMIT):
            self._broker.declare_queue(queue)

        # Set as global broker
        dramatiq.set_broker(self._broker)
        self._initialized = True

        return self._broker


# Singleton instance
_broker_manager: BrokerManager | None = None


def get_broker_manager() -> BrokerManager:
    """Get the singleton broker manager.

    Returns:
        BrokerManager instance.
    """
    global _broker_manager
    if _broker_manager is None:
        _broker_manager = BrokerManager()
    return _broker_manager


def setup_dramatiq() -> dramatiq.Broker:
    """Setup Dramatiq with configuration from settings.

    This should be called once at application startup.

    Returns:
        Configured broker.
    """
    return get_broker_manager().setup()
