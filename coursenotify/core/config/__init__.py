# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for CourseNotify.

Settings are Pydantic models loaded from environment variables.

Example:
    >>> from coursenotify.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.notifications.display_timezone)
    'Asia/Kolkata'
"""

from coursenotify.core.config.settings import (
    DatabaseSettings,
    NotificationSettings,
    PushSettings,
    RedisSettings,
    Settings,
    SMTPSettings,
    WorkerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "NotificationSettings",
    "PushSettings",
    "RedisSettings",
    "SMTPSettings",
    "Settings",
    "WorkerSettings",
    "clear_settings_cache",
    "get_settings",
]
