# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains clients and managers for:
- Database connections and course data queries (PostgreSQL)
- Background task processing and delayed scheduling (Dramatiq)
- Notification delivery channels (FCM push, SMTP email)
"""
