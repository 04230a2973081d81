# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services for CourseNotify.

- notification: recipient resolution and notification fan-out
- submission: deadline auto-submission of open attempts
"""
