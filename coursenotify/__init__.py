"""CourseNotify.

Notification engine for a learning-management platform: resolves who is
entitled to a course notification (one group's students, one course's
managers) and fans delivery out over push and email.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
