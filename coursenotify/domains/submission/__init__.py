# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Deadline auto-submission of quiz attempts and exam submissions."""

from coursenotify.domains.submission.service import AutoSubmitResult, AutoSubmitService

__all__ = [
    "AutoSubmitResult",
    "AutoSubmitService",
]
