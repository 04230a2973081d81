# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for CourseNotify workers.

Module code logs through the standard library (``logging.getLogger``)
with %-style messages. Those records are rendered by structlog, so the
context an actor binds (task name, run, course activity, user) appears
on every line written while that task runs, whichever logger wrote it.

Console output in development, one JSON object per line otherwise.

Example:
    >>> from coursenotify.utils.logging import setup_logging, bind_context
    >>> from coursenotify.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> bind_context(task="notify_missed_deadline", run_id="run-3")
    >>> logging.getLogger("coursenotify").info("Dispatched %d", 3)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from coursenotify.core.config.settings import Settings

# Libraries that log every request or message at INFO
NOISY_LOGGERS = (
    "dramatiq",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "aiosmtplib",
    "google.auth",
    "urllib3",
    "asyncio",
)

_SHARED_PROCESSORS: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


class StructlogHandler(logging.StreamHandler):
    """Root handler installed by setup_logging."""


def _render_processors(settings: "Settings") -> list[Processor]:
    strip_meta = structlog.stdlib.ProcessorFormatter.remove_processors_meta
    if settings.is_development or settings.debug:
        return [strip_meta, structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    return [strip_meta, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and route standard library logging through it.

    Calling it again (for example from another worker module) replaces
    the handler it installed instead of duplicating output.

    Args:
        settings: Application settings (environment, debug, log_level).
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=_render_processors(settings),
    )
    handler = StructlogHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h, StructlogHandler)]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("coursenotify").setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for key-value style events."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Attach identifiers to every log line until clear_context is called.

    Background actors bind the task name and the identifiers of the
    notification before doing any work.

    Example:
        >>> bind_context(task="notify_missed_deadline", run_id="run-3")
        >>> logger.info("No recipients")  # carries task and run_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all bound identifiers.

    Worker threads are reused across messages; actors call this in a
    finally block so one task's identifiers never leak into the next.
    """
    structlog.contextvars.clear_contextvars()
