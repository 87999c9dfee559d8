"""Asyncio helpers for fire-and-forget work (replay runs, observer sends)."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Awaitable, Optional

from .logging_utils import LoggerLike, ensure_structured_logger


def create_logged_task(
    coro: Awaitable[Any],
    *,
    logger: LoggerLike = None,
    context: Optional[str] = None,
    pending: Optional[set[asyncio.Task[Any]]] = None,
) -> asyncio.Task[Any]:
    """Create a task whose exception is logged instead of lost.

    When ``pending`` is given the task is kept there until it finishes, which
    also keeps it from being garbage collected mid-flight.
    """
    task_logger = ensure_structured_logger(logger, fallback_name="asyncio")
    task = asyncio.get_running_loop().create_task(coro)
    if context:
        task.set_name(context)

    def _done(done_task: asyncio.Task[Any]) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            exc = done_task.exception()
            if exc is not None:
                task_logger.error(
                    "Unhandled exception in %s: %s",
                    context or done_task.get_name(),
                    exc,
                    exc_info=exc,
                )

    task.add_done_callback(_done)

    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)

    return task
