"""Subprocess output plumbing.

- drain_subprocess_output: concurrent stdout/stderr draining into a byte sink
  (prevents the 64KB pipe deadlock)
- log_task_exception: done-callback for background tasks
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fog._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from fog.platform_utils import ProcessWrapper

logger = get_logger(__name__)


async def drain_subprocess_output(
    process: ProcessWrapper,
    write: Callable[[bytes], int],
    *,
    process_name: str,
    context_id: str,
) -> None:
    """Forward subprocess stdout/stderr lines to ``write`` until EOF.

    Both pipes are read concurrently; reading them one after the other
    deadlocks once the unread pipe fills its 64KB buffer.

    Args:
        process: ProcessWrapper with stdout/stderr pipes
        write: Byte sink, typically LogStream.write
        process_name: Process identifier for logging (e.g. "QEMU")
        context_id: Context identifier (e.g. machine ID) for log correlation
    """

    async def pump(stream: asyncio.StreamReader) -> None:
        async for line in stream:
            write(line)

    logger.debug(
        f"Draining {process_name} output",
        extra={"context_id": context_id, "pid": process.pid},
    )
    async with asyncio.TaskGroup() as tg:
        if process.stdout:
            tg.create_task(pump(process.stdout))
        if process.stderr:
            tg.create_task(pump(process.stderr))


def log_task_exception(task: asyncio.Task[None]) -> None:
    """Log exceptions from background tasks.

    Usage:
        task = asyncio.create_task(some_coroutine())
        task.add_done_callback(log_task_exception)
    """
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Background task failed",
            extra={"task_name": task.get_name()},
            exc_info=exc,
        )
