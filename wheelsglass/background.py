"""Fire-and-forget task helper.

Tasks spawned here are detached from the request: the caller never awaits
them and their failures are only logged. The module keeps a reference to
each pending task so the event loop cannot garbage-collect it mid-flight.
"""

import asyncio

from loguru import logger

_pending: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.opt(exception=exc).error("Background task {} failed", task.get_name())


def spawn(coro, name: str | None = None) -> asyncio.Task:
    """Schedule coro on the running loop and return immediately."""
    task = asyncio.create_task(coro, name=name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain(timeout: float = 5.0) -> None:
    """Wait briefly for outstanding tasks. Used at shutdown and in tests."""
    if not _pending:
        return
    await asyncio.wait(list(_pending), timeout=timeout)
