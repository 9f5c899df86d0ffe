"""
TaskHub Concurrency Helpers — Fan-out / join for independent backing-store calls.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, List


async def gather_all(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run awaitables concurrently and return their results in order.

    Unlike ``asyncio.gather``, the first failure cancels every sibling that
    is still running before it is re-raised, so no orphaned fetch outlives
    the caller.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel(tasks)
        raise

    failed = [t for t in tasks if t in done and not t.cancelled() and t.exception() is not None]
    if failed:
        await _cancel(pending)
        raise failed[0].exception()

    return [t.result() for t in tasks]


async def _cancel(tasks) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
