"""Fail-fast concurrent await shared by the init and deploy phases."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Iterable


async def gather_fail_fast(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await ``aws`` concurrently and return their results in input order.

    The first failure in completion order is re-raised after every
    unfinished task is cancelled and awaited. Cancelling the caller
    cancels and awaits the children the same way.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    failed: list[asyncio.Future[Any]] = []

    def _record_failure(task: asyncio.Future[Any]) -> None:
        if not task.cancelled() and task.exception() is not None:
            failed.append(task)

    for task in tasks:
        task.add_done_callback(_record_failure)

    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except BaseException:
        await _cancel_all(tasks)
        raise

    if failed:
        await _cancel_all(tasks)
        raise failed[0].exception()
    return [task.result() for task in tasks]


async def _cancel_all(tasks: list[asyncio.Future[Any]]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
