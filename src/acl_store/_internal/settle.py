"""Run a step to completion even when the calling task is cancelled."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


async def settle(awaitable: Awaitable[T]) -> T:
    """Await ``awaitable`` until it finishes, whatever happens to the caller.

    Used for steps that cannot be taken back once sent (a ``COMMIT``, an
    ``EXEC``), so the caller always learns their real outcome.  A
    cancellation that arrives meanwhile is not lost: it is requested again
    and hits the caller at its next suspension point.
    """
    inner = asyncio.ensure_future(awaitable)
    cancelled = False
    try:
        while not inner.done():
            try:
                await asyncio.shield(inner)
            except asyncio.CancelledError:
                if inner.done():
                    break
                cancelled = True
        return inner.result()
    finally:
        if cancelled:
            task = asyncio.current_task()
            if task is not None:
                task.cancel()
