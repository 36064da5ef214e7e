"""
Deadline and gather helpers for collaborator calls.

Every network call made during a resolution goes through with_deadline(); a
timeout or error turns into the caller's default instead of an exception, and
sibling calls keep running.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def with_deadline(awaitable: Awaitable[T], timeout: float, default: T, label: str = "call") -> T:
    """
    Await with a deadline, returning default on timeout or failure.

    On timeout the underlying task is cancelled, so a late result is dropped
    rather than delivered.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("%s timed out after %.1fs", label, timeout)
    except Exception as exc:
        logger.debug("%s failed: %s", label, exc)
    return default


async def gather_settled(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """
    Run awaitables concurrently and keep the ones that succeeded.

    All awaitables are awaited before returning; failures are logged and
    dropped. Result order follows input order.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    settled: list[T] = []
    for result in results:
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.debug("gathered task failed: %s", result)
            continue
        settled.append(result)
    return settled
