# ──────────────────────────────────────────────────────────────────────────────
# File: utils/async_helpers.py
# Purpose: Bounded parallel-for over coroutines (fixed worker pool draining a
#          shared cursor) used for remote fetches.
#
# Contract:
#   • At most `limit` workers run `worker(item)` at any moment.
#   • Items are taken in input order by whichever worker is free.
#   • After the first failure no new item is started; in-flight items finish.
#   • The first failure is re-raised once every worker has stopped.
# ──────────────────────────────────────────────────────────────────────────────

import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")

DEFAULT_LIMIT = 10


async def run_with_limit(
    items: Iterable[T],
    limit: int,
    worker: Callable[[T], Awaitable[object]],
) -> int:
    """
    Run ``worker`` over ``items`` with at most ``limit`` in flight.

    Args:
        items: Work items; materialized up front so the count is known.
        limit: Concurrency ceiling (>= 1).
        worker: Coroutine function applied to each item.

    Returns:
        Number of items processed successfully.

    Raises:
        ValueError: If ``limit`` is below 1.
        Exception: The first exception raised by any worker.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1 (got {limit})")

    pending = list(items)
    cursor = iter(pending)
    failures: List[BaseException] = []
    done = 0

    async def _drain() -> None:
        nonlocal done
        while not failures:
            try:
                item = next(cursor)
            except StopIteration:
                return
            try:
                await worker(item)
            except Exception as exc:
                failures.append(exc)
                return
            done += 1

    workers = [asyncio.create_task(_drain()) for _ in range(min(limit, len(pending)))]
    if workers:
        await asyncio.gather(*workers)
    if failures:
        raise failures[0]
    return done
