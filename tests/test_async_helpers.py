# File: test_async_helpers.py
# Directory: tests
# Purpose: Bounded fetch scheduler: concurrency ceiling, ordering, first-failure propagation.

import asyncio

import pytest

from utils.async_helpers import run_with_limit


@pytest.mark.asyncio
async def test_never_exceeds_limit_and_runs_everything():
    state = {"now": 0, "peak": 0}
    seen = []

    async def worker(item):
        state["now"] += 1
        state["peak"] = max(state["peak"], state["now"])
        await asyncio.sleep(0.001 * (item % 3))
        seen.append(item)
        state["now"] -= 1

    done = await run_with_limit(range(25), 4, worker)

    assert done == 25
    assert sorted(seen) == list(range(25))
    assert state["peak"] == 4


@pytest.mark.asyncio
async def test_items_are_started_in_input_order():
    started = []

    async def worker(item):
        started.append(item)
        await asyncio.sleep(0)

    await run_with_limit(["a", "b", "c", "d", "e"], 2, worker)
    assert started == ["a", "b", "c", "d", "e"]


@pytest.mark.asyncio
async def test_first_failure_propagates_and_stops_scheduling():
    started = []

    async def worker(item):
        started.append(item)
        await asyncio.sleep(0)
        if item == 1:
            raise RuntimeError("boom")
        await asyncio.sleep(0.01)

    with pytest.raises(RuntimeError, match="boom"):
        await run_with_limit(range(10), 2, worker)

    # items 0 and 1 were in flight; at most one more was picked up before the failure landed
    assert len(started) < 10


@pytest.mark.asyncio
async def test_in_flight_tasks_finish_after_failure():
    finished = []

    async def worker(item):
        if item == "bad":
            raise ValueError("bad item")
        await asyncio.sleep(0.01)
        finished.append(item)

    with pytest.raises(ValueError):
        await run_with_limit(["slow", "bad"], 2, worker)
    assert finished == ["slow"]


@pytest.mark.asyncio
async def test_empty_input_is_noop():
    async def worker(item):  # pragma: no cover
        raise AssertionError("should not run")

    assert await run_with_limit([], 3, worker) == 0


@pytest.mark.asyncio
async def test_limit_must_be_positive():
    async def worker(item):  # pragma: no cover
        return None

    with pytest.raises(ValueError):
        await run_with_limit([1], 0, worker)
