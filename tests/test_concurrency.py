"""Tests for taskhub.engine.concurrency.gather_all."""

import asyncio

import pytest

from taskhub.engine.concurrency import gather_all


async def value_after(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


class TestGatherAll:

    @pytest.mark.asyncio
    async def test_results_in_argument_order(self):
        results = await gather_all(value_after("a", 0.03), value_after("b", 0.0), value_after("c", 0.01))
        assert results == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await gather_all() == []

    @pytest.mark.asyncio
    async def test_first_failure_cancels_siblings(self):
        cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def boom():
            await asyncio.sleep(0.01)
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await gather_all(slow(), boom())
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_failure_propagates_first_exception(self):
        class FetchError(Exception):
            pass

        async def fail():
            raise FetchError("projects")

        with pytest.raises(FetchError):
            await gather_all(value_after(1), fail())
