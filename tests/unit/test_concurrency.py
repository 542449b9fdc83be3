"""Unit tests for map_bounded."""

import asyncio

import pytest

from inductlite.workers.concurrency import map_bounded


class TestMapBounded:

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        async def worker(value):
            # Later items finish first
            await asyncio.sleep(0.001 * (5 - value))
            return value * 10

        assert await map_bounded([1, 2, 3, 4], 3, worker) == [10, 20, 30, 40]

    @pytest.mark.asyncio
    async def test_in_flight_never_exceeds_concurrency(self):
        in_flight = 0
        peak = 0

        async def worker(value):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            in_flight -= 1
            return value

        results = await map_bounded(list(range(25)), 4, worker)

        assert results == list(range(25))
        assert peak == 4

    @pytest.mark.asyncio
    async def test_each_item_processed_once(self):
        seen = []

        async def worker(value):
            seen.append(value)
            await asyncio.sleep(0)

        await map_bounded(list("abcdef"), 10, worker)

        assert sorted(seen) == list("abcdef")

    @pytest.mark.asyncio
    async def test_empty_input(self):
        async def worker(value):
            raise AssertionError("should not be called")

        assert await map_bounded([], 3, worker) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [0, -1])
    async def test_invalid_concurrency(self, concurrency):
        async def worker(value):
            return value

        with pytest.raises(ValueError):
            await map_bounded([1], concurrency, worker)

    @pytest.mark.asyncio
    async def test_worker_exception_propagates(self):
        async def worker(value):
            if value == 2:
                raise RuntimeError("bad item")
            return value

        with pytest.raises(RuntimeError, match="bad item"):
            await map_bounded([1, 2, 3], 1, worker)
