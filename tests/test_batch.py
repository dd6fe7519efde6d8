"""Tests for best-effort batches."""

import asyncio

import pytest

from src.errors import VendorAPIError
from src.integrations.batch import run_batch


class TestRunBatch:
    """Tests for run_batch."""

    @pytest.mark.asyncio
    async def test_all_succeed_in_order(self):
        async def double(n):
            return n * 2

        result = await run_batch([1, 2, 3], double)

        assert result.succeeded == [2, 4, 6]
        assert result.all_succeeded

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_batch(self):
        async def create(n):
            if n == 2:
                raise VendorAPIError("miro", 400, "Invalid position")
            return n

        result = await run_batch([1, 2, 3], create)

        assert result.succeeded == [1, 3]
        assert len(result.failed) == 1
        assert result.failed[0].item == 2
        assert result.failed[0].message == "miro API error 400: Invalid position"
        assert not result.all_succeeded

    @pytest.mark.asyncio
    async def test_plain_exception_message(self):
        async def explode(n):
            raise RuntimeError("boom")

        result = await run_batch(["a"], explode)

        assert result.failed[0].message == "boom"

    @pytest.mark.asyncio
    async def test_concurrency_limit(self):
        in_flight = 0
        peak = 0

        async def work(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return n

        result = await run_batch(range(6), work, concurrency=2)

        assert peak == 2
        assert result.succeeded == list(range(6))

    @pytest.mark.asyncio
    async def test_sequential_by_default(self):
        order = []

        async def work(n):
            order.append(("start", n))
            await asyncio.sleep(0)
            order.append(("end", n))

        await run_batch([1, 2], work)

        assert order == [("start", 1), ("end", 1), ("start", 2), ("end", 2)]

    @pytest.mark.asyncio
    async def test_empty(self):
        async def work(n):
            return n

        result = await run_batch([], work)

        assert result.succeeded == []
        assert result.failed == []
