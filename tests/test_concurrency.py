"""Tests for deadline and gather helpers."""

import asyncio

import pytest

from bioresolve.resolve.concurrency import gather_settled, with_deadline


async def _fail():
    raise RuntimeError("boom")


class TestWithDeadline:
    """Tests for with_deadline."""

    def test_result_in_time(self):
        assert asyncio.run(with_deadline(asyncio.sleep(0, result="ok"), 1.0, "default")) == "ok"

    def test_timeout_returns_default(self):
        assert asyncio.run(with_deadline(asyncio.sleep(5, result="late"), 0.01, "default")) == "default"

    def test_error_returns_default(self):
        assert asyncio.run(with_deadline(_fail(), 1.0, [])) == []

    def test_late_result_dropped(self):
        """The timed-out call is cancelled and never completes."""
        finished = []

        async def slow():
            await asyncio.sleep(0.2)
            finished.append(True)
            return "late"

        async def scenario():
            result = await with_deadline(slow(), 0.01, None)
            await asyncio.sleep(0.3)
            return result

        assert asyncio.run(scenario()) is None
        assert finished == []


class TestGatherSettled:
    """Tests for gather_settled."""

    def test_failures_dropped_order_kept(self):
        async def value(v, delay):
            await asyncio.sleep(delay)
            return v

        results = asyncio.run(gather_settled([value("a", 0.02), _fail(), value("b", 0.0)]))
        assert results == ["a", "b"]

    def test_empty(self):
        assert asyncio.run(gather_settled([])) == []

    def test_cancellation_propagates(self):
        async def cancelled():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(gather_settled([cancelled()]))
