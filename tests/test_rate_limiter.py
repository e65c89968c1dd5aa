"""Timing and ordering tests for the dual-window admission queue."""

import asyncio
import time

import pytest

from riftwatch.riot.ratelimit import QuotaWindow, RateLimiter


class TestQuotaWindow:
    """Fixed-window accounting."""

    def test_resets_after_duration(self):
        window = QuotaWindow(limit=2, duration=1.0, used=2, started_at=10.0)
        window.refresh(10.5)
        assert not window.has_headroom()
        assert window.wait_time(10.5) == pytest.approx(0.5)

        window.refresh(11.0)
        assert window.used == 0
        assert window.started_at == 11.0
        assert window.wait_time(11.0) == 0.0


@pytest.mark.asyncio
class TestRateLimiter:
    """Admission behaviour of RateLimiter."""

    async def test_admits_immediately_within_quota(self):
        limiter = RateLimiter(per_second=5, per_two_minutes=100)
        start = time.monotonic()
        for _ in range(5):
            await limiter.acquire()

        assert time.monotonic() - start < 0.1
        status = limiter.status()
        assert status["requests_this_second"] == 5
        assert status["requests_this_2_minutes"] == 5
        assert status["queue_length"] == 0
        await limiter.close()

    async def test_calls_beyond_short_window_wait_for_reset(self):
        limiter = RateLimiter(per_second=3, per_two_minutes=100, short_window=0.3)
        start = time.monotonic()
        admitted = []

        async def call(i):
            await limiter.acquire()
            admitted.append((i, time.monotonic() - start))

        await asyncio.gather(*(call(i) for i in range(5)))

        delays = dict(admitted)
        assert all(delays[i] < 0.1 for i in range(3))
        assert all(delays[i] >= 0.25 for i in range(3, 5))
        await limiter.close()

    async def test_long_window_also_enforced(self):
        limiter = RateLimiter(per_second=10, per_two_minutes=2, short_window=5.0, long_window=0.3)
        start = time.monotonic()
        await limiter.acquire()
        await limiter.acquire()
        await limiter.acquire()

        assert time.monotonic() - start >= 0.25
        await limiter.close()

    async def test_higher_priority_admitted_first(self):
        limiter = RateLimiter(per_second=1, per_two_minutes=100, short_window=0.2)
        await limiter.acquire()  # exhaust the window
        order = []

        async def call(name, priority):
            await limiter.acquire(priority)
            order.append(name)

        low = asyncio.create_task(call("low", 0))
        await asyncio.sleep(0.01)
        high = asyncio.create_task(call("high", 5))
        await asyncio.gather(low, high)

        assert order == ["high", "low"]
        await limiter.close()

    async def test_same_priority_is_fifo(self):
        limiter = RateLimiter(per_second=1, per_two_minutes=100, short_window=0.1)
        await limiter.acquire()
        order = []

        async def call(name):
            await limiter.acquire(1)
            order.append(name)

        tasks = []
        for name in ("first", "second", "third"):
            tasks.append(asyncio.create_task(call(name)))
            await asyncio.sleep(0)
        await asyncio.gather(*tasks)

        assert order == ["first", "second", "third"]
        await limiter.close()

    async def test_cancelled_waiter_releases_its_place(self):
        limiter = RateLimiter(per_second=1, per_two_minutes=100, short_window=0.2)
        await limiter.acquire()

        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.01)
        assert limiter.queue_depth == 1

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert limiter.queue_depth == 0

        # The freed slot goes to the next caller once the window resets
        await asyncio.wait_for(limiter.acquire(), timeout=1.0)
        await limiter.close()

    async def test_close_cancels_queued_waiters(self):
        limiter = RateLimiter(per_second=1, per_two_minutes=100, short_window=10.0)
        await limiter.acquire()
        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0.01)

        await limiter.close()

        with pytest.raises(asyncio.CancelledError):
            await waiter
        with pytest.raises(RuntimeError):
            await limiter.acquire()

    async def test_never_admits_more_than_capacity_per_window(self):
        limiter = RateLimiter(per_second=4, per_two_minutes=100, short_window=0.25)
        start = time.monotonic()
        stamps = []

        async def call():
            await limiter.acquire()
            stamps.append(time.monotonic() - start)

        await asyncio.gather(*(call() for _ in range(10)))

        assert len(stamps) == 10
        assert sum(1 for s in stamps if s < 0.2) == 4
        assert sum(1 for s in stamps if s < 0.45) <= 8
        await limiter.close()

    async def test_twenty_five_calls_against_twenty_per_second(self):
        limiter = RateLimiter(per_second=20, per_two_minutes=100)
        start = time.monotonic()
        stamps = []

        async def call():
            await limiter.acquire()
            stamps.append(time.monotonic() - start)

        await asyncio.gather(*(call() for _ in range(25)))

        stamps.sort()
        assert len(stamps) == 25
        assert stamps[19] < 0.2
        assert all(s >= 0.9 for s in stamps[20:])
        await limiter.close()
