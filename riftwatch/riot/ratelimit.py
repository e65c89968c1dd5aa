# riot/ratelimit.py
# ============================================================================
# Dual-window quota + priority admission queue
#   • short window (20 req / 1 s) and long window (100 req / 120 s)
#   • a request is admitted only when BOTH windows have headroom
#   • waiters are served by a single background task, highest priority first
# ============================================================================

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)


@dataclass
class QuotaWindow:
    """Fixed window counter; resets wholesale once its duration has elapsed."""
    limit: int
    duration: float  # seconds
    used: int = 0
    started_at: float = 0.0

    def refresh(self, now: float) -> None:
        if now - self.started_at >= self.duration:
            self.used = 0
            self.started_at = now

    def has_headroom(self) -> bool:
        return self.used < self.limit

    def wait_time(self, now: float) -> float:
        """Seconds until this window frees capacity (0 if it already has some)."""
        if self.has_headroom():
            return 0.0
        return max(0.0, self.duration - (now - self.started_at))


@dataclass(order=True)
class QueuedRequest:
    # heapq is a min-heap: negate priority so the highest value pops first,
    # the arrival sequence breaks ties in FIFO order.
    sort_key: tuple
    priority: int = field(compare=False)
    admit: asyncio.Future = field(compare=False)


class RateLimiter:
    """
    Async admission control in front of every upstream call.

    ``acquire()`` returns at once when both windows have headroom and nobody is
    already waiting. Otherwise the caller parks on a future that the servicer
    task resolves when quota frees up. Only one servicer runs at a time; it is
    started on demand and exits when the queue drains.
    """

    def __init__(
        self,
        per_second: int = 20,
        per_two_minutes: int = 100,
        short_window: float = 1.0,
        long_window: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        now = clock()
        self.short = QuotaWindow(per_second, short_window, started_at=now)
        self.long = QuotaWindow(per_two_minutes, long_window, started_at=now)

        self._queue: List[QueuedRequest] = []
        self._sequence = itertools.count()
        self._servicer: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._closed = False

    # ─── Window accounting ─────────────────────────────────────────────
    def _refresh(self) -> None:
        now = self._clock()
        self.short.refresh(now)
        self.long.refresh(now)

    def _can_admit(self) -> bool:
        self._refresh()
        return self.short.has_headroom() and self.long.has_headroom()

    def _record(self) -> None:
        self.short.used += 1
        self.long.used += 1

    def _wait_time(self) -> float:
        self._refresh()
        now = self._clock()
        # Both windows must have room, so wait for the one that frees up last
        return max(self.short.wait_time(now), self.long.wait_time(now))

    # ─── Public API ────────────────────────────────────────────────────
    async def acquire(self, priority: int = 0) -> None:
        """
        Block until the caller may issue one upstream request.

        Args:
            priority: Higher values are admitted before lower ones while queued.

        Raises:
            asyncio.CancelledError: If the caller is cancelled while queued, in
                which case its place in the queue is released.
            RuntimeError: If the limiter has been closed.
        """
        if self._closed:
            raise RuntimeError("RateLimiter is closed")

        async with self._lock:
            if not self._queue and self._can_admit():
                self._record()
                return

            loop = asyncio.get_running_loop()
            request = QueuedRequest(
                sort_key=(-priority, next(self._sequence)),
                priority=priority,
                admit=loop.create_future(),
            )
            heapq.heappush(self._queue, request)
            log.debug(f"Rate limit: queued request (priority={priority}, depth={len(self._queue)})")
            self._ensure_servicer()

        try:
            await request.admit
        except asyncio.CancelledError:
            self._discard(request)
            raise

    def _discard(self, request: QueuedRequest) -> None:
        """Drop a cancelled waiter from the queue so it cannot hold a slot."""
        try:
            self._queue.remove(request)
        except ValueError:
            return
        heapq.heapify(self._queue)
        log.debug(f"Rate limit: waiter cancelled (depth={len(self._queue)})")

    def _ensure_servicer(self) -> None:
        if self._servicer is None or self._servicer.done():
            self._servicer = asyncio.create_task(self._service_queue())

    async def _service_queue(self) -> None:
        while self._queue:
            wait = self._wait_time()
            if wait > 0:
                log.debug(f"Rate limit: waiting {wait:.3f}s ({len(self._queue)} queued)")
                await asyncio.sleep(wait)

            async with self._lock:
                if not self._can_admit():
                    continue
                # The heap is re-read on every pass: anything that joined
                # during the sleep competes on priority with older waiters.
                while self._queue:
                    request = heapq.heappop(self._queue)
                    if request.admit.done():
                        continue
                    self._record()
                    request.admit.set_result(None)
                    break

    async def close(self) -> None:
        """Stop the servicer and cancel every waiter still queued."""
        self._closed = True
        if self._servicer is not None and not self._servicer.done():
            self._servicer.cancel()
            try:
                await self._servicer
            except asyncio.CancelledError:
                pass
        for request in self._queue:
            if not request.admit.done():
                request.admit.cancel()
        self._queue.clear()

    # ─── Observability ─────────────────────────────────────────────────
    @property
    def queue_depth(self) -> int:
        return sum(1 for r in self._queue if not r.admit.done())

    def status(self) -> Dict[str, object]:
        """Snapshot of quota usage and queue depth."""
        can_admit = self._can_admit()
        return {
            "requests_this_second": self.short.used,
            "requests_this_2_minutes": self.long.used,
            "per_second_limit": self.short.limit,
            "per_2_minutes_limit": self.long.limit,
            "queue_length": self.queue_depth,
            "can_make_request": can_admit and self.queue_depth == 0,
        }
