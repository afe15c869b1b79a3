from __future__ import annotations

import asyncio
from collections import deque
import time


class RequestRateLimiter:
    """Async limiter allowing at most `permits` requests per `period_sec`.

    A caller over the limit reserves the next free slot under the lock and
    sleeps after releasing it, so later callers queue behind the reservation
    rather than behind the sleep.
    """

    def __init__(self, permits: int, period_sec: float) -> None:
        self._permits = max(int(permits), 1)
        self._period_sec = max(float(period_sec), 0.001)
        self._issued: deque[float] = deque()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            while self._issued and now - self._issued[0] >= self._period_sec:
                self._issued.popleft()
            if len(self._issued) < self._permits:
                slot = now
            else:
                slot = self._issued.popleft() + self._period_sec
            self._issued.append(slot)
        wait_sec = slot - now
        if wait_sec > 0:
            await asyncio.sleep(wait_sec)
