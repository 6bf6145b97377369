"""
Per-client-IP sliding window rate limiting for the gateway.

In-memory only: limits apply per process.
"""

import time
from collections import deque
from typing import Callable, Optional

from fastapi import HTTPException, Request, status


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""

    def __init__(self, limit: int, window_seconds: int, retry_after: int):
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded: {limit} requests per {window_seconds}s")


class SlidingWindowRateLimiter:
    """
    Allows ``limit`` hits per ``window_seconds`` for each key.

    Usable directly as a FastAPI dependency; the key is the client IP.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        message: str = "Too many requests, please try again later.",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def _sweep(self, window_start: float) -> None:
        """Drop keys whose hits have all left the window."""
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in stale:
            del self._hits[key]

    def check(self, key: str) -> None:
        """
        Record a hit for ``key``.

        Raises:
            RateLimitExceeded: if the key is over its limit
        """
        now = self._clock()
        window_start = now - self.window_seconds

        # At most one full sweep per window
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now

        hits = self._hits.setdefault(key, deque())

        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.limit:
            retry_after = int(hits[0] - window_start) + 1
            raise RateLimitExceeded(self.limit, self.window_seconds, retry_after)

        hits.append(now)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)

    async def __call__(self, request: Request) -> None:
        key = request.client.host if request.client else "unknown"
        try:
            self.check(key)
        except RateLimitExceeded as e:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(e.retry_after)},
            ) from e
