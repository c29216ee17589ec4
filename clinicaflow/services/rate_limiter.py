"""Simple in-memory rate limiting utilities."""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Tuple


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int


class InMemoryRateLimiter:
    """Sliding-window rate limiter suitable for single-node deployments."""

    SWEEP_INTERVAL_SECONDS = 60

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window_seconds, hit timestamps)
        self._buckets: Dict[str, Tuple[int, Deque[float]]] = {}
        self._last_sweep = clock()

    def check(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Record a hit for ``key`` if it fits in the window."""
        now = self._clock()
        cutoff = now - window_seconds

        with self._lock:
            self._sweep(now)

            bucket = self._buckets.get(key)
            hits = bucket[1] if bucket else deque()
            while hits and hits[0] <= cutoff:
                hits.popleft()

            if len(hits) >= limit:
                retry_after = max(1, math.ceil(hits[0] + window_seconds - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            hits.append(now)
            self._buckets[key] = (window_seconds, hits)
            return RateLimitDecision(allowed=True, remaining=limit - len(hits), retry_after=0)

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        return self.check(key, limit, window_seconds).allowed

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _sweep(self, now: float) -> None:
        """Drop buckets whose newest hit has left its window. Caller holds the lock."""
        if now - self._last_sweep < self.SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        stale = [
            key for key, (window, hits) in self._buckets.items()
            if not hits or hits[-1] <= now - window
        ]
        for key in stale:
            del self._buckets[key]


rate_limiter = InMemoryRateLimiter()
