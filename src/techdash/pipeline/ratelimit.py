"""
techdash.pipeline.ratelimit

In-process fixed-window rate limiter.

Responsibilities:
- Count hits per key inside a window that starts at the key's first hit.
- Report standard rate-limit metadata (limit, remaining, reset).
- Prune idle windows so memory stays bounded by active clients.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.datastructures import MutableHeaders


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

    def apply_headers(self, headers: MutableHeaders) -> None:
        headers["RateLimit-Limit"] = str(self.limit)
        headers["RateLimit-Remaining"] = str(self.remaining)
        headers["RateLimit-Reset"] = str(self.reset_after)


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1 or window_seconds <= 0:
            raise ValueError("rate limit needs max_requests >= 1 and a positive window")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # key -> (window_start, count)
        self._buckets: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        start, count = self._buckets.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._buckets[key] = (start, count)
        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_after=max(math.ceil(start + self.window_seconds - now), 0),
        )

    def prune(self) -> int:
        now = self._clock()
        idle = [k for k, (start, _) in self._buckets.items() if now - start >= self.window_seconds]
        for key in idle:
            del self._buckets[key]
        return len(idle)

    def __len__(self) -> int:
        return len(self._buckets)


# --- Module Notes -----------------------------------------------------------
# Single-process only; a multi-instance deployment needs a shared store.
