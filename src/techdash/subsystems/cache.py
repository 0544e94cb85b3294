"""
techdash.subsystems.cache

In-process TTL cache.

Responsibilities:
- Key/value storage with per-entry expiry on the event loop thread.
- Periodic purge of expired entries (driven by the scheduler).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class Cache:
    name = "cache"

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._open = False

    async def init(self) -> None:
        self._entries.clear()
        self._open = True

    async def shutdown(self, timeout: float) -> None:
        self._open = False
        self._entries.clear()

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError("cache is not initialized")

    def get(self, key: str, default: Any = None) -> Any:
        self._check_open()
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value: Any, *, ttl: float | None = None) -> None:
        self._check_open()
        expires_at = None if ttl is None else self._clock() + ttl
        self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> bool:
        self._check_open()
        return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        self._check_open()
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if exp is not None and exp <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


# --- Module Notes -----------------------------------------------------------
# All operations are synchronous dict operations, which makes each one atomic
# with respect to other coroutines on the loop.
