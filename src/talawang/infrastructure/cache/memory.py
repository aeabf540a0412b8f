from __future__ import annotations

import asyncio
from typing import Any

from talawang.application.ports.cache import Loader
from talawang.application.ports.clock import Clock, SystemClock


class InMemoryTtlCache:
    """Per-process TTL cache; concurrent misses on one key share a single load."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[str, tuple[float, Any]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _fresh(self, key: str) -> tuple[bool, Any]:
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        expires_at, value = entry
        if self._clock.monotonic() >= expires_at:
            return False, None
        return True, value

    async def get_or_refresh(self, key: str, ttl: float, loader: Loader) -> Any:
        hit, value = self._fresh(key)
        if hit:
            return value
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            hit, value = self._fresh(key)
            if hit:
                return value
            value = await loader()
            self._entries[key] = (self._clock.monotonic() + ttl, value)
            return value

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)
