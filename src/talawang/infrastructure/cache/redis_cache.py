from __future__ import annotations

import json
import logging
from typing import Any

from redis.asyncio import Redis

from talawang.application.ports.cache import Loader

logger = logging.getLogger(__name__)


class RedisTtlCache:
    """TTL cache shared between workers; values are stored as JSON with SET EX."""

    def __init__(self, redis: Redis, prefix: str = "talawang:") -> None:
        self._redis = redis
        self._prefix = prefix

    async def get_or_refresh(self, key: str, ttl: float, loader: Loader) -> Any:
        full_key = self._prefix + key
        raw = await self._redis.get(full_key)
        if raw is not None:
            return json.loads(raw)
        value = await loader()
        await self._redis.set(full_key, json.dumps(value), ex=max(1, int(ttl)))
        logger.debug("Cached %s for %ss", full_key, ttl)
        return value

    async def invalidate(self, key: str) -> None:
        await self._redis.delete(self._prefix + key)
