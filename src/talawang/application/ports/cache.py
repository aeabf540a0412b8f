from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

Loader = Callable[[], Awaitable[Any]]


class TtlCache(Protocol):
    async def get_or_refresh(self, key: str, ttl: float, loader: Loader) -> Any:
        """Return the cached value for ``key`` or await ``loader`` and store it.

        Values must be JSON-compatible so every backend can hold them.
        """
        ...

    async def invalidate(self, key: str) -> None: ...
