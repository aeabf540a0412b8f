from __future__ import annotations

from typing import Protocol

from talawang.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Turns a bearer token into a Principal whose role is already resolved.

    Implementations raise on a bad signature, an expired token or a wrong
    audience; the API layer maps any such failure to 401.
    """

    async def verify(self, token: str) -> Principal: ...
