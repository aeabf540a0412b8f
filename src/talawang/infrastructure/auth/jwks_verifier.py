from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from talawang.application.dto.principal import Principal

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify Keycloak access tokens against the realm's JWKS endpoint."""

    def __init__(self, jwks_url: str, audience: str | None = None) -> None:
        self._jwks_url = jwks_url
        self._audience = audience
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Principal:
        # PyJWKClient fetches and caches keys with blocking urllib calls
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience=self._audience,
            # Keycloak stamps "account" as audience unless a mapper is configured
            options={"verify_aud": self._audience is not None},
        )
        return Principal.from_claims(payload)
