from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from talawang.application.exceptions import (
    UpstreamAuthError,
    UpstreamCredentialError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamUnavailableError(
            f"Keycloak mengembalikan respons non-JSON ({response.headers.get('content-type', '-')})"
        ) from exc


class KeycloakAdminClient:
    """Thin async wrapper over the Keycloak admin REST API.

    Authenticates with the ``admin-cli`` password grant on the master realm
    and translates every transport or HTTP failure into an ``UpstreamAuthError``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        server_url: str,
        realm: str,
        admin_username: str,
        admin_password: str,
        timeout: float = 10.0,
    ) -> None:
        self._http = http
        self._server_url = server_url.rstrip("/")
        self._realm = realm
        self._admin_username = admin_username
        self._admin_password = admin_password
        self._timeout = timeout

    @property
    def _admin_base(self) -> str:
        return f"{self._server_url}/admin/realms/{quote(self._realm, safe='')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError("Keycloak tidak merespons") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnavailableError("Tidak dapat terhubung ke Keycloak") from exc

        if response.status_code in (401, 403):
            raise UpstreamCredentialError(
                f"Keycloak menolak kredensial admin ({response.status_code})"
            )
        if response.status_code >= 500:
            raise UpstreamUnavailableError(
                f"Keycloak mengalami gangguan ({response.status_code})"
            )
        if response.status_code >= 400:
            raise UpstreamAuthError(
                f"Permintaan ke Keycloak gagal ({response.status_code})"
            )
        return response

    async def _get_json(self, token: str, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request(
            "GET",
            f"{self._admin_base}{path}",
            headers={"Authorization": f"Bearer {token}"},
            params=params,
        )
        return _decode(response)

    async def get_admin_token(self) -> str:
        if not self._admin_username or not self._admin_password:
            raise UpstreamCredentialError("Admin username dan password harus dikonfigurasi")
        response = await self._request(
            "POST",
            f"{self._server_url}/realms/master/protocol/openid-connect/token",
            data={
                "grant_type": "password",
                "client_id": "admin-cli",
                "username": self._admin_username,
                "password": self._admin_password,
            },
        )
        payload = _decode(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise UpstreamCredentialError("Keycloak tidak mengembalikan access token")
        logger.debug("Obtained admin-cli token")
        return token

    async def list_realm_roles(self, token: str) -> list[dict[str, Any]]:
        return await self._get_json(token, "/roles")

    async def list_role_users(
        self, token: str, role_name: str, *, max_results: int = 100,
    ) -> list[dict[str, Any]]:
        return await self._get_json(
            token,
            f"/roles/{quote(role_name, safe='')}/users",
            params={"max": max_results},
        )

    async def get_user(self, token: str, user_id: str) -> dict[str, Any]:
        return await self._get_json(token, f"/users/{quote(user_id, safe='')}")

    async def list_users(self, token: str, *, max_results: int = 200) -> list[dict[str, Any]]:
        return await self._get_json(token, "/users", params={"max": max_results})

    async def list_user_realm_roles(self, token: str, user_id: str) -> list[dict[str, Any]]:
        return await self._get_json(
            token, f"/users/{quote(user_id, safe='')}/role-mappings/realm",
        )
