from __future__ import annotations

from typing import Any, Protocol

from talawang.application.dto.directory import DirectoryUser


class IdentityAdminApi(Protocol):
    """Subset of the Keycloak admin REST API used by the user directory.

    Every call raises ``UpstreamAuthError`` subclasses on failure.
    """

    async def get_admin_token(self) -> str: ...

    async def list_realm_roles(self, token: str) -> list[dict[str, Any]]: ...

    async def list_role_users(self, token: str, role_name: str, *, max_results: int = 100) -> list[dict[str, Any]]: ...

    async def get_user(self, token: str, user_id: str) -> dict[str, Any]: ...

    async def list_users(self, token: str, *, max_results: int = 200) -> list[dict[str, Any]]: ...

    async def list_user_realm_roles(self, token: str, user_id: str) -> list[dict[str, Any]]: ...


class UserDirectory(Protocol):
    """Cached view of the identity provider's users."""

    async def ppk_users(self) -> list[DirectoryUser]: ...

    async def all_users(self, *, max_results: int = 100) -> list[dict[str, Any]]: ...

    async def all_users_simple(self) -> list[dict[str, Any]]: ...

    async def invalidate(self) -> None:
        """Drop cached listings so the next read goes to the identity provider."""
        ...
