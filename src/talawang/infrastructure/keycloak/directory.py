"""PPK and user directory assembled from the Keycloak admin API."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from talawang.application.dto.directory import DirectoryUser
from talawang.application.exceptions import UpstreamAuthError
from talawang.application.ports.cache import TtlCache
from talawang.application.ports.directory import IdentityAdminApi

logger = logging.getLogger(__name__)

PPK_ROLE = "ppk"
PPK_CACHE_KEY = "directory:ppk"
SIMPLE_CACHE_KEY = "directory:all-simple"

NAME_ATTRS = ("nama_lengkap", "nama", "displayName", "name")
NIP_ATTRS = ("nip", "NIP", "employee_id", "employeeId", "nomor_induk")
JABATAN_ATTRS = ("jabatan", "Jabatan", "position", "title")
UNIT_ATTRS = ("unit_kerja", "department", "organisasi")


def attribute(user: Mapping[str, Any], *names: str) -> str:
    """First non-empty value among the user's attribute aliases.

    Keycloak stores attributes as lists of strings; plain strings are accepted too.
    """
    attrs = user.get("attributes")
    if not isinstance(attrs, Mapping):
        return ""
    for name in names:
        value = attrs.get(name)
        if isinstance(value, list):
            value = next((v for v in value if v), None)
        if value:
            return str(value)
    return ""


def display_name(user: Mapping[str, Any]) -> str:
    full = " ".join(p for p in (user.get("firstName"), user.get("lastName")) if p).strip()
    return (
        full
        or attribute(user, *NAME_ATTRS)
        or user.get("username")
        or user.get("email")
        or "N/A"
    )


def to_directory_user(user: Mapping[str, Any], *, default_jabatan: str = "") -> DirectoryUser:
    return DirectoryUser(
        user_id=str(user.get("id") or ""),
        username=user.get("username") or "",
        email=user.get("email") or "",
        nama=display_name(user),
        nip=attribute(user, *NIP_ATTRS),
        jabatan=attribute(user, *JABATAN_ATTRS) or default_jabatan,
        unit_kerja=attribute(user, *UNIT_ATTRS),
        enabled=user.get("enabled") is not False,
        email_verified=bool(user.get("emailVerified")),
    )


def _is_ppk_role(name: Any) -> bool:
    return isinstance(name, str) and PPK_ROLE in name.lower()


def _by_name(users: list[DirectoryUser]) -> list[DirectoryUser]:
    return sorted(users, key=lambda u: u.nama.lower())


class KeycloakDirectory:
    def __init__(
        self,
        api: IdentityAdminApi,
        cache: TtlCache,
        *,
        ttl: float = 600,
    ) -> None:
        self._api = api
        self._cache = cache
        self._ttl = ttl

    async def ppk_users(self) -> list[DirectoryUser]:
        rows = await self._cache.get_or_refresh(PPK_CACHE_KEY, self._ttl, self._load_ppk_users)
        return [DirectoryUser.from_dict(row) for row in rows]

    async def all_users(self, *, max_results: int = 100) -> list[dict[str, Any]]:
        token = await self._api.get_admin_token()
        users = await self._api.list_users(token, max_results=max_results)
        return [
            {
                "id": u.get("id"),
                "username": u.get("username"),
                "email": u.get("email"),
                "firstName": u.get("firstName"),
                "lastName": u.get("lastName"),
                "enabled": u.get("enabled"),
                "emailVerified": u.get("emailVerified"),
                "createdTimestamp": u.get("createdTimestamp"),
            }
            for u in users
        ]

    async def all_users_simple(self) -> list[dict[str, Any]]:
        return await self._cache.get_or_refresh(SIMPLE_CACHE_KEY, self._ttl, self._load_simple)

    async def invalidate(self) -> None:
        await self._cache.invalidate(PPK_CACHE_KEY)
        await self._cache.invalidate(SIMPLE_CACHE_KEY)

    async def _load_ppk_users(self) -> list[dict[str, Any]]:
        try:
            users = await self._ppk_via_role()
        except UpstreamAuthError as exc:
            logger.warning("PPK lookup via role failed (%s), scanning users", exc)
            users = await self._ppk_via_scan()
        logger.info("Loaded %d PPK users from Keycloak", len(users))
        return [u.to_dict() for u in users]

    async def _ppk_via_role(self) -> list[DirectoryUser]:
        token = await self._api.get_admin_token()
        roles = await self._api.list_realm_roles(token)
        names = [r.get("name") for r in roles if _is_ppk_role(r.get("name"))]
        if not names:
            logger.warning("Realm has no %r role", PPK_ROLE)
            return []
        # an exact "ppk" wins over names merely containing it
        role_name = next((n for n in names if n.lower() == PPK_ROLE), names[0])

        members = await self._api.list_role_users(token, role_name, max_results=100)
        details = await asyncio.gather(
            *(self._user_detail(token, str(m.get("id"))) for m in members)
        )
        return _by_name([
            to_directory_user(d, default_jabatan="PPK")
            for d in details
            if d is not None and d.get("enabled") is not False
        ])

    async def _user_detail(self, token: str, user_id: str) -> dict[str, Any] | None:
        try:
            return await self._api.get_user(token, user_id)
        except UpstreamAuthError as exc:
            logger.warning("Skipping user %s: %s", user_id, exc)
            return None

    async def _ppk_via_scan(self) -> list[DirectoryUser]:
        token = await self._api.get_admin_token()
        users = [u for u in await self._api.list_users(token, max_results=200) if u.get("enabled") is not False]

        async def holds_ppk(user: Mapping[str, Any]) -> bool:
            try:
                mappings = await self._api.list_user_realm_roles(token, str(user.get("id")))
            except UpstreamAuthError as exc:
                logger.warning("Skipping user %s: %s", user.get("id"), exc)
                return False
            return any(_is_ppk_role(r.get("name")) for r in mappings)

        flags = await asyncio.gather(*(holds_ppk(u) for u in users))
        return _by_name([
            to_directory_user(u, default_jabatan="PPK")
            for u, is_ppk in zip(users, flags)
            if is_ppk
        ])

    async def _load_simple(self) -> list[dict[str, Any]]:
        token = await self._api.get_admin_token()
        users = await self._api.list_users(token, max_results=1000)
        rows = []
        for u in users:
            if u.get("enabled") is False:
                continue
            full = " ".join(p for p in (u.get("firstName"), u.get("lastName")) if p).strip()
            nama = full or attribute(u, "nama", "displayName", "name") or u.get("username") or ""
            if not nama:
                continue
            rows.append({
                "id": u.get("id"),
                "nama": nama,
                "nip": attribute(u, *NIP_ATTRS),
                "jabatan": attribute(u, *JABATAN_ATTRS),
                "username": u.get("username") or "",
                "email": u.get("email") or "",
                "enabled": u.get("enabled") is not False,
            })
        return sorted(rows, key=lambda r: r["nama"].lower())
