"""Role resolution from heterogeneous Keycloak claim shapes.

Tokens reach us in several shapes depending on the client mapper that issued
them: a direct ``role`` claim, a ``roles`` list, per-client
``resource_access`` maps or the realm-wide ``realm_access`` list. Each shape is
handled by one extraction strategy; strategies run in order and the first one
that yields roles wins.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from talawang.domain.value_objects.enums import Role

logger = logging.getLogger(__name__)

RoleStrategy = Callable[[Mapping[str, Any]], list[str] | None]

ROLE_HINTS = ("admin", "ppk", "kabalai", "user")


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    return []


def from_role_claim(claims: Mapping[str, Any]) -> list[str] | None:
    return _strings(claims.get("role")) or None


def from_roles_claim(claims: Mapping[str, Any]) -> list[str] | None:
    roles = claims.get("roles")
    if not isinstance(roles, list):
        return None
    return _strings(roles) or None


def from_resource_access(claims: Mapping[str, Any]) -> list[str] | None:
    access = claims.get("resource_access")
    if not isinstance(access, Mapping):
        return None
    roles: list[str] = []
    for client in access.values():
        if isinstance(client, Mapping) and isinstance(client.get("roles"), list):
            roles.extend(_strings(client["roles"]))
    return roles or None


def from_realm_access(claims: Mapping[str, Any]) -> list[str] | None:
    access = claims.get("realm_access")
    if not isinstance(access, Mapping):
        return None
    return _strings(access.get("roles")) or None


def from_any_list_claim(claims: Mapping[str, Any]) -> list[str] | None:
    """Last resort: the first list claim holding role-looking strings."""
    for key, value in claims.items():
        if not isinstance(value, list):
            continue
        hits = [
            item for item in value
            if isinstance(item, str) and any(hint in item.lower() for hint in ROLE_HINTS)
        ]
        if hits:
            logger.debug("Roles guessed from claim %r: %s", key, hits)
            return hits
    return None


STRATEGIES: tuple[RoleStrategy, ...] = (
    from_role_claim,
    from_roles_claim,
    from_resource_access,
    from_realm_access,
    from_any_list_claim,
)


def extract_roles(
    claims: Mapping[str, Any] | None,
    strategies: tuple[RoleStrategy, ...] = STRATEGIES,
) -> list[str]:
    if not isinstance(claims, Mapping):
        return []
    for strategy in strategies:
        roles = strategy(claims)
        if roles:
            return roles
    return []


def classify(roles: list[str]) -> Role:
    lowered = [r.lower() for r in roles]
    if "admin" in lowered:
        return Role.ADMIN
    if "ppk" in lowered:
        return Role.PPK
    if any("kabalai" in r for r in lowered):
        return Role.KABALAI
    return Role.REGULAR


def resolve_role(claims: Mapping[str, Any] | None) -> Role:
    return classify(extract_roles(claims))
