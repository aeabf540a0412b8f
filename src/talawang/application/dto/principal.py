from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from talawang.application.policies.roles import extract_roles, classify
from talawang.domain.value_objects.enums import Role


def _first_str(claims: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = claims.get(key)
        if value not in (None, ""):
            return str(value)
    return None


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from a verified token."""

    user_id: str
    username: str
    display_name: str
    roles: list[str] = field(default_factory=list)
    role: Role = Role.REGULAR
    claims: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Principal:
        roles = extract_roles(claims)
        return cls(
            user_id=_first_str(claims, "user_id", "id", "sub") or "",
            username=_first_str(claims, "username", "preferred_username", "email") or "Unknown",
            display_name=_first_str(claims, "preferred_username", "name", "username") or "User",
            roles=roles,
            role=classify(roles),
            claims=dict(claims),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_ppk(self) -> bool:
        return self.role == Role.PPK

    @property
    def is_kabalai(self) -> bool:
        return self.role == Role.KABALAI

    @property
    def is_regular(self) -> bool:
        return self.role == Role.REGULAR

    @property
    def roles_label(self) -> str:
        return ",".join(self.roles) if self.roles else "user"
