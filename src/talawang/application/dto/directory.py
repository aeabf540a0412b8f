from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class DirectoryUser:
    """A user record as exposed by the identity-provider directory."""

    user_id: str
    username: str
    email: str
    nama: str
    nip: str = ""
    jabatan: str = ""
    unit_kerja: str = ""
    enabled: bool = True
    email_verified: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DirectoryUser:
        return cls(**data)

    def matches(self, needle: str) -> bool:
        needle = needle.lower()
        return any(
            needle in (value or "").lower()
            for value in (self.nama, self.nip, self.email, self.username, self.jabatan)
        )
