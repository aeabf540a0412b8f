from __future__ import annotations

from pydantic import BaseModel


class DirectoryUserResponse(BaseModel):
    user_id: str
    username: str
    email: str
    nama: str
    nip: str
    jabatan: str
    unit_kerja: str
    enabled: bool
    email_verified: bool

    model_config = {"from_attributes": True}


class UserSummaryResponse(BaseModel):
    id: str | None
    username: str | None = None
    email: str | None = None
    firstName: str | None = None
    lastName: str | None = None
    enabled: bool | None = None
    emailVerified: bool | None = None
    createdTimestamp: int | None = None


class SimpleUserResponse(BaseModel):
    id: str | None
    nama: str
    nip: str
    jabatan: str
    username: str
    email: str
    enabled: bool
