"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from talawang.application.dto.principal import Principal
from talawang.application.exceptions import InvalidInputError
from talawang.application.ports.auth import TokenVerifier
from talawang.application.ports.directory import UserDirectory
from talawang.config import settings
from talawang.infrastructure.auth.hs256_verifier import HS256Verifier
from talawang.infrastructure.auth.jwks_verifier import JWKSVerifier
from talawang.infrastructure.db.session import AsyncSessionLocal
from talawang.infrastructure.db.uow import SqlAlchemyUoW

_bearer_scheme = HTTPBearer(auto_error=False)

# BIGINT primary key range
MAX_KEGIATAN_ID = 2**63 - 1


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        return JWKSVerifier(settings.jwks_url, audience=settings.JWT_AUDIENCE)
    assert settings.JWT_SECRET, "JWT_SECRET must be set when JWT_VERIFY_MODE=hs256"
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, audience=settings.JWT_AUDIENCE)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token autentikasi tidak ditemukan",
            headers={"WWW-Authenticate": "Bearer"},
        )
    verifier = get_verifier()
    try:
        principal = await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token tidak valid: {exc}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if not principal.user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token tidak memuat identitas pengguna",
        )
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_directory(request: Request) -> UserDirectory:
    return request.app.state.directory


DirectoryDep = Annotated[UserDirectory, Depends(get_directory)]


def get_kegiatan_id(kegiatan_id: str) -> int:
    """Path ids arrive as text so malformed ones map to 400 rather than 422."""
    raw = kegiatan_id.strip()
    if not (raw.isascii() and raw.isdecimal()):
        raise InvalidInputError("ID kegiatan tidak valid")
    value = int(raw)
    if not 1 <= value <= MAX_KEGIATAN_ID:
        raise InvalidInputError("ID kegiatan tidak valid")
    return value


KegiatanId = Annotated[int, Depends(get_kegiatan_id)]
