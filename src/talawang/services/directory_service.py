from __future__ import annotations

import logging
from typing import Any

from talawang.application.dto.directory import DirectoryUser
from talawang.application.dto.principal import Principal
from talawang.application.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from talawang.application.ports.directory import UserDirectory

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


async def list_ppk(directory: UserDirectory) -> list[DirectoryUser]:
    users = await directory.ppk_users()
    if not users:
        raise NotFoundError("Tidak ada user dengan role PPK ditemukan di sistem")
    return users


async def search_ppk(query: str | None, directory: UserDirectory) -> list[DirectoryUser]:
    needle = (query or "").strip()
    if len(needle) < MIN_QUERY_LENGTH:
        raise InvalidInputError(f"Query pencarian minimal {MIN_QUERY_LENGTH} karakter")
    users = await directory.ppk_users()
    if not users:
        raise NotFoundError("Tidak ada data PPK ditemukan")
    return [u for u in users if u.matches(needle)]


async def get_ppk(user_id: str, directory: UserDirectory) -> DirectoryUser:
    for user in await directory.ppk_users():
        if user.user_id == user_id:
            return user
    raise NotFoundError("PPK tidak ditemukan")


async def list_users(principal: Principal, directory: UserDirectory) -> list[dict[str, Any]]:
    if not principal.is_admin:
        raise ForbiddenError("Hanya admin yang dapat mengakses daftar semua user")
    return await directory.all_users()


async def list_users_simple(directory: UserDirectory) -> list[dict[str, Any]]:
    return await directory.all_users_simple()


async def refresh_cache(principal: Principal, directory: UserDirectory) -> None:
    if not principal.is_admin:
        raise ForbiddenError("Hanya admin yang dapat memperbarui cache direktori")
    await directory.invalidate()
    logger.info("Directory cache invalidated by %s", principal.user_id)
