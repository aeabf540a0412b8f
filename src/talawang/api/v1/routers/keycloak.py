from __future__ import annotations

from fastapi import APIRouter, Query

from talawang.api.deps import CurrentPrincipal, DirectoryDep
from talawang.api.v1.schemas.common import ApiResponse, ListResponse
from talawang.api.v1.schemas.directory import (
    DirectoryUserResponse,
    SimpleUserResponse,
    UserSummaryResponse,
)
from talawang.services import directory_service

router = APIRouter(prefix="/api/v1/keycloak", tags=["directory"])


@router.get("/ppk/list", response_model=ListResponse[DirectoryUserResponse])
async def list_ppk(
    principal: CurrentPrincipal,
    directory: DirectoryDep,
) -> ListResponse[DirectoryUserResponse]:
    users = await directory_service.list_ppk(directory)
    return ListResponse(
        message="Daftar PPK berhasil diambil dari Keycloak",
        data=[DirectoryUserResponse.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/ppk/search", response_model=ListResponse[DirectoryUserResponse])
async def search_ppk(
    principal: CurrentPrincipal,
    directory: DirectoryDep,
    query: str | None = Query(None),
) -> ListResponse[DirectoryUserResponse]:
    users = await directory_service.search_ppk(query, directory)
    return ListResponse(
        message="Pencarian PPK berhasil",
        data=[DirectoryUserResponse.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/ppk/{user_id}", response_model=ApiResponse[DirectoryUserResponse])
async def get_ppk(
    user_id: str,
    principal: CurrentPrincipal,
    directory: DirectoryDep,
) -> ApiResponse[DirectoryUserResponse]:
    user = await directory_service.get_ppk(user_id, directory)
    return ApiResponse(
        message="Detail PPK berhasil diambil",
        data=DirectoryUserResponse.model_validate(user),
    )


@router.get("/users", response_model=ListResponse[UserSummaryResponse])
async def list_users(
    principal: CurrentPrincipal,
    directory: DirectoryDep,
) -> ListResponse[UserSummaryResponse]:
    users = await directory_service.list_users(principal, directory)
    return ListResponse(
        message="Daftar user berhasil diambil",
        data=[UserSummaryResponse.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/users/all-simple", response_model=ListResponse[SimpleUserResponse])
async def list_users_simple(
    principal: CurrentPrincipal,
    directory: DirectoryDep,
) -> ListResponse[SimpleUserResponse]:
    users = await directory_service.list_users_simple(directory)
    return ListResponse(
        message="Daftar semua user berhasil diambil",
        data=[SimpleUserResponse.model_validate(u) for u in users],
        count=len(users),
    )


@router.post("/cache/refresh", response_model=ApiResponse[None])
async def refresh_cache(
    principal: CurrentPrincipal,
    directory: DirectoryDep,
) -> ApiResponse[None]:
    await directory_service.refresh_cache(principal, directory)
    return ApiResponse(message="Cache direktori berhasil dikosongkan")
