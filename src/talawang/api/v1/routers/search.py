from __future__ import annotations

from fastapi import APIRouter, Query

from talawang.api.deps import CurrentPrincipal, KegiatanId, UoWDep
from talawang.api.v1.schemas.common import ApiResponse
from talawang.api.v1.schemas.kegiatan import KegiatanResponse
from talawang.api.v1.schemas.search import (
    CancelResponse,
    SearchMeta,
    SearchResponse,
    StatsResponse,
)
from talawang.config import settings
from talawang.services import search_service

router = APIRouter(prefix="/api/v1/search", tags=["search"])

STATUS_FILTER = "excluding_diajukan_selesai_dikembalikan"
STATUS_NOTE = "kecuali status diajukan, selesai, dikembalikan"


@router.get("", response_model=SearchResponse)
async def search(
    principal: CurrentPrincipal,
    uow: UoWDep,
    q: str | None = Query(None),
    limit: str | None = Query(None),
) -> SearchResponse:
    result = await search_service.search_kegiatan(
        principal,
        q,
        limit or settings.SEARCH_DEFAULT_LIMIT,
        uow,
        max_limit=settings.SEARCH_MAX_LIMIT,
    )
    if result.is_fallback:
        filter_type = "ppk_nama_fallback"
        message = f"Data ditemukan berdasarkan nama PPK: {principal.username} ({STATUS_NOTE})"
    else:
        filter_type = "ppk_id"
        message = (
            f"Data ditemukan untuk PPK: {principal.username} ({STATUS_NOTE})"
            if result.rows
            else f"Tidak ada data yang ditemukan untuk PPK: {principal.username} ({STATUS_NOTE})"
        )
    return SearchResponse(
        data=[KegiatanResponse.model_validate(k, from_attributes=True) for k in result.rows],
        meta=SearchMeta(
            count=len(result.rows),
            limit=result.scope.limit,
            search_term=result.scope.term,
            filter_type=filter_type,
            status_filter=STATUS_FILTER,
            message=message,
            ppk_id=principal.user_id,
            ppk_nama=principal.username,
            user_role=principal.role.value,
        ),
    )


@router.get("/stats", response_model=ApiResponse[StatsResponse])
async def stats(principal: CurrentPrincipal, uow: UoWDep) -> ApiResponse[StatsResponse]:
    result = await search_service.get_stats(principal, uow)
    return ApiResponse(data=StatsResponse.model_validate(result, from_attributes=True))


@router.put("/{kegiatan_id}/cancel", response_model=ApiResponse[CancelResponse])
async def cancel(
    kegiatan_id: KegiatanId,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[CancelResponse]:
    result = await search_service.cancel_kegiatan(kegiatan_id, principal, uow)
    return ApiResponse(
        message="Kegiatan berhasil dibatalkan",
        data=CancelResponse(
            id=result.kegiatan.id,
            kegiatan=result.kegiatan.kegiatan,
            status=result.kegiatan.status,
            tanggal_dikembalikan=result.kegiatan.tanggal_dikembalikan,
            cancelled_by=result.cancelled_by,
            cancelled_at=result.cancelled_at,
        ),
    )
