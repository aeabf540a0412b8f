from __future__ import annotations

from fastapi import APIRouter, Query

from talawang.api.deps import CurrentPrincipal, KegiatanId, UoWDep
from talawang.api.v1.schemas.common import ApiResponse, ListResponse
from talawang.api.v1.schemas.kegiatan import (
    KabalaiApproveRequest,
    KabalaiCorrectionRequest,
    KabalaiRejectRequest,
    KegiatanCreateRequest,
    KegiatanDetailResponse,
    KegiatanPatchRequest,
    KegiatanResponse,
    KegiatanUpdateRequest,
    NoteRequest,
    PegawaiResponse,
    Status2Request,
    StatusHistoryResponse,
    SubmitRequest,
    SuratTugasRequest,
)
from talawang.api.v1.schemas.report import (
    PpkStatisticsData,
    PpkStatisticsMeta,
    PpkStatisticsResponse,
    Status2ReportResponse,
)
from talawang.application.dto.kegiatan import KegiatanDetail
from talawang.config import settings
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.services import kegiatan_service, search_service

router = APIRouter(prefix="/api/v1/kegiatan", tags=["kegiatan"])


def _one(kegiatan: Kegiatan, message: str) -> ApiResponse[KegiatanResponse]:
    return ApiResponse(
        message=message,
        data=KegiatanResponse.model_validate(kegiatan, from_attributes=True),
    )


def _detail(detail: KegiatanDetail) -> KegiatanDetailResponse:
    return KegiatanDetailResponse(
        kegiatan=KegiatanResponse.model_validate(detail.kegiatan, from_attributes=True),
        pegawai=[PegawaiResponse.from_entity(p) for p in detail.pegawai],
        is_owner=detail.is_owner,
    )


@router.get("", response_model=ListResponse[KegiatanResponse])
async def list_kegiatan(
    principal: CurrentPrincipal,
    uow: UoWDep,
    status: str | None = Query(None),
    search: str | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ListResponse[KegiatanResponse]:
    rows = await kegiatan_service.list_kegiatan(
        principal, uow, status=status, search=search, limit=limit, offset=offset,
    )
    return ListResponse(
        data=[KegiatanResponse.model_validate(k, from_attributes=True) for k in rows],
        count=len(rows),
    )


@router.get("/search", response_model=ListResponse[KegiatanResponse])
async def search_kegiatan(
    principal: CurrentPrincipal,
    uow: UoWDep,
    q: str | None = Query(None),
    limit: str | None = Query(None),
) -> ListResponse[KegiatanResponse]:
    result = await search_service.search_visible(
        principal,
        q,
        limit or settings.SEARCH_DEFAULT_LIMIT,
        uow,
        max_limit=settings.SEARCH_MAX_LIMIT,
    )
    return ListResponse(
        data=[KegiatanResponse.model_validate(k, from_attributes=True) for k in result.rows],
        count=len(result.rows),
    )


@router.post("", response_model=ApiResponse[KegiatanDetailResponse], status_code=201)
async def create_kegiatan(
    body: KegiatanCreateRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanDetailResponse]:
    detail = await kegiatan_service.create_kegiatan(
        body.to_entity(),
        [p.to_entity() for p in body.pegawai],
        principal,
        uow,
    )
    return ApiResponse(message="Kegiatan berhasil dibuat", data=_detail(detail))


@router.get("/ppk/statistics", response_model=PpkStatisticsResponse)
async def ppk_statistics(
    principal: CurrentPrincipal,
    uow: UoWDep,
    period: str = Query("month"),
) -> PpkStatisticsResponse:
    stats = await kegiatan_service.ppk_statistics(principal, uow, period=period)
    return PpkStatisticsResponse(
        message="Statistik persetujuan berhasil diambil",
        data=PpkStatisticsData.from_dto(stats, period),
        meta=PpkStatisticsMeta(ppk_id=principal.user_id, ppk_nama=principal.display_name, period=period),
    )


@router.get("/admin/status2-report", response_model=Status2ReportResponse)
async def status2_report(
    principal: CurrentPrincipal,
    uow: UoWDep,
    status_2: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
) -> Status2ReportResponse:
    report = await kegiatan_service.status2_report(
        principal, uow, status_2=status_2, page=page, limit=limit,
    )
    return Status2ReportResponse.from_report(
        report, page=page, limit=limit, status_filter=status_2 or "all",
    )


@router.get("/{kegiatan_id}", response_model=ApiResponse[KegiatanDetailResponse])
async def get_kegiatan(
    kegiatan_id: KegiatanId,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanDetailResponse]:
    detail = await kegiatan_service.get_kegiatan_detail(kegiatan_id, principal, uow)
    return ApiResponse(data=_detail(detail))


@router.delete("/{kegiatan_id}", response_model=ApiResponse[KegiatanResponse])
async def delete_kegiatan(
    kegiatan_id: KegiatanId,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    deleted = await kegiatan_service.delete_kegiatan(kegiatan_id, principal, uow)
    return _one(deleted, "Kegiatan berhasil dihapus")


@router.get("/{kegiatan_id}/edit", response_model=ApiResponse[KegiatanDetailResponse])
async def get_edit_form(
    kegiatan_id: KegiatanId,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanDetailResponse]:
    detail = await kegiatan_service.get_edit_form(kegiatan_id, principal, uow)
    return ApiResponse(data=_detail(detail))


@router.put("/{kegiatan_id}", response_model=ApiResponse[KegiatanDetailResponse])
async def replace_kegiatan(
    kegiatan_id: KegiatanId,
    body: KegiatanUpdateRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanDetailResponse]:
    detail = await kegiatan_service.replace_kegiatan(
        kegiatan_id,
        body.to_values(),
        [p.to_entity() for p in body.pegawai],
        principal,
        uow,
    )
    return ApiResponse(message="Kegiatan berhasil diperbarui", data=_detail(detail))


@router.patch("/{kegiatan_id}", response_model=ApiResponse[KegiatanResponse])
async def patch_kegiatan(
    kegiatan_id: KegiatanId,
    body: KegiatanPatchRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.patch_kegiatan(kegiatan_id, body.to_values(), principal, uow)
    return _one(kegiatan, "Kegiatan berhasil diperbarui")


@router.post("/{kegiatan_id}/kirim-ke-ppk", response_model=ApiResponse[KegiatanResponse])
async def submit_to_ppk(
    kegiatan_id: KegiatanId,
    body: SubmitRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.submit_to_ppk(
        kegiatan_id, principal, uow,
        ppk_id=body.ppk_id, ppk_nama=body.ppk_nama, catatan=body.catatan,
    )
    return _one(kegiatan, "Kegiatan berhasil dikirim ke PPK")


@router.post("/{kegiatan_id}/approve", response_model=ApiResponse[KegiatanResponse])
async def ppk_approve(
    kegiatan_id: KegiatanId,
    body: NoteRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.ppk_approve(
        kegiatan_id, principal, uow, catatan=body.catatan,
    )
    return _one(kegiatan, "Kegiatan berhasil diketahui PPK")


@router.post("/{kegiatan_id}/reject", response_model=ApiResponse[KegiatanResponse])
async def ppk_reject(
    kegiatan_id: KegiatanId,
    body: NoteRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.ppk_reject(
        kegiatan_id, principal, uow, catatan=body.catatan,
    )
    return _one(kegiatan, "Kegiatan dikembalikan ke pengaju")


@router.post("/{kegiatan_id}/menyetujui", response_model=ApiResponse[KegiatanResponse])
async def kabalai_approve(
    kegiatan_id: KegiatanId,
    body: KabalaiApproveRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.kabalai_approve(
        kegiatan_id, principal, uow,
        catatan=body.catatan_kabalai, tanggal_diketahui=body.tanggal_mengetahui,
    )
    return _one(kegiatan, "Kegiatan berhasil disetujui Kabalai")


@router.post("/{kegiatan_id}/reject-kabalai", response_model=ApiResponse[KegiatanResponse])
async def kabalai_reject(
    kegiatan_id: KegiatanId,
    body: KabalaiRejectRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.kabalai_reject(
        kegiatan_id, principal, uow, catatan=body.catatan_kabalai,
    )
    return _one(kegiatan, "Kegiatan dikembalikan oleh Kabalai")


@router.post("/{kegiatan_id}/surat-tugas", response_model=ApiResponse[KegiatanResponse])
async def record_surat_tugas(
    kegiatan_id: KegiatanId,
    body: SuratTugasRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.record_surat_tugas(
        kegiatan_id, principal, uow, no_st=body.no_st, tgl_st=body.tgl_st,
    )
    return _one(kegiatan, "Surat tugas berhasil dicatat")


@router.patch("/{kegiatan_id}/surat-tugas", response_model=ApiResponse[KegiatanResponse])
async def correct_surat_tugas(
    kegiatan_id: KegiatanId,
    body: SuratTugasRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.correct_surat_tugas(
        kegiatan_id, principal, uow, changes=body.to_changes(),
    )
    return _one(kegiatan, "Surat tugas berhasil diperbarui")


@router.patch("/{kegiatan_id}/update-disetujui", response_model=ApiResponse[KegiatanResponse])
async def correct_kabalai_approval(
    kegiatan_id: KegiatanId,
    body: KabalaiCorrectionRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.correct_kabalai_approval(
        kegiatan_id, principal, uow, changes=body.to_changes(),
    )
    return _one(kegiatan, "Data mengetahui berhasil diperbarui")


@router.patch("/{kegiatan_id}/status2", response_model=ApiResponse[KegiatanResponse])
async def patch_status2(
    kegiatan_id: KegiatanId,
    body: Status2Request,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.update_status2(
        kegiatan_id, principal, uow, changes=body.to_changes(),
    )
    return _one(kegiatan, "Status_2 berhasil diperbarui")


@router.put("/{kegiatan_id}/status2", response_model=ApiResponse[KegiatanResponse])
async def replace_status2(
    kegiatan_id: KegiatanId,
    body: Status2Request,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ApiResponse[KegiatanResponse]:
    kegiatan = await kegiatan_service.update_status2(
        kegiatan_id, principal, uow, changes=body.to_changes(), full=True,
    )
    return _one(kegiatan, "Status_2 berhasil diperbarui")


@router.get("/{kegiatan_id}/history", response_model=ListResponse[StatusHistoryResponse])
async def history(
    kegiatan_id: KegiatanId,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ListResponse[StatusHistoryResponse]:
    entries = await kegiatan_service.list_history(kegiatan_id, principal, uow)
    return ListResponse(
        data=[StatusHistoryResponse.from_entity(e) for e in entries],
        count=len(entries),
    )
