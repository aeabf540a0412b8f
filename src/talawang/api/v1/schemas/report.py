from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from talawang.api.v1.schemas.kegiatan import KegiatanResponse
from talawang.application.dto.kegiatan import PpkStatistics, Status2Report

UNLABELLED = "(Belum diisi)"


class PpkOverview(BaseModel):
    total_pengajuan: int
    menunggu_persetujuan: int
    disetujui: int
    dikembalikan: int
    draft: int


class PpkFinancial(BaseModel):
    total_biaya_diajukan: Decimal
    total_biaya_disetujui: Decimal
    total_biaya_dikembalikan: Decimal
    total_all: Decimal


class PpkPerformance(BaseModel):
    rata_waktu_persetujuan_jam: float | None
    pengajuan_terbaru: datetime | None
    periode: str


class PpkPercentages(BaseModel):
    disetujui: float
    dikembalikan: float
    menunggu: float


class PpkStatisticsData(BaseModel):
    overview: PpkOverview
    financial: PpkFinancial
    performance: PpkPerformance
    percentages: PpkPercentages

    @classmethod
    def from_dto(cls, stats: PpkStatistics, period: str) -> PpkStatisticsData:
        return cls(
            overview=PpkOverview(
                total_pengajuan=stats.total_pengajuan,
                menunggu_persetujuan=stats.menunggu_persetujuan,
                disetujui=stats.disetujui,
                dikembalikan=stats.dikembalikan,
                draft=stats.draft,
            ),
            financial=PpkFinancial(
                total_biaya_diajukan=stats.biaya_diajukan,
                total_biaya_disetujui=stats.biaya_disetujui,
                total_biaya_dikembalikan=stats.biaya_dikembalikan,
                total_all=stats.biaya_total,
            ),
            performance=PpkPerformance(
                rata_waktu_persetujuan_jam=stats.rata_waktu_persetujuan_jam,
                pengajuan_terbaru=stats.pengajuan_terbaru,
                periode=period,
            ),
            percentages=PpkPercentages(
                disetujui=stats.percentage(stats.disetujui),
                dikembalikan=stats.percentage(stats.dikembalikan),
                menunggu=stats.percentage(stats.menunggu_persetujuan),
            ),
        )


class PpkStatisticsMeta(BaseModel):
    ppk_id: str
    ppk_nama: str
    period: str


class PpkStatisticsResponse(BaseModel):
    success: bool = True
    message: str
    data: PpkStatisticsData
    meta: PpkStatisticsMeta


class Status2Row(KegiatanResponse):
    display_status_2: str


class Status2Summary(BaseModel):
    status_2: str
    count: int
    total_biaya: Decimal


class Status2Statistics(BaseModel):
    total: int
    with_status_2: int
    without_status_2: int
    percentage_with_status_2: float
    status_2_summary: list[Status2Summary]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Status2ReportResponse(BaseModel):
    success: bool = True
    message: str
    data: list[Status2Row]
    pagination: Pagination
    statistics: Status2Statistics
    filters: dict[str, str]

    @classmethod
    def from_report(
        cls, report: Status2Report, *, page: int, limit: int, status_filter: str,
    ) -> Status2ReportResponse:
        rows = []
        for kegiatan in report.rows:
            row = KegiatanResponse.model_validate(kegiatan, from_attributes=True)
            label = (kegiatan.status_2 or "").strip()
            rows.append(Status2Row(**row.model_dump(), display_status_2=label or UNLABELLED))
        percentage = round(report.with_status_2 / report.total * 100, 1) if report.total else 0.0
        return cls(
            message="Report status_2 berhasil diambil",
            data=rows,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=report.total,
                pages=-(-report.total // limit),
            ),
            statistics=Status2Statistics(
                total=report.total,
                with_status_2=report.with_status_2,
                without_status_2=report.without_status_2,
                percentage_with_status_2=percentage,
                status_2_summary=[
                    Status2Summary(
                        status_2=group.status_2 or UNLABELLED,
                        count=group.count,
                        total_biaya=group.total_biaya,
                    )
                    for group in report.groups
                ],
            ),
            filters={"status_2": status_filter, "status": "selesai"},
        )
