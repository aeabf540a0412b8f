from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, and_, case, delete, distinct, extract, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talawang.application.dto.kegiatan import (
    KegiatanFilterDTO,
    KegiatanStats,
    PpkStatistics,
    Status2Filter,
    Status2Group,
    Status2Report,
)
from talawang.application.policies.lifecycle import PPK_APPROVED_STATUSES
from talawang.application.policies.visibility import (
    LIST_PRIORITY,
    LIST_PRIORITY_DEFAULT,
    SEARCH_FIELDS,
    SearchScope,
    VisibilityScope,
)
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.value_objects.enums import TERMINAL_STATUSES, KegiatanStatus
from talawang.infrastructure.db.mappers import kegiatan as mapper
from talawang.infrastructure.db.models.kegiatan import KegiatanModel
from talawang.infrastructure.db.models.pegawai import PegawaiModel

LIKE_ESCAPE = "\\"


def _column(name: str):
    return getattr(KegiatanModel, name)


def _select_with_aggregates() -> Select:
    jumlah_pegawai = (
        select(func.count(PegawaiModel.id))
        .where(PegawaiModel.kegiatan_id == KegiatanModel.id)
        .correlate(KegiatanModel)
        .scalar_subquery()
    )
    total_biaya = (
        select(func.coalesce(func.sum(PegawaiModel.total_biaya), 0))
        .where(PegawaiModel.kegiatan_id == KegiatanModel.id)
        .correlate(KegiatanModel)
        .scalar_subquery()
    )
    return select(
        KegiatanModel,
        jumlah_pegawai.label("jumlah_pegawai"),
        total_biaya.label("total_biaya"),
    )


def _visibility_clauses(visibility: VisibilityScope) -> list[Any]:
    clauses: list[Any] = []
    if visibility.owner_field:
        clauses.append(_column(visibility.owner_field) == visibility.owner_value)
    if visibility.statuses is not None:
        clauses.append(KegiatanModel.status.in_(sorted(visibility.statuses)))
    return clauses


def _has_surat_tugas():
    return and_(
        KegiatanModel.no_st.is_not(None),
        KegiatanModel.no_st != "",
        KegiatanModel.tgl_st.is_not(None),
    )


def _pegawai_totals():
    """Per-record personnel cost, for joins that aggregate over records."""
    return (
        select(
            PegawaiModel.kegiatan_id,
            func.sum(PegawaiModel.total_biaya).label("total"),
        )
        .group_by(PegawaiModel.kegiatan_id)
        .subquery()
    )


def _status2_label():
    return func.nullif(func.trim(KegiatanModel.status_2), "")


def _status2_clauses(status_filter: Status2Filter) -> list[Any]:
    clauses: list[Any] = [KegiatanModel.status == KegiatanStatus.SELESAI.value]
    if status_filter.empty:
        clauses.append(_status2_label().is_(None))
    elif status_filter.value is not None:
        clauses.append(KegiatanModel.status_2 == status_filter.value)
    return clauses


def search_statement(scope: SearchScope) -> Select:
    """Compile a search scope; every user-supplied value is a bound parameter."""
    stmt = _select_with_aggregates()
    if scope.owner_field:
        stmt = stmt.where(_column(scope.owner_field) == scope.owner_value)
    if scope.excluded_statuses:
        stmt = stmt.where(KegiatanModel.status.not_in(sorted(scope.excluded_statuses)))
    stmt = stmt.where(
        or_(*(
            _column(name).ilike(scope.pattern, escape=LIKE_ESCAPE)
            for name in scope.search_fields
        ))
    )
    return stmt.order_by(
        _column(scope.order_by).desc(),
        KegiatanModel.id.desc(),
    ).limit(scope.limit)


class KegiatanReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _fetch(self, stmt: Select) -> list[Kegiatan]:
        # conditional updates run as bulk statements, so reload over the identity map
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        return [
            mapper.model_to_entity(model, jumlah_pegawai=jumlah, total_biaya=total)
            for model, jumlah, total in result.all()
        ]

    async def get_by_id(self, kegiatan_id: int) -> Kegiatan | None:
        rows = await self._fetch(
            _select_with_aggregates().where(KegiatanModel.id == kegiatan_id)
        )
        return rows[0] if rows else None

    async def get_visible(
        self, kegiatan_id: int, visibility: VisibilityScope,
    ) -> Kegiatan | None:
        stmt = _select_with_aggregates().where(
            KegiatanModel.id == kegiatan_id,
            *_visibility_clauses(visibility),
        )
        rows = await self._fetch(stmt)
        return rows[0] if rows else None

    async def search(self, scope: SearchScope) -> list[Kegiatan]:
        return await self._fetch(search_statement(scope))

    async def list_visible(self, filters: KegiatanFilterDTO) -> list[Kegiatan]:
        stmt = _select_with_aggregates().where(*_visibility_clauses(filters.visibility))
        if filters.status:
            stmt = stmt.where(KegiatanModel.status == filters.status)
        if filters.search:
            pattern = SearchScope(term=filters.search, limit=filters.limit).pattern
            stmt = stmt.where(
                or_(*(
                    _column(name).ilike(pattern, escape=LIKE_ESCAPE)
                    for name in SEARCH_FIELDS
                ))
            )
        stmt = (
            stmt.order_by(
                case(LIST_PRIORITY, value=KegiatanModel.status, else_=LIST_PRIORITY_DEFAULT),
                KegiatanModel.created_at.desc(),
                KegiatanModel.id.desc(),
            )
            .limit(filters.limit)
            .offset(filters.offset)
        )
        return await self._fetch(stmt)

    async def stats(self, visibility: VisibilityScope) -> KegiatanStats:
        stmt = select(
            func.count(KegiatanModel.id),
            func.count(KegiatanModel.id).filter(_has_surat_tugas()),
            func.count(distinct(KegiatanModel.status)),
        ).where(*_visibility_clauses(visibility))
        total, selesai, statuses = (await self._session.execute(stmt)).one()
        return KegiatanStats(
            total_kegiatan=int(total or 0),
            total_selesai=int(selesai or 0),
            status_count=int(statuses or 0),
        )

    async def ppk_statistics(self, ppk_id: str, since: datetime | None) -> PpkStatistics:
        totals = _pegawai_totals()
        base = (
            select(
                KegiatanModel.status,
                KegiatanModel.tanggal_diajukan,
                KegiatanModel.tanggal_disetujui,
                func.coalesce(totals.c.total, 0).label("biaya"),
            )
            .outerjoin(totals, totals.c.kegiatan_id == KegiatanModel.id)
            .where(KegiatanModel.ppk_id == ppk_id)
        )
        if since is not None:
            base = base.where(KegiatanModel.tanggal_diajukan >= since)
        rows = base.subquery()

        approved = rows.c.status.in_(sorted(s.value for s in PPK_APPROVED_STATUSES))
        diajukan = rows.c.status == KegiatanStatus.DIAJUKAN.value
        dikembalikan = rows.c.status == KegiatanStatus.DIKEMBALIKAN.value
        hours = extract("epoch", rows.c.tanggal_disetujui - rows.c.tanggal_diajukan) / 3600

        stmt = select(
            func.count(),
            func.count().filter(diajukan),
            func.count().filter(approved),
            func.count().filter(dikembalikan),
            func.count().filter(rows.c.status == KegiatanStatus.DRAFT.value),
            func.coalesce(func.sum(rows.c.biaya).filter(diajukan), 0),
            func.coalesce(func.sum(rows.c.biaya).filter(approved), 0),
            func.coalesce(func.sum(rows.c.biaya).filter(dikembalikan), 0),
            func.avg(hours).filter(approved),
            func.max(rows.c.tanggal_diajukan),
        ).select_from(rows)
        (
            total, menunggu, disetujui, kembali, draft,
            biaya_diajukan, biaya_disetujui, biaya_kembali, avg_hours, latest,
        ) = (await self._session.execute(stmt)).one()
        return PpkStatistics(
            total_pengajuan=int(total or 0),
            menunggu_persetujuan=int(menunggu or 0),
            disetujui=int(disetujui or 0),
            dikembalikan=int(kembali or 0),
            draft=int(draft or 0),
            biaya_diajukan=Decimal(biaya_diajukan or 0),
            biaya_disetujui=Decimal(biaya_disetujui or 0),
            biaya_dikembalikan=Decimal(biaya_kembali or 0),
            rata_waktu_persetujuan_jam=round(float(avg_hours), 1) if avg_hours is not None else None,
            pengajuan_terbaru=latest,
        )

    async def status2_report(
        self, status_filter: Status2Filter, *, limit: int, offset: int,
    ) -> Status2Report:
        clauses = _status2_clauses(status_filter)
        label = _status2_label()

        counts = select(
            func.count(KegiatanModel.id),
            func.count(KegiatanModel.id).filter(label.is_not(None)),
        ).where(*clauses)
        total, labelled = (await self._session.execute(counts)).one()

        rows = await self._fetch(
            _select_with_aggregates()
            .where(*clauses)
            .order_by(
                case((label.is_(None), 1), else_=0),
                KegiatanModel.updated_at.desc(),
                KegiatanModel.id.desc(),
            )
            .limit(limit)
            .offset(offset)
        )

        totals = _pegawai_totals()
        grouped = (
            select(
                label.label("status_2"),
                func.count(KegiatanModel.id),
                func.coalesce(func.sum(totals.c.total), 0),
            )
            .outerjoin(totals, totals.c.kegiatan_id == KegiatanModel.id)
            .where(*clauses)
            .group_by(label)
            .order_by(label.asc().nulls_last())
        )
        groups = [
            Status2Group(status_2=name, count=int(count), total_biaya=Decimal(biaya or 0))
            for name, count, biaya in (await self._session.execute(grouped)).all()
        ]
        return Status2Report(
            rows=rows,
            total=int(total or 0),
            with_status_2=int(labelled or 0),
            groups=groups,
        )


class KegiatanWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, kegiatan: Kegiatan) -> Kegiatan:
        model = mapper.entity_to_model(kegiatan)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return mapper.model_to_entity(model)

    async def delete(self, kegiatan_id: int) -> None:
        await self._session.execute(
            delete(KegiatanModel).where(KegiatanModel.id == kegiatan_id)
        )

    async def transition(
        self,
        kegiatan_id: int,
        from_statuses: frozenset[str],
        values: dict[str, Any],
    ) -> bool:
        stmt = (
            update(KegiatanModel)
            .where(
                KegiatanModel.id == kegiatan_id,
                KegiatanModel.status.in_(sorted(from_statuses)),
            )
            .values(**values)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def update_fields(
        self,
        kegiatan_id: int,
        values: dict[str, Any],
        *,
        statuses: frozenset[str] | None = None,
    ) -> bool:
        stmt = update(KegiatanModel).where(KegiatanModel.id == kegiatan_id)
        if statuses is not None:
            stmt = stmt.where(KegiatanModel.status.in_(sorted(statuses)))
        result = await self._session.execute(stmt.values(**values))
        return result.rowcount > 0

    async def cancel(self, kegiatan_id: int) -> bool:
        stmt = (
            update(KegiatanModel)
            .where(
                KegiatanModel.id == kegiatan_id,
                KegiatanModel.status.not_in(sorted(TERMINAL_STATUSES)),
                ~_has_surat_tugas(),
            )
            .values(
                status=KegiatanStatus.DIBATALKAN.value,
                tanggal_dikembalikan=func.now(),
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0
