from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from talawang.application.dto.kegiatan import (
    KegiatanDetail,
    KegiatanFilterDTO,
    PpkStatistics,
    Status2Filter,
    Status2Report,
)
from talawang.application.dto.principal import Principal
from talawang.application.exceptions import (
    ForbiddenError,
    IllegalTransitionError,
    InvalidInputError,
    NotFoundError,
)
from talawang.application.policies.lifecycle import (
    APPROVAL_CORRECTABLE,
    ST_CORRECTABLE,
    WorkflowAction,
    assert_approval_correctable,
    assert_editable,
    assert_st_correctable,
    assert_transition,
    sources_of,
)
from talawang.application.policies.visibility import visibility_for
from talawang.application.ports.clock import Clock, SystemClock
from talawang.application.uow import UnitOfWork
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.entities.pegawai import Pegawai
from talawang.domain.entities.status_history import StatusHistory
from talawang.domain.value_objects.enums import KegiatanStatus

logger = logging.getLogger(__name__)


def _required(value: str | None, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(message)
    return value


async def _get_visible(kegiatan_id: int, principal: Principal, uow: UnitOfWork) -> Kegiatan:
    kegiatan = await uow.kegiatan.get_visible(kegiatan_id, visibility_for(principal))
    if kegiatan is None:
        raise NotFoundError("Kegiatan tidak ditemukan atau Anda tidak memiliki akses")
    return kegiatan


async def _apply(
    kegiatan: Kegiatan,
    action: WorkflowAction,
    principal: Principal,
    uow: UnitOfWork,
    clock: Clock,
    *,
    values: dict[str, Any],
    note: str | None,
) -> Kegiatan:
    """Run one guarded transition and record it in the status history."""
    target = assert_transition(kegiatan, action)
    sources = frozenset(s.value for s in sources_of(action))
    now = clock.now()

    if not await uow.kegiatan_w.transition(kegiatan.id, sources, {"status": target.value, **values}):
        await uow.rollback()
        current = await uow.kegiatan.get_by_id(kegiatan.id)
        if current is None:
            raise NotFoundError("Kegiatan tidak ditemukan")
        assert_transition(current, action)
        raise IllegalTransitionError("Gagal mengupdate status kegiatan")

    await uow.history_w.add(StatusHistory(
        kegiatan_id=kegiatan.id,
        status=target.value,
        user_id=principal.user_id,
        user_nama=principal.display_name,
        user_role=principal.roles_label,
        catatan=note,
        created_at=now,
    ))
    await uow.commit()
    logger.info(
        "Kegiatan %s: %s -> %s by %s", kegiatan.id, kegiatan.status, target, principal.user_id,
    )

    updated = await uow.kegiatan.get_by_id(kegiatan.id)
    assert updated is not None
    return updated


async def _update(
    kegiatan: Kegiatan,
    values: dict[str, Any],
    uow: UnitOfWork,
    *,
    statuses: frozenset[str] | None,
    recheck: Callable[[Kegiatan], Any],
) -> None:
    """Write fields under a status guard; a row that moved meanwhile is re-checked."""
    if await uow.kegiatan_w.update_fields(kegiatan.id, values, statuses=statuses):
        return
    await uow.rollback()
    current = await uow.kegiatan.get_by_id(kegiatan.id)
    if current is None:
        raise NotFoundError("Kegiatan tidak ditemukan")
    recheck(current)
    raise IllegalTransitionError("Gagal mengupdate kegiatan")


async def create_kegiatan(
    draft: Kegiatan,
    pegawai: list[Pegawai],
    principal: Principal,
    uow: UnitOfWork,
) -> KegiatanDetail:
    if not principal.is_regular:
        raise ForbiddenError("Hanya user reguler yang dapat membuat kegiatan")
    kegiatan = replace(
        draft,
        id=None,
        kegiatan=_required(draft.kegiatan, "Nama kegiatan wajib diisi"),
        mak=_required(draft.mak, "MAK wajib diisi"),
        user_id=principal.user_id,
        status=KegiatanStatus.DRAFT.value,
    )
    created = await uow.kegiatan_w.create(kegiatan)
    saved = [
        await uow.pegawai_w.add(replace(p, kegiatan_id=created.id))
        for p in pegawai
    ]
    await uow.commit()
    logger.info("Kegiatan %s created by %s with %d pegawai", created.id, principal.user_id, len(saved))

    refreshed = await uow.kegiatan.get_by_id(created.id)
    return KegiatanDetail(kegiatan=refreshed or created, pegawai=saved, is_owner=True)


async def list_kegiatan(
    principal: Principal,
    uow: UnitOfWork,
    *,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Kegiatan]:
    if status is not None and status not in set(KegiatanStatus):
        raise InvalidInputError(f'Status "{status}" tidak dikenal')
    filters = KegiatanFilterDTO(
        visibility=visibility_for(principal),
        status=status,
        search=(search or "").strip() or None,
        limit=limit,
        offset=offset,
    )
    return await uow.kegiatan.list_visible(filters)


async def get_kegiatan_detail(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> KegiatanDetail:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    pegawai = await uow.pegawai.list_for_kegiatan(kegiatan_id)
    return KegiatanDetail(
        kegiatan=kegiatan,
        pegawai=pegawai,
        is_owner=kegiatan.user_id == principal.user_id,
    )


async def delete_kegiatan(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    if principal.is_admin:
        allowed = True
    elif principal.is_ppk:
        allowed = kegiatan.status == KegiatanStatus.DIAJUKAN
    elif principal.is_regular:
        allowed = kegiatan.status == KegiatanStatus.DRAFT
    else:
        allowed = False
    if not allowed:
        raise ForbiddenError(
            f'Kegiatan dengan status "{kegiatan.status}" tidak dapat dihapus oleh role {principal.role}'
        )
    await uow.kegiatan_w.delete(kegiatan_id)
    await uow.commit()
    logger.info("Kegiatan %s deleted by %s", kegiatan_id, principal.user_id)
    return kegiatan


async def submit_to_ppk(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    ppk_id: str | None,
    ppk_nama: str | None,
    catatan: str | None = None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    if not principal.is_regular or kegiatan.user_id != principal.user_id:
        raise ForbiddenError("Hanya pembuat kegiatan yang dapat mengirim ke PPK")
    clock = clock or SystemClock()
    values = {
        "ppk_id": _required(ppk_id, "PPK wajib dipilih"),
        "ppk_nama": _required(ppk_nama, "Nama PPK wajib diisi"),
        "tanggal_diajukan": clock.now(),
    }
    if catatan:
        values["catatan"] = catatan
    return await _apply(
        kegiatan, WorkflowAction.SUBMIT, principal, uow, clock,
        values=values, note=catatan or f"Dikirim ke PPK {values['ppk_nama']}",
    )


def _assert_assigned_ppk(kegiatan: Kegiatan, principal: Principal) -> None:
    if not principal.is_ppk or kegiatan.ppk_id != principal.user_id:
        raise ForbiddenError("Hanya PPK yang ditunjuk yang dapat memproses kegiatan ini")


async def ppk_approve(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    catatan: str | None = None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    _assert_assigned_ppk(kegiatan, principal)
    clock = clock or SystemClock()
    values: dict[str, Any] = {"tanggal_disetujui": clock.now()}
    if catatan:
        values["catatan"] = catatan
    return await _apply(
        kegiatan, WorkflowAction.PPK_APPROVE, principal, uow, clock,
        values=values, note=catatan or "Diketahui oleh PPK",
    )


async def ppk_reject(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    catatan: str | None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    _assert_assigned_ppk(kegiatan, principal)
    note = f"Ditolak oleh PPK: {_required(catatan, 'Alasan penolakan wajib diisi')}"
    clock = clock or SystemClock()
    return await _apply(
        kegiatan, WorkflowAction.PPK_REJECT, principal, uow, clock,
        values={"catatan": note, "tanggal_dikembalikan": clock.now()}, note=note,
    )


async def kabalai_approve(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    catatan: str | None = None,
    tanggal_diketahui: date | None = None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    if not principal.is_kabalai:
        raise ForbiddenError("Hanya Kabalai yang dapat menyetujui kegiatan")
    clock = clock or SystemClock()
    diketahui_at = (
        datetime.combine(tanggal_diketahui, time.min, tzinfo=timezone.utc)
        if tanggal_diketahui else clock.now()
    )
    return await _apply(
        kegiatan, WorkflowAction.KABALAI_APPROVE, principal, uow, clock,
        values={
            "catatan_kabalai": catatan or None,
            "tanggal_diketahui": diketahui_at,
            "diketahui_oleh": principal.display_name,
            "diketahui_oleh_id": principal.user_id,
        },
        note=catatan or "Disetujui oleh Kabalai",
    )


async def kabalai_reject(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    catatan: str | None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    if not principal.is_kabalai:
        raise ForbiddenError("Hanya Kabalai yang dapat menolak kegiatan")
    note = _required(catatan, "Alasan penolakan wajib diisi")
    clock = clock or SystemClock()
    return await _apply(
        kegiatan, WorkflowAction.KABALAI_REJECT, principal, uow, clock,
        values={"catatan_kabalai": note, "tanggal_dikembalikan": clock.now()},
        note=f"Ditolak oleh Kabalai: {note}",
    )


async def record_surat_tugas(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    no_st: str | None,
    tgl_st: date | None,
    clock: Clock | None = None,
) -> Kegiatan:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    if kegiatan.user_id != principal.user_id:
        raise ForbiddenError("Hanya pembuat kegiatan yang dapat mencatat surat tugas")
    if kegiatan.has_surat_tugas:
        raise IllegalTransitionError("Surat tugas untuk kegiatan ini sudah tercatat")
    number = _required(no_st, "Nomor surat tugas wajib diisi")
    if tgl_st is None:
        raise InvalidInputError("Tanggal surat tugas wajib diisi")
    return await _apply(
        kegiatan, WorkflowAction.RECORD_ST, principal, uow, clock or SystemClock(),
        values={"no_st": number, "tgl_st": tgl_st},
        note=f"Surat tugas {number} tanggal {tgl_st.isoformat()}",
    )


async def list_history(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> list[StatusHistory]:
    await _get_visible(kegiatan_id, principal, uow)
    return await uow.history.list_for_kegiatan(kegiatan_id)


EDITABLE_FIELDS = (
    "kegiatan",
    "mak",
    "kota_kab_kecamatan",
    "rencana_tanggal_pelaksanaan",
    "rencana_tanggal_pelaksanaan_akhir",
    "realisasi_anggaran_sebelumnya",
    "target_output_tahun",
    "realisasi_output_sebelumnya",
    "target_output_yg_akan_dicapai",
    "jenis_spm",
)


def _editable_values(changes: dict[str, Any]) -> dict[str, Any]:
    values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if "kegiatan" in values:
        values["kegiatan"] = _required(values["kegiatan"], "Nama kegiatan wajib diisi")
    if "mak" in values:
        values["mak"] = _required(values["mak"], "MAK wajib diisi")
    return values


async def get_edit_form(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
) -> KegiatanDetail:
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    assert_editable(kegiatan, principal.role)
    pegawai = await uow.pegawai.list_for_kegiatan(kegiatan_id)
    return KegiatanDetail(
        kegiatan=kegiatan,
        pegawai=pegawai,
        is_owner=kegiatan.user_id == principal.user_id,
    )


async def replace_kegiatan(
    kegiatan_id: int,
    changes: dict[str, Any],
    pegawai: list[Pegawai],
    principal: Principal,
    uow: UnitOfWork,
) -> KegiatanDetail:
    """Overwrite the record's fields and its whole personnel list.

    The status is left as it is; personnel without a name are dropped.
    """
    values = _editable_values({**changes, "kegiatan": changes.get("kegiatan"), "mak": changes.get("mak")})
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    allowed = assert_editable(kegiatan, principal.role)

    await _update(
        kegiatan, values, uow,
        statuses=allowed,
        recheck=lambda current: assert_editable(current, principal.role),
    )
    await uow.pegawai_w.delete_for_kegiatan(kegiatan_id)
    saved = [
        await uow.pegawai_w.add(replace(p, id=None, kegiatan_id=kegiatan_id))
        for p in pegawai
        if p.nama.strip()
    ]
    await uow.commit()
    logger.info("Kegiatan %s replaced by %s with %d pegawai", kegiatan_id, principal.user_id, len(saved))

    refreshed = await uow.kegiatan.get_by_id(kegiatan_id)
    assert refreshed is not None
    return KegiatanDetail(
        kegiatan=refreshed,
        pegawai=saved,
        is_owner=refreshed.user_id == principal.user_id,
    )


async def patch_kegiatan(
    kegiatan_id: int,
    changes: dict[str, Any],
    principal: Principal,
    uow: UnitOfWork,
) -> Kegiatan:
    values = _editable_values(changes)
    if not values:
        raise InvalidInputError("Tidak ada data yang diupdate")
    kegiatan = await _get_visible(kegiatan_id, principal, uow)
    allowed = assert_editable(kegiatan, principal.role, partial=True)

    await _update(
        kegiatan, values, uow,
        statuses=allowed,
        recheck=lambda current: assert_editable(current, principal.role, partial=True),
    )
    await uow.commit()
    logger.info("Kegiatan %s patched by %s: %s", kegiatan_id, principal.user_id, sorted(values))

    updated = await uow.kegiatan.get_by_id(kegiatan_id)
    assert updated is not None
    return updated


async def correct_surat_tugas(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    changes: dict[str, Any],
    clock: Clock | None = None,
) -> Kegiatan:
    """Amend the assignment letter of an approved or finished record.

    An approved record whose letter becomes complete is finished on the way.
    """
    if not principal.is_regular:
        raise ForbiddenError("Hanya user biasa yang dapat mengupdate surat tugas")
    kegiatan = await _get_visible(kegiatan_id, principal, uow)

    values: dict[str, Any] = {}
    if "no_st" in changes:
        values["no_st"] = _required(changes["no_st"], "Nomor ST tidak boleh kosong")
    if "tgl_st" in changes:
        if changes["tgl_st"] is None:
            raise InvalidInputError("Tanggal ST tidak boleh kosong")
        values["tgl_st"] = changes["tgl_st"]
    if not values:
        raise InvalidInputError("Tidak ada data yang valid untuk diupdate")
    assert_st_correctable(kegiatan)

    merged = replace(kegiatan, **values)
    if merged.has_surat_tugas and kegiatan.status != KegiatanStatus.SELESAI:
        assert merged.tgl_st is not None
        return await _apply(
            kegiatan, WorkflowAction.RECORD_ST, principal, uow, clock or SystemClock(),
            values=values,
            note=(
                f"Surat Tugas diupdate: No. {merged.no_st}, Tgl. {merged.tgl_st.isoformat()} "
                f"- Status berubah dari {kegiatan.status} menjadi {KegiatanStatus.SELESAI}"
            ),
        )

    await _update(
        kegiatan, values, uow,
        statuses=frozenset(s.value for s in ST_CORRECTABLE),
        recheck=assert_st_correctable,
    )
    await uow.commit()
    logger.info("Surat tugas of kegiatan %s corrected by %s", kegiatan_id, principal.user_id)
    updated = await uow.kegiatan.get_by_id(kegiatan_id)
    assert updated is not None
    return updated


async def correct_kabalai_approval(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    changes: dict[str, Any],
) -> Kegiatan:
    if not principal.is_kabalai:
        raise ForbiddenError("Hanya Kabalai yang dapat mengupdate data mengetahui")
    values: dict[str, Any] = {}
    if "catatan_kabalai" in changes:
        values["catatan_kabalai"] = (changes["catatan_kabalai"] or "").strip() or None
    if changes.get("tanggal_mengetahui") is not None:
        values["tanggal_diketahui"] = datetime.combine(
            changes["tanggal_mengetahui"], time.min, tzinfo=timezone.utc,
        )
    if not values:
        raise InvalidInputError("Tidak ada data yang diupdate")

    kegiatan = assert_approval_correctable(await uow.kegiatan.get_by_id(kegiatan_id), principal.user_id)
    await _update(
        kegiatan, values, uow,
        statuses=frozenset(s.value for s in APPROVAL_CORRECTABLE),
        recheck=lambda current: assert_approval_correctable(current, principal.user_id),
    )
    await uow.commit()
    logger.info("Kabalai approval of kegiatan %s corrected by %s", kegiatan_id, principal.user_id)
    updated = await uow.kegiatan.get_by_id(kegiatan_id)
    assert updated is not None
    return updated


STATISTICS_PERIODS = ("today", "week", "month", "all")


def period_start(period: str, now: datetime) -> datetime | None:
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    if period == "all":
        return None
    raise InvalidInputError(
        f"Periode tidak valid. Gunakan salah satu: {', '.join(STATISTICS_PERIODS)}"
    )


async def ppk_statistics(
    principal: Principal,
    uow: UnitOfWork,
    *,
    period: str = "month",
    clock: Clock | None = None,
) -> PpkStatistics:
    if not principal.is_ppk:
        raise ForbiddenError("Hanya PPK yang dapat mengakses statistik persetujuan")
    since = period_start(period, (clock or SystemClock()).now())
    return await uow.kegiatan.ppk_statistics(principal.user_id, since)


STATUS2_HISTORY_MARKER = "status2_updated"


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


async def update_status2(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    changes: dict[str, Any],
    full: bool = False,
    clock: Clock | None = None,
) -> Kegiatan:
    """Set the administrative label of a record; blank values clear it.

    A full update also clears whichever of the two fields is left out.
    """
    if not principal.is_admin:
        raise ForbiddenError("Hanya admin yang dapat mengupdate status_2")
    present = {k: v for k, v in changes.items() if k in ("status_2", "catatan_status_2")}
    if not present:
        raise InvalidInputError(
            "Data status_2 dan catatan_status_2 diperlukan untuk update full"
            if full else "Tidak ada data status_2 yang diupdate"
        )
    kegiatan = await uow.kegiatan.get_by_id(kegiatan_id)
    if kegiatan is None:
        raise NotFoundError("Kegiatan tidak ditemukan")

    if full:
        values = {k: _clean(present.get(k)) for k in ("status_2", "catatan_status_2")}
    else:
        values = {k: _clean(v) for k, v in present.items()}
    await _update(kegiatan, values, uow, statuses=None, recheck=lambda current: None)

    label = values.get("status_2", kegiatan.status_2)
    note = f'Status_2 diubah menjadi: "{label or "(kosong)"}"'
    if values.get("catatan_status_2"):
        note += f", Catatan: {values['catatan_status_2']}"
    await uow.history_w.add(StatusHistory(
        kegiatan_id=kegiatan_id,
        status=STATUS2_HISTORY_MARKER,
        user_id=principal.user_id,
        user_nama=principal.display_name,
        user_role="admin",
        catatan=note,
        created_at=(clock or SystemClock()).now(),
    ))
    await uow.commit()
    logger.info("Status_2 of kegiatan %s set to %r by %s", kegiatan_id, label, principal.user_id)

    updated = await uow.kegiatan.get_by_id(kegiatan_id)
    assert updated is not None
    return updated


async def status2_report(
    principal: Principal,
    uow: UnitOfWork,
    *,
    status_2: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Status2Report:
    if not principal.is_admin:
        raise ForbiddenError("Hanya admin yang dapat mengakses report status_2")
    if page < 1 or limit < 1:
        raise InvalidInputError("Parameter page dan limit harus lebih dari 0")
    wanted = (status_2 or "").strip()
    if not wanted or wanted == "all":
        status_filter = Status2Filter()
    elif wanted == "empty":
        status_filter = Status2Filter(empty=True)
    else:
        status_filter = Status2Filter(value=wanted)
    return await uow.kegiatan.status2_report(status_filter, limit=limit, offset=(page - 1) * limit)
