from __future__ import annotations

from decimal import Decimal

from talawang.domain.entities.kegiatan import Kegiatan
from talawang.infrastructure.db.models.kegiatan import KegiatanModel

_COLUMNS = (
    "kegiatan",
    "mak",
    "user_id",
    "status",
    "kota_kab_kecamatan",
    "rencana_tanggal_pelaksanaan",
    "rencana_tanggal_pelaksanaan_akhir",
    "realisasi_anggaran_sebelumnya",
    "target_output_tahun",
    "realisasi_output_sebelumnya",
    "target_output_yg_akan_dicapai",
    "jenis_spm",
    "ppk_id",
    "ppk_nama",
    "no_st",
    "tgl_st",
    "catatan",
    "catatan_kabalai",
    "diketahui_oleh",
    "diketahui_oleh_id",
    "status_2",
    "catatan_status_2",
    "tanggal_diajukan",
    "tanggal_disetujui",
    "tanggal_diketahui",
    "tanggal_dikembalikan",
)


def model_to_entity(
    model: KegiatanModel,
    *,
    jumlah_pegawai: int | None = 0,
    total_biaya: Decimal | None = None,
) -> Kegiatan:
    return Kegiatan(
        id=model.id,
        **{name: getattr(model, name) for name in _COLUMNS},
        created_at=model.created_at,
        updated_at=model.updated_at,
        jumlah_pegawai=int(jumlah_pegawai or 0),
        total_biaya=Decimal(total_biaya or 0),
    )


def entity_to_model(entity: Kegiatan) -> KegiatanModel:
    model = KegiatanModel(**{name: getattr(entity, name) for name in _COLUMNS})
    # timestamps left unset fall back to the server defaults
    if entity.id is not None:
        model.id = entity.id
    if entity.created_at is not None:
        model.created_at = entity.created_at
    if entity.updated_at is not None:
        model.updated_at = entity.updated_at
    return model
