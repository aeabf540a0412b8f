from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Kegiatan:
    id: int | None
    kegiatan: str
    mak: str
    user_id: str
    status: str
    kota_kab_kecamatan: str | None = None
    rencana_tanggal_pelaksanaan: date | None = None
    rencana_tanggal_pelaksanaan_akhir: date | None = None
    realisasi_anggaran_sebelumnya: Decimal = Decimal("0")
    target_output_tahun: int = 0
    realisasi_output_sebelumnya: int = 0
    target_output_yg_akan_dicapai: str | None = None
    jenis_spm: str | None = None
    ppk_id: str | None = None
    ppk_nama: str | None = None
    no_st: str | None = None
    tgl_st: date | None = None
    catatan: str | None = None
    catatan_kabalai: str | None = None
    diketahui_oleh: str | None = None
    diketahui_oleh_id: str | None = None
    status_2: str | None = None
    catatan_status_2: str | None = None
    tanggal_diajukan: datetime | None = None
    tanggal_disetujui: datetime | None = None
    tanggal_diketahui: datetime | None = None
    tanggal_dikembalikan: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # aggregates over attached personnel, filled by read queries
    jumlah_pegawai: int = 0
    total_biaya: Decimal = field(default=Decimal("0"))

    @property
    def has_surat_tugas(self) -> bool:
        """An assignment letter is recorded once both its number and date are set."""
        return bool(self.no_st) and self.tgl_st is not None
