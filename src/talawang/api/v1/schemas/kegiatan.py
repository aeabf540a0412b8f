from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.entities.pegawai import BiayaItem, Pegawai
from talawang.domain.entities.status_history import StatusHistory
from talawang.domain.value_objects.enums import CostCategory


class KegiatanResponse(BaseModel):
    id: int
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
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    jumlah_pegawai: int = 0
    total_biaya: Decimal = Decimal("0")

    model_config = {"from_attributes": True, "populate_by_name": True}


class BiayaLineIn(BaseModel):
    uraian: str = Field(min_length=1, max_length=255)
    qty: int = Field(1, ge=0)
    harga: Decimal = Field(Decimal("0"), ge=0)


class BiayaLineResponse(BaseModel):
    id: int | None = None
    uraian: str
    qty: int
    harga: Decimal
    total: Decimal

    @classmethod
    def from_entity(cls, item: BiayaItem) -> BiayaLineResponse:
        return cls(id=item.id, uraian=item.uraian, qty=item.qty, harga=item.harga, total=item.total)


class PegawaiIn(BaseModel):
    nama: str = Field(min_length=1, max_length=255)
    nip: str | None = None
    jabatan: str | None = None
    transportasi: list[BiayaLineIn] = []
    uang_harian: list[BiayaLineIn] = []
    penginapan: list[BiayaLineIn] = []

    def to_entity(self) -> Pegawai:
        items = [
            BiayaItem(kategori=kategori, uraian=line.uraian, qty=line.qty, harga=line.harga)
            for kategori, lines in (
                (CostCategory.TRANSPORTASI, self.transportasi),
                (CostCategory.UANG_HARIAN, self.uang_harian),
                (CostCategory.PENGINAPAN, self.penginapan),
            )
            for line in lines
        ]
        return Pegawai(kegiatan_id=None, nama=self.nama, nip=self.nip, jabatan=self.jabatan, items=items)


class PegawaiResponse(BaseModel):
    id: int | None
    nama: str
    nip: str | None
    jabatan: str | None
    transportasi: list[BiayaLineResponse]
    uang_harian: list[BiayaLineResponse]
    penginapan: list[BiayaLineResponse]
    total_transportasi: Decimal
    total_uang_harian: Decimal
    total_penginapan: Decimal
    total_biaya: Decimal

    @classmethod
    def from_entity(cls, pegawai: Pegawai) -> PegawaiResponse:
        def lines(kategori: CostCategory) -> list[BiayaLineResponse]:
            return [BiayaLineResponse.from_entity(i) for i in pegawai.items if i.kategori == kategori]

        return cls(
            id=pegawai.id,
            nama=pegawai.nama,
            nip=pegawai.nip,
            jabatan=pegawai.jabatan,
            transportasi=lines(CostCategory.TRANSPORTASI),
            uang_harian=lines(CostCategory.UANG_HARIAN),
            penginapan=lines(CostCategory.PENGINAPAN),
            total_transportasi=pegawai.subtotal(CostCategory.TRANSPORTASI),
            total_uang_harian=pegawai.subtotal(CostCategory.UANG_HARIAN),
            total_penginapan=pegawai.subtotal(CostCategory.PENGINAPAN),
            total_biaya=pegawai.total_biaya,
        )


class KegiatanCreateRequest(BaseModel):
    kegiatan: str
    mak: str
    kota_kab_kecamatan: str | None = None
    rencana_tanggal_pelaksanaan: date | None = None
    rencana_tanggal_pelaksanaan_akhir: date | None = None
    realisasi_anggaran_sebelumnya: Decimal = Decimal("0")
    target_output_tahun: int = 0
    realisasi_output_sebelumnya: int = 0
    target_output_yg_akan_dicapai: str | None = None
    jenis_spm: str | None = None
    pegawai: list[PegawaiIn] = []

    def to_entity(self) -> Kegiatan:
        fields = self.model_dump(exclude={"pegawai"})
        return Kegiatan(id=None, user_id="", status="draft", **fields)


class KegiatanUpdateRequest(KegiatanCreateRequest):
    """Full replacement of the record's fields and personnel."""

    def to_values(self) -> dict[str, Any]:
        return self.model_dump(exclude={"pegawai"})


class KegiatanPatchRequest(BaseModel):
    kegiatan: str = ""
    mak: str = ""
    kota_kab_kecamatan: str | None = None
    rencana_tanggal_pelaksanaan: date | None = None
    rencana_tanggal_pelaksanaan_akhir: date | None = None
    realisasi_anggaran_sebelumnya: Decimal = Decimal("0")
    target_output_tahun: int = 0
    realisasi_output_sebelumnya: int = 0
    target_output_yg_akan_dicapai: str | None = None
    jenis_spm: str | None = None

    def to_values(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class KegiatanDetailResponse(BaseModel):
    kegiatan: KegiatanResponse
    pegawai: list[PegawaiResponse]
    is_owner: bool


class SubmitRequest(BaseModel):
    ppk_id: str | None = None
    ppk_nama: str | None = None
    catatan: str | None = None


class NoteRequest(BaseModel):
    catatan: str | None = None


class KabalaiApproveRequest(BaseModel):
    catatan_kabalai: str | None = None
    tanggal_mengetahui: date | None = None


class KabalaiRejectRequest(BaseModel):
    catatan_kabalai: str | None = None


class SuratTugasRequest(BaseModel):
    no_st: str | None = None
    tgl_st: date | None = None

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class KabalaiCorrectionRequest(KabalaiApproveRequest):
    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Status2Request(BaseModel):
    status_2: str | None = None
    catatan_status_2: str | None = None

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class StatusHistoryResponse(BaseModel):
    id: int | None
    kegiatan_id: int
    status: str
    user_id: str
    user_nama: str
    user_role: str
    catatan: str | None
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_entity(cls, entry: StatusHistory) -> StatusHistoryResponse:
        return cls.model_validate(entry, from_attributes=True)
