from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from talawang.application.policies.visibility import SearchScope, VisibilityScope
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.entities.pegawai import Pegawai


@dataclass(frozen=True, slots=True)
class KegiatanFilterDTO:
    visibility: VisibilityScope = field(default_factory=VisibilityScope)
    status: str | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class KegiatanStats:
    total_kegiatan: int
    total_selesai: int
    status_count: int


@dataclass(frozen=True, slots=True)
class SearchResult:
    rows: list[Kegiatan]
    scope: SearchScope

    @property
    def is_fallback(self) -> bool:
        return self.scope.owner_field == "ppk_nama"


@dataclass(frozen=True, slots=True)
class KegiatanDetail:
    kegiatan: Kegiatan
    pegawai: list[Pegawai]
    is_owner: bool


@dataclass(frozen=True, slots=True)
class CancelResult:
    kegiatan: Kegiatan
    cancelled_by: str
    cancelled_at: datetime


@dataclass(frozen=True, slots=True)
class PpkStatistics:
    """Approval figures over the records assigned to one PPK."""

    total_pengajuan: int = 0
    menunggu_persetujuan: int = 0
    disetujui: int = 0
    dikembalikan: int = 0
    draft: int = 0
    biaya_diajukan: Decimal = Decimal("0")
    biaya_disetujui: Decimal = Decimal("0")
    biaya_dikembalikan: Decimal = Decimal("0")
    rata_waktu_persetujuan_jam: float | None = None
    pengajuan_terbaru: datetime | None = None

    @property
    def biaya_total(self) -> Decimal:
        return self.biaya_diajukan + self.biaya_disetujui + self.biaya_dikembalikan

    def percentage(self, count: int) -> float:
        if not self.total_pengajuan:
            return 0.0
        return round(count / self.total_pengajuan * 100, 1)


@dataclass(frozen=True, slots=True)
class Status2Filter:
    # None matches every record, ``empty`` only those without a label
    value: str | None = None
    empty: bool = False


@dataclass(frozen=True, slots=True)
class Status2Group:
    status_2: str | None
    count: int
    total_biaya: Decimal


@dataclass(frozen=True, slots=True)
class Status2Report:
    rows: list[Kegiatan]
    total: int
    with_status_2: int
    groups: list[Status2Group]

    @property
    def without_status_2(self) -> int:
        return self.total - self.with_status_2
