from __future__ import annotations

from enum import StrEnum


class KegiatanStatus(StrEnum):
    DRAFT = "draft"
    DIAJUKAN = "diajukan"
    DIKETAHUI = "diketahui"
    DISETUJUI = "disetujui"
    SELESAI = "selesai"
    DIKEMBALIKAN = "dikembalikan"
    DIBATALKAN = "dibatalkan"


TERMINAL_STATUSES = frozenset({KegiatanStatus.SELESAI, KegiatanStatus.DIBATALKAN})


class Role(StrEnum):
    ADMIN = "admin"
    PPK = "ppk"
    KABALAI = "kabalai"
    REGULAR = "regular"

    @property
    def is_elevated(self) -> bool:
        return self is not Role.REGULAR


class CostCategory(StrEnum):
    TRANSPORTASI = "transportasi"
    UANG_HARIAN = "uang_harian"
    PENGINAPAN = "penginapan"


class FilterType(StrEnum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
