from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from talawang.domain.value_objects.enums import CostCategory


@dataclass(frozen=True, slots=True)
class BiayaItem:
    """One cost line of a personnel entry (transport, daily allowance or lodging)."""

    kategori: CostCategory
    uraian: str
    qty: int
    harga: Decimal
    id: int | None = None

    @property
    def total(self) -> Decimal:
        return self.harga * self.qty


@dataclass(frozen=True, slots=True)
class Pegawai:
    kegiatan_id: int | None
    nama: str
    nip: str | None = None
    jabatan: str | None = None
    items: list[BiayaItem] = field(default_factory=list)
    id: int | None = None

    @property
    def total_biaya(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    def subtotal(self, kategori: CostCategory) -> Decimal:
        return sum(
            (item.total for item in self.items if item.kategori == kategori),
            Decimal("0"),
        )
