from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Computed, ForeignKey, Identity, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talawang.infrastructure.db.base import Base


class PegawaiModel(Base):
    __tablename__ = "nominatif_pegawai"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    kegiatan_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("nominatif_kegiatan.id", ondelete="CASCADE"),
        nullable=False,
    )
    nama: Mapped[str] = mapped_column(String(255), nullable=False)
    nip: Mapped[str | None] = mapped_column(String(30), nullable=True)
    jabatan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # sum of the biaya items, written together with them
    total_biaya: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"))

    kegiatan = relationship("KegiatanModel", back_populates="pegawai")
    items = relationship(
        "BiayaItemModel",
        back_populates="pegawai",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="BiayaItemModel.id",
    )

    __table_args__ = (
        Index("ix_pegawai_kegiatan_id", "kegiatan_id"),
    )


class BiayaItemModel(Base):
    __tablename__ = "nominatif_biaya_items"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    pegawai_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("nominatif_pegawai.id", ondelete="CASCADE"),
        nullable=False,
    )
    kategori: Mapped[str] = mapped_column(String(20), nullable=False)
    uraian: Mapped[str] = mapped_column(String(255), nullable=False)
    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    harga: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(18, 2), Computed("qty * harga", persisted=True))

    pegawai = relationship("PegawaiModel", back_populates="items")

    __table_args__ = (
        Index("ix_biaya_items_pegawai_id", "pegawai_id"),
    )
