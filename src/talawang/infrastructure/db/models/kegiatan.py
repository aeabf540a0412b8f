from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Date, Identity, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talawang.infrastructure.db.base import Base


class KegiatanModel(Base):
    __tablename__ = "nominatif_kegiatan"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    kegiatan: Mapped[str] = mapped_column(Text, nullable=False)
    mak: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")

    kota_kab_kecamatan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rencana_tanggal_pelaksanaan: Mapped[date | None] = mapped_column(Date, nullable=True)
    rencana_tanggal_pelaksanaan_akhir: Mapped[date | None] = mapped_column(Date, nullable=True)
    realisasi_anggaran_sebelumnya: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"),
    )
    target_output_tahun: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    realisasi_output_sebelumnya: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_output_yg_akan_dicapai: Mapped[str | None] = mapped_column(Text, nullable=True)
    jenis_spm: Mapped[str | None] = mapped_column(String(50), nullable=True)

    ppk_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ppk_nama: Mapped[str | None] = mapped_column(String(255), nullable=True)
    no_st: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tgl_st: Mapped[date | None] = mapped_column(Date, nullable=True)
    catatan: Mapped[str | None] = mapped_column(Text, nullable=True)
    catatan_kabalai: Mapped[str | None] = mapped_column(Text, nullable=True)
    diketahui_oleh: Mapped[str | None] = mapped_column(String(255), nullable=True)
    diketahui_oleh_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # administrative follow-up label, independent of the workflow status
    status_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    catatan_status_2: Mapped[str | None] = mapped_column(Text, nullable=True)

    tanggal_diajukan: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    tanggal_disetujui: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    tanggal_diketahui: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    tanggal_dikembalikan: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=text("now()"),
    )

    pegawai = relationship(
        "PegawaiModel",
        back_populates="kegiatan",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_kegiatan_user_id", "user_id"),
        Index("ix_kegiatan_ppk_status", "ppk_id", "status"),
        Index("ix_kegiatan_updated_at", "updated_at"),
    )
