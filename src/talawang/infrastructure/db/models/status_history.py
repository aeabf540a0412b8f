from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Identity, Index, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from talawang.infrastructure.db.base import Base


class StatusHistoryModel(Base):
    __tablename__ = "nominatif_status_history"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    kegiatan_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("nominatif_kegiatan.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_nama: Mapped[str] = mapped_column(String(255), nullable=False)
    user_role: Mapped[str] = mapped_column(String(255), nullable=False)
    catatan: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    __table_args__ = (
        Index("ix_status_history_kegiatan", "kegiatan_id", "created_at"),
    )
