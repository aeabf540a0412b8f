from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class StatusHistory:
    kegiatan_id: int
    status: str
    user_id: str
    user_nama: str
    user_role: str
    catatan: str | None
    created_at: datetime
    id: int | None = None
