from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from talawang.api.v1.schemas.kegiatan import KegiatanResponse


class SearchMeta(BaseModel):
    model_config = {"populate_by_name": True}

    count: int
    limit: int
    search_term: str = Field(alias="searchTerm")
    filter_type: str
    status_filter: str
    message: str
    ppk_id: str | None = None
    ppk_nama: str | None = None
    user_role: str | None = Field(None, alias="userRole")


class SearchResponse(BaseModel):
    success: bool = True
    data: list[KegiatanResponse]
    meta: SearchMeta


class StatsResponse(BaseModel):
    total_kegiatan: int
    total_selesai: int
    status_count: int


class CancelResponse(BaseModel):
    id: int
    kegiatan: str
    status: str
    tanggal_dikembalikan: datetime | None
    cancelled_by: str
    cancelled_at: datetime
