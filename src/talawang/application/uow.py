from __future__ import annotations

from typing import Protocol

from talawang.application.repositories.kegiatan import KegiatanReader, KegiatanWriter
from talawang.application.repositories.pegawai import PegawaiReader, PegawaiWriter
from talawang.application.repositories.status_history import (
    StatusHistoryReader,
    StatusHistoryWriter,
)


class UnitOfWork(Protocol):
    kegiatan: KegiatanReader
    kegiatan_w: KegiatanWriter
    pegawai: PegawaiReader
    pegawai_w: PegawaiWriter
    history: StatusHistoryReader
    history_w: StatusHistoryWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
