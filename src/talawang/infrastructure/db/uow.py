from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from talawang.infrastructure.db.repositories.kegiatan import (
    KegiatanReaderRepo,
    KegiatanWriterRepo,
)
from talawang.infrastructure.db.repositories.pegawai import (
    PegawaiReaderRepo,
    PegawaiWriterRepo,
)
from talawang.infrastructure.db.repositories.status_history import (
    StatusHistoryReaderRepo,
    StatusHistoryWriterRepo,
)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.kegiatan = KegiatanReaderRepo(session)
        self.kegiatan_w = KegiatanWriterRepo(session)
        self.pegawai = PegawaiReaderRepo(session)
        self.pegawai_w = PegawaiWriterRepo(session)
        self.history = StatusHistoryReaderRepo(session)
        self.history_w = StatusHistoryWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
