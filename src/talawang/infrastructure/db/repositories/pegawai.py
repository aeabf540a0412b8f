from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from talawang.domain.entities.pegawai import Pegawai
from talawang.infrastructure.db.mappers import pegawai as mapper
from talawang.infrastructure.db.models.pegawai import PegawaiModel


class PegawaiReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_kegiatan(self, kegiatan_id: int) -> list[Pegawai]:
        stmt = (
            select(PegawaiModel)
            .where(PegawaiModel.kegiatan_id == kegiatan_id)
            .order_by(PegawaiModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class PegawaiWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, pegawai: Pegawai) -> Pegawai:
        model = mapper.entity_to_model(pegawai)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def delete_for_kegiatan(self, kegiatan_id: int) -> None:
        # cost lines go with their pegawai through ON DELETE CASCADE
        await self._session.execute(
            delete(PegawaiModel).where(PegawaiModel.kegiatan_id == kegiatan_id)
        )
