from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talawang.domain.entities.status_history import StatusHistory
from talawang.infrastructure.db.mappers import status_history as mapper
from talawang.infrastructure.db.models.status_history import StatusHistoryModel


class StatusHistoryReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_kegiatan(self, kegiatan_id: int) -> list[StatusHistory]:
        stmt = (
            select(StatusHistoryModel)
            .where(StatusHistoryModel.kegiatan_id == kegiatan_id)
            .order_by(StatusHistoryModel.created_at.desc(), StatusHistoryModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class StatusHistoryWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, entry: StatusHistory) -> None:
        self._session.add(mapper.entity_to_model(entry))
