from __future__ import annotations

from typing import Protocol

from talawang.domain.entities.status_history import StatusHistory


class StatusHistoryReader(Protocol):
    async def list_for_kegiatan(self, kegiatan_id: int) -> list[StatusHistory]: ...


class StatusHistoryWriter(Protocol):
    async def add(self, entry: StatusHistory) -> None: ...
