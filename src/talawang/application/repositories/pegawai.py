from __future__ import annotations

from typing import Protocol

from talawang.domain.entities.pegawai import Pegawai


class PegawaiReader(Protocol):
    async def list_for_kegiatan(self, kegiatan_id: int) -> list[Pegawai]: ...


class PegawaiWriter(Protocol):
    async def add(self, pegawai: Pegawai) -> Pegawai: ...

    async def delete_for_kegiatan(self, kegiatan_id: int) -> None:
        """Drop every personnel row of a record together with its cost lines."""
        ...
