from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from talawang.application.dto.kegiatan import (
    KegiatanFilterDTO,
    KegiatanStats,
    PpkStatistics,
    Status2Filter,
    Status2Report,
)
from talawang.application.policies.visibility import SearchScope, VisibilityScope
from talawang.domain.entities.kegiatan import Kegiatan


class KegiatanReader(Protocol):
    async def get_by_id(self, kegiatan_id: int) -> Kegiatan | None: ...

    async def get_visible(
        self, kegiatan_id: int, visibility: VisibilityScope,
    ) -> Kegiatan | None:
        """Fetch a record only if ``visibility`` admits it."""
        ...

    async def search(self, scope: SearchScope) -> list[Kegiatan]:
        """Rows matching the scope, newest update first, at most ``scope.limit``."""
        ...

    async def list_visible(self, filters: KegiatanFilterDTO) -> list[Kegiatan]: ...

    async def stats(self, visibility: VisibilityScope) -> KegiatanStats: ...

    async def ppk_statistics(self, ppk_id: str, since: datetime | None) -> PpkStatistics:
        """Aggregate the PPK's records submitted at or after ``since``."""
        ...

    async def status2_report(
        self, status_filter: Status2Filter, *, limit: int, offset: int,
    ) -> Status2Report:
        """Finished records with their administrative labels, unlabelled last."""
        ...


class KegiatanWriter(Protocol):
    async def create(self, kegiatan: Kegiatan) -> Kegiatan: ...

    async def delete(self, kegiatan_id: int) -> None: ...

    async def transition(
        self,
        kegiatan_id: int,
        from_statuses: frozenset[str],
        values: dict[str, Any],
    ) -> bool:
        """Conditionally update a row still in one of ``from_statuses``.

        Returns False when no row was affected.
        """
        ...

    async def update_fields(
        self,
        kegiatan_id: int,
        values: dict[str, Any],
        *,
        statuses: frozenset[str] | None = None,
    ) -> bool:
        """Write ``values`` without touching the status; ``statuses`` restricts the row as in ``transition``."""
        ...

    async def cancel(self, kegiatan_id: int) -> bool:
        """Mark a non-terminal row without an assignment letter as cancelled.

        ``tanggal_dikembalikan`` is stamped with the database clock.
        """
        ...
