from __future__ import annotations

import logging

from talawang.application.dto.kegiatan import CancelResult, KegiatanStats, SearchResult
from talawang.application.dto.principal import Principal
from talawang.application.exceptions import IllegalTransitionError
from talawang.application.policies.lifecycle import assert_cancellable
from talawang.application.policies.visibility import (
    build_ppk_search_scope,
    build_search_scope,
    ownership_scope,
)
from talawang.application.ports.clock import Clock, SystemClock
from talawang.application.uow import UnitOfWork
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.entities.status_history import StatusHistory
from talawang.domain.value_objects.enums import KegiatanStatus

logger = logging.getLogger(__name__)

CANCEL_NOTE = "Dibatalkan melalui halaman pencarian"


async def search_kegiatan(
    principal: Principal,
    search_term: str | None,
    limit: object,
    uow: UnitOfWork,
    *,
    max_limit: int | None = None,
) -> SearchResult:
    """Search the records assigned to the caller as PPK.

    When nothing matches by PPK id the same search is retried against the
    stored PPK name, since older rows recorded the approver by name only.
    """
    scope = build_ppk_search_scope(principal.user_id, search_term, limit, max_limit=max_limit)
    rows = await uow.kegiatan.search(scope)
    if rows:
        return SearchResult(rows=rows, scope=scope)

    fallback = scope.fallback(principal.username)
    if fallback is None:
        return SearchResult(rows=rows, scope=scope)
    fallback_rows = await uow.kegiatan.search(fallback)
    if not fallback_rows:
        return SearchResult(rows=rows, scope=scope)
    logger.warning(
        "Search for ppk_id=%s matched only by ppk_nama=%r (%d rows)",
        principal.user_id, principal.username, len(fallback_rows),
    )
    return SearchResult(rows=fallback_rows, scope=fallback)


async def search_visible(
    principal: Principal,
    search_term: str | None,
    limit: object,
    uow: UnitOfWork,
    *,
    max_limit: int | None = None,
) -> SearchResult:
    scope = build_search_scope(principal.role, principal.user_id, search_term, limit, max_limit=max_limit)
    return SearchResult(rows=await uow.kegiatan.search(scope), scope=scope)


async def get_stats(principal: Principal, uow: UnitOfWork) -> KegiatanStats:
    return await uow.kegiatan.stats(ownership_scope(principal.role, principal.user_id))


async def cancel_kegiatan(
    kegiatan_id: int,
    principal: Principal,
    uow: UnitOfWork,
    *,
    clock: Clock | None = None,
) -> CancelResult:
    clock = clock or SystemClock()
    assert_cancellable(await uow.kegiatan.get_by_id(kegiatan_id))

    now = clock.now()
    if not await uow.kegiatan_w.cancel(kegiatan_id):
        # lost a race: report what the row turned into
        await uow.rollback()
        assert_cancellable(await uow.kegiatan.get_by_id(kegiatan_id))
        raise IllegalTransitionError("Gagal mengupdate status kegiatan")

    await uow.history_w.add(StatusHistory(
        kegiatan_id=kegiatan_id,
        status=KegiatanStatus.DIBATALKAN.value,
        user_id=principal.user_id,
        user_nama=principal.display_name,
        user_role=principal.roles_label,
        catatan=CANCEL_NOTE,
        created_at=now,
    ))
    await uow.commit()

    cancelled: Kegiatan | None = await uow.kegiatan.get_by_id(kegiatan_id)
    assert cancelled is not None
    logger.info("Kegiatan %s cancelled by %s", kegiatan_id, principal.display_name)
    return CancelResult(
        kegiatan=cancelled,
        cancelled_by=principal.display_name,
        cancelled_at=clock.now(),
    )
