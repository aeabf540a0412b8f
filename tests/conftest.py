"""Shared test fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from talawang.application.dto.directory import DirectoryUser
from talawang.application.dto.kegiatan import (
    KegiatanFilterDTO,
    KegiatanStats,
    PpkStatistics,
    Status2Filter,
    Status2Group,
    Status2Report,
)
from talawang.application.dto.principal import Principal
from talawang.application.policies.lifecycle import PPK_APPROVED_STATUSES
from talawang.application.policies.visibility import (
    LIST_PRIORITY,
    LIST_PRIORITY_DEFAULT,
    SEARCH_FIELDS,
    SearchScope,
    VisibilityScope,
)
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.entities.pegawai import Pegawai
from talawang.domain.entities.status_history import StatusHistory
from talawang.domain.value_objects.enums import TERMINAL_STATUSES, KegiatanStatus

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_principal(
    user_id: str = "42",
    *,
    roles: list[str] | None = None,
    username: str = "budi",
    name: str | None = None,
) -> Principal:
    claims: dict[str, Any] = {
        "sub": user_id,
        "preferred_username": username,
        "realm_access": {"roles": roles or ["user"]},
    }
    if name:
        claims["name"] = name
    return Principal.from_claims(claims)


@pytest.fixture
def regular_principal() -> Principal:
    return make_principal("42", username="budi")


@pytest.fixture
def ppk_principal() -> Principal:
    return make_principal("ppk-1", roles=["ppk"], username="siti.ppk")


@pytest.fixture
def kabalai_principal() -> Principal:
    return make_principal("kb-1", roles=["kabalai_bws"], username="kabalai")


@pytest.fixture
def admin_principal() -> Principal:
    return make_principal("adm-1", roles=["admin"], username="admin")


def make_kegiatan(
    kegiatan_id: int = 1,
    *,
    status: str = KegiatanStatus.DRAFT,
    user_id: str = "42",
    kegiatan: str = "Rapat koordinasi",
    updated_at: datetime | None = None,
    **overrides: Any,
) -> Kegiatan:
    ts = updated_at or EPOCH + timedelta(minutes=kegiatan_id)
    return Kegiatan(
        id=kegiatan_id,
        kegiatan=kegiatan,
        mak="5231.001.052.A.524111",
        user_id=user_id,
        status=str(status),
        created_at=ts,
        updated_at=ts,
        **overrides,
    )


class FakeClock:
    def __init__(self, start: datetime = EPOCH) -> None:
        self._now = start
        self._mono = 0.0

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._mono

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        self._mono += seconds


def _sort_key(k: Kegiatan) -> tuple[datetime, int]:
    return (k.updated_at or EPOCH, k.id or 0)


@dataclass
class FakeKegiatanReader:
    _store: dict[int, Kegiatan] = field(default_factory=dict)
    searches: list[SearchScope] = field(default_factory=list)

    def add(self, *rows: Kegiatan) -> None:
        for row in rows:
            self._store[row.id] = row

    async def get_by_id(self, kegiatan_id: int) -> Kegiatan | None:
        return self._store.get(kegiatan_id)

    async def get_visible(self, kegiatan_id: int, visibility: VisibilityScope) -> Kegiatan | None:
        row = self._store.get(kegiatan_id)
        return row if row is not None and visibility.matches(row) else None

    async def search(self, scope: SearchScope) -> list[Kegiatan]:
        self.searches.append(scope)
        rows = [k for k in self._store.values() if scope.matches(k)]
        return sorted(rows, key=_sort_key, reverse=True)[: scope.limit]

    async def list_visible(self, filters: KegiatanFilterDTO) -> list[Kegiatan]:
        rows = [k for k in self._store.values() if filters.visibility.matches(k)]
        if filters.status:
            rows = [k for k in rows if k.status == filters.status]
        if filters.search:
            needle = filters.search.lower()
            rows = [
                k for k in rows
                if any(needle in str(getattr(k, f) or "").lower() for f in SEARCH_FIELDS)
            ]
        rows.sort(key=lambda k: (k.created_at or EPOCH, k.id or 0), reverse=True)
        rows.sort(key=lambda k: LIST_PRIORITY.get(k.status, LIST_PRIORITY_DEFAULT))
        return rows[filters.offset : filters.offset + filters.limit]

    async def stats(self, visibility: VisibilityScope) -> KegiatanStats:
        rows = [k for k in self._store.values() if visibility.matches(k)]
        return KegiatanStats(
            total_kegiatan=len(rows),
            total_selesai=sum(1 for k in rows if k.has_surat_tugas),
            status_count=len({k.status for k in rows}),
        )

    async def ppk_statistics(self, ppk_id: str, since: datetime | None) -> PpkStatistics:
        rows = [
            k for k in self._store.values()
            if k.ppk_id == ppk_id
            and (since is None or (k.tanggal_diajukan is not None and k.tanggal_diajukan >= since))
        ]
        approved = [k for k in rows if k.status in PPK_APPROVED_STATUSES]
        diajukan = [k for k in rows if k.status == KegiatanStatus.DIAJUKAN]
        kembali = [k for k in rows if k.status == KegiatanStatus.DIKEMBALIKAN]
        hours = [
            (k.tanggal_disetujui - k.tanggal_diajukan).total_seconds() / 3600
            for k in approved
            if k.tanggal_disetujui and k.tanggal_diajukan
        ]
        submitted = [k.tanggal_diajukan for k in rows if k.tanggal_diajukan]
        return PpkStatistics(
            total_pengajuan=len(rows),
            menunggu_persetujuan=len(diajukan),
            disetujui=len(approved),
            dikembalikan=len(kembali),
            draft=sum(1 for k in rows if k.status == KegiatanStatus.DRAFT),
            biaya_diajukan=sum((k.total_biaya for k in diajukan), Decimal("0")),
            biaya_disetujui=sum((k.total_biaya for k in approved), Decimal("0")),
            biaya_dikembalikan=sum((k.total_biaya for k in kembali), Decimal("0")),
            rata_waktu_persetujuan_jam=round(sum(hours) / len(hours), 1) if hours else None,
            pengajuan_terbaru=max(submitted, default=None),
        )

    async def status2_report(
        self, status_filter: Status2Filter, *, limit: int, offset: int,
    ) -> Status2Report:
        def label(k: Kegiatan) -> str | None:
            return (k.status_2 or "").strip() or None

        rows = [k for k in self._store.values() if k.status == KegiatanStatus.SELESAI]
        if status_filter.empty:
            rows = [k for k in rows if label(k) is None]
        elif status_filter.value is not None:
            rows = [k for k in rows if k.status_2 == status_filter.value]
        rows.sort(key=_sort_key, reverse=True)
        rows.sort(key=lambda k: label(k) is None)

        groups: dict[str | None, list[Kegiatan]] = {}
        for k in rows:
            groups.setdefault(label(k), []).append(k)
        return Status2Report(
            rows=rows[offset : offset + limit],
            total=len(rows),
            with_status_2=sum(1 for k in rows if label(k) is not None),
            groups=[
                Status2Group(
                    status_2=name,
                    count=len(members),
                    total_biaya=sum((k.total_biaya for k in members), Decimal("0")),
                )
                for name, members in sorted(groups.items(), key=lambda g: (g[0] is None, g[0] or ""))
            ],
        )


@dataclass
class FakeKegiatanWriter:
    _reader: FakeKegiatanReader
    clock: FakeClock = field(default_factory=FakeClock)
    deleted: list[int] = field(default_factory=list)

    async def create(self, kegiatan: Kegiatan) -> Kegiatan:
        new_id = max(self._reader._store, default=0) + 1
        now = self.clock.now()
        created = replace(kegiatan, id=new_id, created_at=now, updated_at=now)
        self._reader._store[new_id] = created
        return created

    async def delete(self, kegiatan_id: int) -> None:
        self._reader._store.pop(kegiatan_id, None)
        self.deleted.append(kegiatan_id)

    async def transition(
        self, kegiatan_id: int, from_statuses: frozenset[str], values: dict[str, Any],
    ) -> bool:
        row = self._reader._store.get(kegiatan_id)
        if row is None or row.status not in from_statuses:
            return False
        self.clock.advance(1)
        self._reader._store[kegiatan_id] = replace(row, **values, updated_at=self.clock.now())
        return True

    async def update_fields(
        self,
        kegiatan_id: int,
        values: dict[str, Any],
        *,
        statuses: frozenset[str] | None = None,
    ) -> bool:
        row = self._reader._store.get(kegiatan_id)
        if row is None or (statuses is not None and row.status not in statuses):
            return False
        self.clock.advance(1)
        self._reader._store[kegiatan_id] = replace(row, **values, updated_at=self.clock.now())
        return True

    async def cancel(self, kegiatan_id: int) -> bool:
        row = self._reader._store.get(kegiatan_id)
        if row is None or row.status in TERMINAL_STATUSES or row.has_surat_tugas:
            return False
        self.clock.advance(1)
        self._reader._store[kegiatan_id] = replace(
            row,
            status=KegiatanStatus.DIBATALKAN.value,
            tanggal_dikembalikan=self.clock.now(),
            updated_at=self.clock.now(),
        )
        return True


@dataclass
class FakePegawaiReader:
    _rows: list[Pegawai] = field(default_factory=list)

    async def list_for_kegiatan(self, kegiatan_id: int) -> list[Pegawai]:
        return [p for p in self._rows if p.kegiatan_id == kegiatan_id]


@dataclass
class FakePegawaiWriter:
    _reader: FakePegawaiReader

    async def add(self, pegawai: Pegawai) -> Pegawai:
        saved = replace(pegawai, id=max((p.id or 0 for p in self._reader._rows), default=0) + 1)
        self._reader._rows.append(saved)
        return saved

    async def delete_for_kegiatan(self, kegiatan_id: int) -> None:
        self._reader._rows[:] = [p for p in self._reader._rows if p.kegiatan_id != kegiatan_id]


@dataclass
class FakeHistoryReader:
    _entries: list[StatusHistory] = field(default_factory=list)

    async def list_for_kegiatan(self, kegiatan_id: int) -> list[StatusHistory]:
        rows = [e for e in self._entries if e.kegiatan_id == kegiatan_id]
        return sorted(rows, key=lambda e: e.created_at, reverse=True)


@dataclass
class FakeHistoryWriter:
    _reader: FakeHistoryReader

    async def add(self, entry: StatusHistory) -> None:
        self._reader._entries.append(entry)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    kegiatan: FakeKegiatanReader = field(default_factory=FakeKegiatanReader)
    kegiatan_w: FakeKegiatanWriter | None = None
    pegawai: FakePegawaiReader = field(default_factory=FakePegawaiReader)
    pegawai_w: FakePegawaiWriter | None = None
    history: FakeHistoryReader = field(default_factory=FakeHistoryReader)
    history_w: FakeHistoryWriter | None = None
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        if self.kegiatan_w is None:
            self.kegiatan_w = FakeKegiatanWriter(self.kegiatan)
        if self.pegawai_w is None:
            self.pegawai_w = FakePegawaiWriter(self.pegawai)
        if self.history_w is None:
            self.history_w = FakeHistoryWriter(self.history)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@dataclass
class FakeDirectory:
    ppk: list[DirectoryUser] = field(default_factory=list)
    users: list[dict[str, Any]] = field(default_factory=list)
    simple: list[dict[str, Any]] = field(default_factory=list)
    invalidations: int = 0

    async def ppk_users(self) -> list[DirectoryUser]:
        return list(self.ppk)

    async def all_users(self, *, max_results: int = 100) -> list[dict[str, Any]]:
        return self.users[:max_results]

    async def all_users_simple(self) -> list[dict[str, Any]]:
        return list(self.simple)

    async def invalidate(self) -> None:
        self.invalidations += 1


def make_ppk_user(user_id: str = "ppk-1", nama: str = "Siti Rahma", **overrides: Any) -> DirectoryUser:
    values: dict[str, Any] = {
        "user_id": user_id,
        "username": "siti.ppk",
        "email": "siti@example.go.id",
        "nama": nama,
        "nip": "198001012005012001",
        "jabatan": "PPK",
        "unit_kerja": "BWS",
    }
    values.update(overrides)
    return DirectoryUser(**values)

