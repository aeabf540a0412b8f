"""Row-level visibility and the scoped search builder.

A scope is a frozen description of which ``nominatif_kegiatan`` rows a viewer
may see. The SQLAlchemy repository compiles it into a parameterized query;
``matches()`` evaluates the same predicate in memory.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from talawang.application.dto.principal import Principal
from talawang.application.exceptions import InvalidInputError
from talawang.domain.entities.kegiatan import Kegiatan
from talawang.domain.value_objects.enums import FilterType, KegiatanStatus, Role

SEARCH_FIELDS: tuple[str, ...] = (
    "kegiatan",
    "mak",
    "no_st",
    "kota_kab_kecamatan",
    "ppk_nama",
    "diketahui_oleh",
)

# /search additionally matches on the status label
PPK_SEARCH_FIELDS: tuple[str, ...] = SEARCH_FIELDS + ("status",)

PPK_SEARCH_EXCLUDED = frozenset({
    KegiatanStatus.DIAJUKAN.value,
    KegiatanStatus.SELESAI.value,
    KegiatanStatus.DIKEMBALIKAN.value,
})

KABALAI_VISIBLE = frozenset({
    KegiatanStatus.DISETUJUI.value,
    KegiatanStatus.DIKETAHUI.value,
    KegiatanStatus.SELESAI.value,
})


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def normalize_term(search_term: str | None) -> str:
    term = (search_term or "").strip()
    if not term:
        raise InvalidInputError("Kata kunci pencarian tidak boleh kosong")
    return term


def coerce_limit(raw: Any, *, default: int = 50, maximum: int | None = None) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        limit = int(str(raw).strip())
    except ValueError as exc:
        raise InvalidInputError("Parameter limit harus berupa angka") from exc
    if limit < 1:
        raise InvalidInputError("Parameter limit harus lebih dari 0")
    if maximum is not None:
        limit = min(limit, maximum)
    return limit


@dataclass(frozen=True, slots=True)
class SearchScope:
    term: str
    limit: int
    owner_field: str | None = None
    owner_value: str | None = None
    search_fields: tuple[str, ...] = SEARCH_FIELDS
    excluded_statuses: frozenset[str] = frozenset()
    filter_type: FilterType = FilterType.PRIMARY
    order_by: str = "updated_at"

    @property
    def pattern(self) -> str:
        """Case-insensitive LIKE pattern; wildcards in the term match literally."""
        return f"%{_escape_like(self.term)}%"

    def fallback(self, display_name: str | None) -> SearchScope | None:
        """Same search keyed on the PPK's stored name instead of their id.

        Older rows recorded the approver by name only, so an id-scoped search
        that finds nothing is retried against ``ppk_nama``.
        """
        if self.owner_field != "ppk_id" or not display_name:
            return None
        return replace(
            self,
            owner_field="ppk_nama",
            owner_value=display_name,
            filter_type=FilterType.FALLBACK,
        )

    def matches(self, kegiatan: Kegiatan) -> bool:
        if self.owner_field and getattr(kegiatan, self.owner_field) != self.owner_value:
            return False
        if kegiatan.status in self.excluded_statuses:
            return False
        needle = self.term.lower()
        return any(
            needle in str(getattr(kegiatan, name) or "").lower()
            for name in self.search_fields
        )


def build_search_scope(
    role: Role,
    viewer_id: str,
    search_term: str | None,
    limit: Any,
    *,
    max_limit: int | None = None,
) -> SearchScope:
    """Role-scoped search: regular viewers only see rows they own."""
    term = normalize_term(search_term)
    size = coerce_limit(limit, maximum=max_limit)
    if role.is_elevated:
        return SearchScope(term=term, limit=size)
    return SearchScope(term=term, limit=size, owner_field="user_id", owner_value=viewer_id)


def build_ppk_search_scope(
    viewer_id: str,
    search_term: str | None,
    limit: Any,
    *,
    max_limit: int | None = None,
) -> SearchScope:
    """Policy of the ``/search`` endpoint: rows assigned to the viewer as PPK."""
    return SearchScope(
        term=normalize_term(search_term),
        limit=coerce_limit(limit, maximum=max_limit),
        owner_field="ppk_id",
        owner_value=viewer_id,
        search_fields=PPK_SEARCH_FIELDS,
        excluded_statuses=PPK_SEARCH_EXCLUDED,
    )


@dataclass(frozen=True, slots=True)
class VisibilityScope:
    owner_field: str | None = None
    owner_value: str | None = None
    statuses: frozenset[str] | None = None

    def matches(self, kegiatan: Kegiatan) -> bool:
        if self.owner_field and getattr(kegiatan, self.owner_field) != self.owner_value:
            return False
        if self.statuses is not None and kegiatan.status not in self.statuses:
            return False
        return True


def visibility_for(principal: Principal) -> VisibilityScope:
    """Which records a principal may list or open.

    Admins see everything, a PPK sees records assigned to them, Kabalai sees
    records that passed PPK review, everyone else sees their own submissions.
    """
    if principal.is_admin:
        return VisibilityScope()
    if principal.is_ppk:
        return VisibilityScope(owner_field="ppk_id", owner_value=principal.user_id)
    if principal.is_kabalai:
        return VisibilityScope(statuses=KABALAI_VISIBLE)
    return VisibilityScope(owner_field="user_id", owner_value=principal.user_id)


def ownership_scope(role: Role, viewer_id: str) -> VisibilityScope:
    """Ownership restriction alone, as used by the search statistics."""
    if role == Role.REGULAR:
        return VisibilityScope(owner_field="user_id", owner_value=viewer_id)
    return VisibilityScope()


# listing order; statuses not named sort after these
LIST_PRIORITY: dict[str, int] = {
    KegiatanStatus.DISETUJUI.value: 1,
    KegiatanStatus.DIKETAHUI.value: 2,
    KegiatanStatus.SELESAI.value: 3,
}
LIST_PRIORITY_DEFAULT = 4
