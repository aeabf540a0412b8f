"""Scoped search construction and its SQL compilation."""
from __future__ import annotations

import pytest
from sqlalchemy.dialects import postgresql

from talawang.application.exceptions import InvalidInputError
from talawang.application.policies.visibility import (
    KABALAI_VISIBLE,
    PPK_SEARCH_EXCLUDED,
    SEARCH_FIELDS,
    build_ppk_search_scope,
    build_search_scope,
    coerce_limit,
    ownership_scope,
    visibility_for,
)
from talawang.domain.value_objects.enums import FilterType, Role
from talawang.infrastructure.db.repositories.kegiatan import search_statement
from tests.conftest import make_kegiatan, make_principal


def _compile(stmt):
    compiled = stmt.compile(dialect=postgresql.dialect())
    return str(compiled), compiled.params


def test_regular_viewer_scenario_rapat_limit_10():
    scope = build_search_scope(Role.REGULAR, "42", "rapat", "10")

    assert scope.owner_field == "user_id"
    assert scope.owner_value == "42"
    assert scope.pattern == "%rapat%"
    assert scope.limit == 10
    assert scope.search_fields == SEARCH_FIELDS
    assert scope.filter_type == FilterType.PRIMARY

    sql, params = _compile(search_statement(scope))
    assert "nominatif_kegiatan.user_id = " in sql
    assert sql.count("ILIKE") == len(SEARCH_FIELDS)
    assert "ORDER BY nominatif_kegiatan.updated_at DESC" in sql
    assert "LIMIT" in sql
    assert "42" in params.values()
    assert "%rapat%" in params.values()
    assert 10 in params.values()
    # user input never reaches the SQL text
    assert "rapat" not in sql


@pytest.mark.parametrize("role", [Role.ADMIN, Role.PPK, Role.KABALAI])
def test_elevated_roles_have_no_ownership_restriction(role):
    scope = build_search_scope(role, "7", "rapat", 50)
    assert scope.owner_field is None

    sql, _ = _compile(search_statement(scope))
    assert "user_id =" not in sql


@pytest.mark.parametrize("term", ["", "   ", None, "\t\n"])
@pytest.mark.parametrize("role", list(Role))
def test_blank_term_is_invalid_for_any_role(role, term):
    with pytest.raises(InvalidInputError):
        build_search_scope(role, "42", term, 10)


@pytest.mark.parametrize("raw", ["abc", "1.5", "0", "-3", 0])
def test_bad_limits_rejected(raw):
    with pytest.raises(InvalidInputError):
        coerce_limit(raw)


def test_limit_coercion_and_clamp():
    assert coerce_limit(None) == 50
    assert coerce_limit("") == 50
    assert coerce_limit(" 25 ") == 25
    assert coerce_limit(500, maximum=200) == 200


def test_term_is_trimmed_and_like_wildcards_escaped():
    scope = build_search_scope(Role.ADMIN, "1", "  50%_off\\ ", 5)
    assert scope.term == "50%_off\\"
    assert scope.pattern == "%50\\%\\_off\\\\%"


def test_regular_matches_only_own_rows():
    scope = build_search_scope(Role.REGULAR, "42", "rapat", 10)
    mine = make_kegiatan(1, user_id="42")
    theirs = make_kegiatan(2, user_id="99")
    assert scope.matches(mine)
    assert not scope.matches(theirs)


def test_search_matches_case_insensitively_across_fields():
    scope = build_search_scope(Role.ADMIN, "1", "MAKASSAR", 10)
    assert scope.matches(make_kegiatan(1, kegiatan="Survey", kota_kab_kecamatan="Kota Makassar"))
    assert not scope.matches(make_kegiatan(2, kegiatan="Survey"))


def test_ppk_search_scope_policy():
    scope = build_ppk_search_scope("ppk-1", "rapat", 20)
    assert scope.owner_field == "ppk_id"
    assert scope.excluded_statuses == PPK_SEARCH_EXCLUDED
    assert "status" in scope.search_fields

    sql, params = _compile(search_statement(scope))
    assert "NOT IN" in sql
    assert "ppk-1" in params.values()

    assert not scope.matches(make_kegiatan(1, status="diajukan", ppk_id="ppk-1"))
    assert not scope.matches(make_kegiatan(2, status="selesai", ppk_id="ppk-1"))
    assert not scope.matches(make_kegiatan(3, status="dikembalikan", ppk_id="ppk-1"))
    assert scope.matches(make_kegiatan(4, status="diketahui", ppk_id="ppk-1"))


def test_fallback_switches_to_ppk_name():
    scope = build_ppk_search_scope("ppk-1", "rapat", 20)
    fallback = scope.fallback("siti.ppk")

    assert fallback is not None
    assert fallback.owner_field == "ppk_nama"
    assert fallback.owner_value == "siti.ppk"
    assert fallback.filter_type == FilterType.FALLBACK
    assert fallback.excluded_statuses == scope.excluded_statuses
    assert fallback.pattern == scope.pattern


def test_no_fallback_for_scopes_not_keyed_on_ppk_id():
    assert build_search_scope(Role.REGULAR, "42", "rapat", 10).fallback("budi") is None
    assert build_ppk_search_scope("ppk-1", "rapat", 10).fallback("") is None


def test_visibility_per_role():
    admin = visibility_for(make_principal("a", roles=["admin"]))
    ppk = visibility_for(make_principal("p", roles=["ppk"]))
    kabalai = visibility_for(make_principal("k", roles=["kabalai"]))
    regular = visibility_for(make_principal("r"))

    assert admin.owner_field is None and admin.statuses is None
    assert (ppk.owner_field, ppk.owner_value) == ("ppk_id", "p")
    assert kabalai.statuses == KABALAI_VISIBLE
    assert (regular.owner_field, regular.owner_value) == ("user_id", "r")

    assert kabalai.matches(make_kegiatan(1, status="diketahui"))
    assert not kabalai.matches(make_kegiatan(2, status="draft"))


def test_ownership_scope_for_stats():
    assert ownership_scope(Role.REGULAR, "42").owner_value == "42"
    assert ownership_scope(Role.PPK, "42").owner_field is None
