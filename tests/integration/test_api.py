"""Integration smoke tests for the REST API (fake UoW and directory via dependency overrides)."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from talawang.api.deps import get_directory, get_uow
from talawang.app import create_app
from talawang.config import settings
from talawang.application.exceptions import UpstreamUnavailableError
from tests.conftest import FakeDirectory, FakeUoW, make_kegiatan, make_ppk_user


def _make_token(sub: str = "42", username: str = "budi", roles: list[str] | None = None) -> str:
    return jwt.encode(
        {
            "sub": sub,
            "preferred_username": username,
            "realm_access": {"roles": roles or ["user"]},
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(**kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(**kwargs)}"}


PPK = {"sub": "ppk-1", "username": "siti.ppk", "roles": ["ppk"]}
KABALAI = {"sub": "kb-1", "username": "kabalai", "roles": ["kabalai_bws"]}
ADMIN = {"sub": "adm-1", "username": "admin", "roles": ["admin"]}


@pytest.fixture
def app_with_fakes():
    app = create_app()
    uow = FakeUoW()
    directory = FakeDirectory()

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    app.dependency_overrides[get_directory] = lambda: directory
    return app, uow, directory


@pytest.fixture
def client(app_with_fakes):
    app, _, _ = app_with_fakes
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def uow(app_with_fakes):
    return app_with_fakes[1]


@pytest.fixture
def directory(app_with_fakes):
    return app_with_fakes[2]


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"]


def test_search_by_ppk_id(client, uow):
    uow.kegiatan.add(
        make_kegiatan(1, status="diketahui", ppk_id="ppk-1"),
        make_kegiatan(2, status="selesai", ppk_id="ppk-1"),
    )

    resp = client.get("/api/v1/search", params={"q": "rapat", "limit": "10"}, headers=_auth(**PPK))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert [row["id"] for row in body["data"]] == [1]
    assert "createdAt" in body["data"][0]
    meta = body["meta"]
    assert meta["filter_type"] == "ppk_id"
    assert meta["count"] == 1
    assert meta["limit"] == 10
    assert meta["searchTerm"] == "rapat"
    assert meta["userRole"] == "ppk"
    assert meta["status_filter"] == "excluding_diajukan_selesai_dikembalikan"
    assert meta["message"].startswith("Data ditemukan untuk PPK: siti.ppk")


def test_search_falls_back_to_ppk_name(client, uow):
    uow.kegiatan.add(
        make_kegiatan(1, status="diketahui", ppk_nama="siti.ppk"),
        make_kegiatan(2, status="disetujui", ppk_nama="siti.ppk"),
        make_kegiatan(3, status="draft", ppk_nama="siti.ppk"),
    )

    resp = client.get("/api/v1/search", params={"q": "rapat"}, headers=_auth(**PPK))

    assert resp.status_code == 200
    body = resp.json()
    assert body["meta"]["filter_type"] == "ppk_nama_fallback"
    assert len(body["data"]) == 3
    assert body["meta"]["limit"] == settings.SEARCH_DEFAULT_LIMIT


def test_search_without_term(client):
    resp = client.get("/api/v1/search", headers=_auth(**PPK))
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Kata kunci pencarian tidak boleh kosong"}


def test_search_with_bad_limit(client):
    resp = client.get("/api/v1/search", params={"q": "rapat", "limit": "banyak"}, headers=_auth(**PPK))
    assert resp.status_code == 400


def test_unauthorized_returns_error(client):
    resp = client.get("/api/v1/search", params={"q": "rapat"})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_forged_token_rejected(client):
    token = jwt.encode({"sub": "42"}, "another-secret-with-at-least-32-bytes!", algorithm="HS256")
    resp = client.get("/api/v1/search/stats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_stats(client, uow):
    uow.kegiatan.add(
        make_kegiatan(1, status="selesai", no_st="ST-1", tgl_st=date(2024, 1, 2)),
        make_kegiatan(2, status="draft"),
        make_kegiatan(3, status="draft", user_id="99"),
    )

    resp = client.get("/api/v1/search/stats", headers=_auth())

    assert resp.status_code == 200
    assert resp.json()["data"] == {"total_kegiatan": 2, "total_selesai": 1, "status_count": 2}


def test_cancel(client, uow):
    uow.kegiatan.add(make_kegiatan(5, status="diajukan"))

    resp = client.put("/api/v1/search/5/cancel", headers=_auth())

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Kegiatan berhasil dibatalkan"
    assert body["data"]["status"] == "dibatalkan"
    assert body["data"]["cancelled_by"] == "budi"
    assert body["data"]["tanggal_dikembalikan"] is not None

    again = client.put("/api/v1/search/5/cancel", headers=_auth())
    assert again.status_code == 400
    assert again.json()["message"] == "Kegiatan sudah dalam status dibatalkan"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/api/v1/search/abc/cancel", 400),
        ("/api/v1/search/0/cancel", 400),
        ("/api/v1/search/999/cancel", 404),
        ("/api/v1/search/%C2%B2/cancel", 400),
        ("/api/v1/search/%EF%BC%91/cancel", 400),
        ("/api/v1/search/9223372036854775808/cancel", 400),
        ("/api/v1/search/9223372036854775807/cancel", 404),
    ],
)
def test_cancel_bad_ids(client, path, expected):
    assert client.put(path, headers=_auth()).status_code == expected


def test_cancel_with_assignment_letter(client, uow):
    uow.kegiatan.add(make_kegiatan(6, status="disetujui", no_st="ST-3", tgl_st=date(2024, 3, 1)))
    resp = client.put("/api/v1/search/6/cancel", headers=_auth())
    assert resp.status_code == 400
    assert uow.kegiatan._store[6].status == "disetujui"


def test_create_kegiatan(client, uow):
    resp = client.post(
        "/api/v1/kegiatan",
        headers=_auth(),
        json={
            "kegiatan": "Monitoring irigasi",
            "mak": "5231.001.052.A.524111",
            "rencana_tanggal_pelaksanaan": "2024-04-01",
            "pegawai": [{
                "nama": "Andi",
                "transportasi": [{"uraian": "Tiket", "qty": 2, "harga": "750000"}],
                "uang_harian": [{"uraian": "Harian", "qty": 3, "harga": "430000"}],
            }],
        },
    )

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["kegiatan"]["status"] == "draft"
    assert data["kegiatan"]["user_id"] == "42"
    assert data["is_owner"] is True
    [pegawai] = data["pegawai"]
    assert float(pegawai["total_transportasi"]) == 1500000
    assert float(pegawai["total_biaya"]) == 2790000
    assert uow._committed


def test_create_kegiatan_validation_error(client):
    resp = client.post("/api/v1/kegiatan", headers=_auth(), json={"mak": "x"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["errors"]


def test_workflow_over_http(client, uow):
    uow.kegiatan.add(make_kegiatan(7, status="draft"))

    submit = client.post(
        "/api/v1/kegiatan/7/kirim-ke-ppk",
        headers=_auth(),
        json={"ppk_id": "ppk-1", "ppk_nama": "Siti Rahma"},
    )
    assert submit.status_code == 200
    assert submit.json()["data"]["status"] == "diajukan"

    approve = client.post("/api/v1/kegiatan/7/approve", headers=_auth(**PPK), json={})
    assert approve.status_code == 200
    assert approve.json()["data"]["status"] == "diketahui"

    history = client.get("/api/v1/kegiatan/7/history", headers=_auth())
    assert history.status_code == 200
    assert [h["status"] for h in history.json()["data"]] == ["diketahui", "diajukan"]


def test_regular_user_cannot_approve(client, uow):
    uow.kegiatan.add(make_kegiatan(8, status="diajukan", ppk_id="ppk-1"))
    resp = client.post("/api/v1/kegiatan/8/approve", headers=_auth(), json={})
    assert resp.status_code == 403


def test_ppk_list_empty(client):
    resp = client.get("/api/v1/keycloak/ppk/list", headers=_auth())
    assert resp.status_code == 404
    assert resp.json()["message"] == "Tidak ada user dengan role PPK ditemukan di sistem"


def test_ppk_search(client, directory):
    directory.ppk.extend([make_ppk_user("ppk-1", "Siti Rahma"), make_ppk_user("ppk-2", "Andi Wijaya")])

    resp = client.get("/api/v1/keycloak/ppk/search", params={"query": "andi"}, headers=_auth())

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["data"][0]["user_id"] == "ppk-2"


def test_user_cannot_list_all_users(client, directory):
    directory.users.append({"id": "u1", "username": "siti"})
    assert client.get("/api/v1/keycloak/users", headers=_auth()).status_code == 403
    admin = client.get("/api/v1/keycloak/users", headers=_auth(sub="adm-1", roles=["admin"]))
    assert admin.status_code == 200
    assert admin.json()["data"][0]["username"] == "siti"


def test_replace_kegiatan_over_http(client, uow):
    uow.kegiatan.add(make_kegiatan(10, status="dikembalikan"))

    resp = client.put(
        "/api/v1/kegiatan/10",
        headers=_auth(),
        json={
            "kegiatan": "Monitoring irigasi tahap 2",
            "mak": "5231.001.052.A.524111",
            "pegawai": [{"nama": "Andi", "penginapan": [{"uraian": "Hotel", "qty": 2, "harga": "650000"}]}],
        },
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["kegiatan"]["kegiatan"] == "Monitoring irigasi tahap 2"
    assert data["kegiatan"]["status"] == "dikembalikan"
    assert [p["nama"] for p in data["pegawai"]] == ["Andi"]
    assert float(data["pegawai"][0]["total_biaya"]) == 1300000


def test_replace_kegiatan_after_submission_rejected(client, uow):
    uow.kegiatan.add(make_kegiatan(11, status="diajukan"))

    resp = client.put("/api/v1/kegiatan/11", headers=_auth(), json={"kegiatan": "x", "mak": "y"})

    assert resp.status_code == 400
    assert "tidak dapat diubah" in resp.json()["message"]


def test_patch_and_edit_form(client, uow):
    uow.kegiatan.add(make_kegiatan(12, status="draft"))

    form = client.get("/api/v1/kegiatan/12/edit", headers=_auth())
    assert form.status_code == 200
    assert form.json()["data"]["is_owner"] is True

    empty = client.patch("/api/v1/kegiatan/12", headers=_auth(), json={})
    assert empty.status_code == 400
    assert empty.json()["message"] == "Tidak ada data yang diupdate"

    patched = client.patch("/api/v1/kegiatan/12", headers=_auth(), json={"kota_kab_kecamatan": "Sigi"})
    assert patched.status_code == 200
    assert patched.json()["data"]["kota_kab_kecamatan"] == "Sigi"


def test_surat_tugas_correction_over_http(client, uow):
    uow.kegiatan.add(make_kegiatan(13, status="disetujui"))

    resp = client.patch(
        "/api/v1/kegiatan/13/surat-tugas",
        headers=_auth(),
        json={"no_st": "ST-7/2024", "tgl_st": "2024-05-02"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "selesai"
    assert resp.json()["data"]["no_st"] == "ST-7/2024"

    blank = client.patch("/api/v1/kegiatan/13/surat-tugas", headers=_auth(), json={"tgl_st": None})
    assert blank.status_code == 400


def test_kabalai_correction_over_http(client, uow):
    uow.kegiatan.add(make_kegiatan(14, status="disetujui", diketahui_oleh_id="kb-1"))

    resp = client.patch(
        "/api/v1/kegiatan/14/update-disetujui",
        headers=_auth(**KABALAI),
        json={"catatan_kabalai": "Revisi catatan"},
    )
    assert resp.status_code == 200
    assert resp.json()["message"] == "Data mengetahui berhasil diperbarui"
    assert resp.json()["data"]["catatan_kabalai"] == "Revisi catatan"

    denied = client.patch(
        "/api/v1/kegiatan/14/update-disetujui", headers=_auth(), json={"catatan_kabalai": "x"},
    )
    assert denied.status_code == 403


def test_ppk_statistics_over_http(client, uow):
    uow.kegiatan.add(
        make_kegiatan(15, status="diajukan", ppk_id="ppk-1", total_biaya=Decimal("100")),
        make_kegiatan(16, status="diketahui", ppk_id="ppk-1", total_biaya=Decimal("300")),
    )

    resp = client.get("/api/v1/kegiatan/ppk/statistics", params={"period": "all"}, headers=_auth(**PPK))

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Statistik persetujuan berhasil diambil"
    assert body["data"]["overview"]["total_pengajuan"] == 2
    assert float(body["data"]["financial"]["total_all"]) == 400
    assert body["data"]["percentages"] == {"disetujui": 50.0, "dikembalikan": 0.0, "menunggu": 50.0}
    assert body["meta"] == {"ppk_id": "ppk-1", "ppk_nama": "siti.ppk", "period": "all"}

    assert client.get("/api/v1/kegiatan/ppk/statistics", headers=_auth()).status_code == 403
    bad = client.get("/api/v1/kegiatan/ppk/statistics", params={"period": "year"}, headers=_auth(**PPK))
    assert bad.status_code == 400


def test_status2_update_and_report(client, uow):
    uow.kegiatan.add(make_kegiatan(17, status="selesai"), make_kegiatan(18, status="selesai"))

    assert client.patch("/api/v1/kegiatan/17/status2", headers=_auth(), json={"status_2": "x"}).status_code == 403

    patched = client.patch("/api/v1/kegiatan/17/status2", headers=_auth(**ADMIN), json={"status_2": "Arsip"})
    assert patched.status_code == 200
    assert patched.json()["data"]["status_2"] == "Arsip"

    full = client.put("/api/v1/kegiatan/18/status2", headers=_auth(**ADMIN), json={"catatan_status_2": "cek"})
    assert full.status_code == 200
    assert full.json()["data"]["status_2"] is None
    assert full.json()["data"]["catatan_status_2"] == "cek"

    report = client.get("/api/v1/kegiatan/admin/status2-report", headers=_auth(**ADMIN))
    assert report.status_code == 200
    body = report.json()
    assert [row["display_status_2"] for row in body["data"]] == ["Arsip", "(Belum diisi)"]
    assert body["statistics"]["percentage_with_status_2"] == 50.0
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 2, "pages": 1}


def test_directory_cache_refresh(client, directory):
    assert client.post("/api/v1/keycloak/cache/refresh", headers=_auth()).status_code == 403
    resp = client.post("/api/v1/keycloak/cache/refresh", headers=_auth(**ADMIN))
    assert resp.status_code == 200
    assert directory.invalidations == 1


class _BrokenReader:
    async def get_by_id(self, kegiatan_id):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))


@pytest.mark.parametrize("expose", [True, False])
def test_database_failure_maps_to_500(app_with_fakes, monkeypatch, expose):
    app, uow, _ = app_with_fakes
    uow.kegiatan = _BrokenReader()
    monkeypatch.setattr(settings, "EXPOSE_ERROR_DETAILS", expose)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.put("/api/v1/search/5/cancel", headers=_auth())

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Kesalahan basis data"
    if expose:
        assert body["error"]["message"] == "connection refused"
    else:
        assert "error" not in body


class _UnreachableDirectory(FakeDirectory):
    async def ppk_users(self):
        raise UpstreamUnavailableError("Keycloak tidak merespons")


def test_identity_provider_outage_maps_to_502(app_with_fakes, monkeypatch):
    app, _, _ = app_with_fakes
    app.dependency_overrides[get_directory] = lambda: _UnreachableDirectory()
    monkeypatch.setattr(settings, "EXPOSE_ERROR_DETAILS", False)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/api/v1/keycloak/ppk/list", headers=_auth())

    assert resp.status_code == 502
    assert resp.json() == {"success": False, "message": "Keycloak tidak merespons"}
