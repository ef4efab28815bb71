"""Tests for faculty/department reference data endpoints."""
from __future__ import annotations

from sqlmodel import select

from cisa.models.faculty import Department


def _faculty(client, name="คณะวิทยาศาสตร์", **extra) -> dict:
    resp = client.post("/api/admin/faculties", json={"name": name, **extra})
    assert resp.status_code == 201
    return resp.json()


def _department(client, faculty_id, name="ฟิสิกส์", **extra) -> dict:
    resp = client.post(
        "/api/admin/departments", json={"faculty_id": faculty_id, "name": name, **extra}
    )
    assert resp.status_code == 201
    return resp.json()


class TestPublicListing:
    def test_only_active_entries(self, auth_client):
        sci = _faculty(auth_client, "Science")
        _faculty(auth_client, "Closed", is_active=False)
        _department(auth_client, sci["id"], "Physics")
        _department(auth_client, sci["id"], "Alchemy", is_active=False)

        resp = auth_client.get("/api/faculties")
        assert resp.status_code == 200
        data = resp.json()
        assert [f["name"] for f in data] == ["Science"]
        assert [d["name"] for d in data[0]["departments"]] == ["Physics"]

    def test_no_session_needed(self, client):
        assert client.get("/api/faculties").status_code == 200


class TestFacultyCrud:
    def test_requires_admin(self, client):
        assert client.get("/api/admin/faculties").status_code == 401
        assert client.post("/api/admin/faculties", json={"name": "X"}).status_code == 401

    def test_create_and_list(self, auth_client):
        created = _faculty(auth_client, "  Engineering  ", code="ENG")
        assert created["name"] == "Engineering"
        assert created["code"] == "ENG"
        assert created["departments"] == []
        listed = auth_client.get("/api/admin/faculties").json()
        assert [f["id"] for f in listed] == [created["id"]]

    def test_duplicate_name(self, auth_client):
        _faculty(auth_client, "Engineering")
        resp = auth_client.post("/api/admin/faculties", json={"name": "Engineering"})
        assert resp.status_code == 409

    def test_empty_name(self, auth_client):
        resp = auth_client.post("/api/admin/faculties", json={"name": "  "})
        assert resp.status_code == 422

    def test_update(self, auth_client):
        fac = _faculty(auth_client, "Engineering")
        resp = auth_client.put(
            f"/api/admin/faculties/{fac['id']}", json={"name": "Engineering 2", "is_active": False}
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Engineering 2"
        assert resp.json()["is_active"] is False

    def test_update_to_existing_name(self, auth_client):
        _faculty(auth_client, "A")
        b = _faculty(auth_client, "B")
        resp = auth_client.put(f"/api/admin/faculties/{b['id']}", json={"name": "A"})
        assert resp.status_code == 409

    def test_update_missing(self, auth_client):
        assert auth_client.put("/api/admin/faculties/nope", json={"name": "X"}).status_code == 404

    def test_delete_cascades_departments(self, auth_client, session):
        fac = _faculty(auth_client, "Engineering")
        _department(auth_client, fac["id"], "Civil")
        resp = auth_client.delete(f"/api/admin/faculties/{fac['id']}")
        assert resp.status_code == 204
        assert session.exec(select(Department)).first() is None
        assert auth_client.delete(f"/api/admin/faculties/{fac['id']}").status_code == 404


class TestDepartmentCrud:
    def test_create_under_missing_faculty(self, auth_client):
        resp = auth_client.post(
            "/api/admin/departments", json={"faculty_id": "nope", "name": "Physics"}
        )
        assert resp.status_code == 404

    def test_duplicate_within_faculty(self, auth_client):
        fac = _faculty(auth_client)
        _department(auth_client, fac["id"], "Physics")
        resp = auth_client.post(
            "/api/admin/departments", json={"faculty_id": fac["id"], "name": "Physics"}
        )
        assert resp.status_code == 409

    def test_same_name_in_different_faculties(self, auth_client):
        a = _faculty(auth_client, "A")
        b = _faculty(auth_client, "B")
        _department(auth_client, a["id"], "Office")
        _department(auth_client, b["id"], "Office")

    def test_list_filtered_by_faculty(self, auth_client):
        a = _faculty(auth_client, "A")
        b = _faculty(auth_client, "B")
        _department(auth_client, a["id"], "One")
        _department(auth_client, b["id"], "Two")
        resp = auth_client.get("/api/admin/departments", params={"faculty_id": a["id"]})
        assert [d["name"] for d in resp.json()] == ["One"]
        assert len(auth_client.get("/api/admin/departments").json()) == 2

    def test_update_and_delete(self, auth_client):
        fac = _faculty(auth_client)
        dep = _department(auth_client, fac["id"], "Physics")
        resp = auth_client.put(f"/api/admin/departments/{dep['id']}", json={"name": "Astro"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Astro"
        assert auth_client.delete(f"/api/admin/departments/{dep['id']}").status_code == 204
        assert auth_client.delete(f"/api/admin/departments/{dep['id']}").status_code == 404

    def test_faculty_listing_includes_departments(self, auth_client):
        fac = _faculty(auth_client)
        _department(auth_client, fac["id"], "Physics")
        listed = auth_client.get("/api/admin/faculties").json()
        assert [d["name"] for d in listed[0]["departments"]] == ["Physics"]
