# backend/tests/test_access_control.py
from __future__ import annotations

import pytest

from conftest import API
from homeskillet.db import SessionLocal
from homeskillet.models import PropertyPermission
from homeskillet.services.access import FULL_ACCESS, permissions_for


def _mk_property(client, headers, name: str = "Lake House") -> str:
    r = client.post(f"{API}/properties", json={"name": name, "type": "single_family", "yearBuilt": 1990}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]["property"]["id"]


def _grant(client, owner_headers, property_id: str, user_id: str, role: str) -> None:
    r = client.post(
        f"{API}/users/properties/{property_id}/permissions",
        json={"userId": user_id, "role": role},
        headers=owner_headers,
    )
    assert r.status_code == 201, r.text


@pytest.mark.parametrize(
    "role,create,edit,delete,manage_maintenance",
    [
        ("viewer", False, False, False, False),
        ("tenant", False, False, False, False),
        ("editor", True, True, False, True),
        ("contractor", False, True, False, True),
        ("admin", True, True, True, True),
        ("manager", True, True, True, True),
    ],
)
def test_role_table(role, create, edit, delete, manage_maintenance):
    p = permissions_for(role)
    assert p.view_projects is True
    assert p.create_projects is create
    assert p.edit_projects is edit
    assert p.delete_projects is delete
    assert p.manage_maintenance is manage_maintenance


def test_unknown_role_falls_back_to_viewer():
    assert permissions_for("overlord") == permissions_for("viewer")
    assert FULL_ACCESS.as_dict()["viewProjects"] is True


def test_owner_sees_full_access(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    r = client.get(f"{API}/properties/{pid}", headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["accessType"] == "owner"
    assert all(data["permissions"].values())


def test_stranger_is_forbidden_and_missing_is_404(client, make_user):
    _, owner = make_user("owner")
    _, stranger = make_user("stranger")
    pid = _mk_property(client, owner)

    r = client.get(f"{API}/properties/{pid}", headers=stranger)
    assert r.status_code == 403

    r = client.get(f"{API}/properties/does-not-exist", headers=owner)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Property not found"


def test_viewer_can_read_but_not_create_projects(client, make_user):
    _, owner = make_user("owner")
    viewer_id, viewer = make_user("viewer", user_type="family_member")
    pid = _mk_property(client, owner)
    _grant(client, owner, pid, viewer_id, "viewer")

    r = client.get(f"{API}/properties/{pid}", headers=viewer)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["accessType"] == "viewer"
    assert data["permissions"]["viewProjects"] is True
    assert data["permissions"]["createProjects"] is False

    r = client.post(f"{API}/projects", json={"propertyId": pid, "title": "Paint"}, headers=viewer)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Permission denied to create projects for this property"

    # the granted property shows up in the caller's list
    r = client.get(f"{API}/properties", headers=viewer)
    assert [p["id"] for p in r.json()["data"]["properties"]] == [pid]


def test_viewer_cannot_edit_projects(client, make_user):
    _, owner = make_user("owner")
    viewer_id, viewer = make_user("viewer", user_type="family_member")
    pid = _mk_property(client, owner)
    _grant(client, owner, pid, viewer_id, "viewer")
    r = client.post(f"{API}/projects", json={"propertyId": pid, "title": "Roof"}, headers=owner)
    project_id = r.json()["data"]["project"]["id"]

    r = client.get(f"{API}/projects/{project_id}", headers=viewer)
    assert r.status_code == 200

    r = client.put(f"{API}/projects/{project_id}", json={"title": "New roof"}, headers=viewer)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Permission denied to edit this project"
    assert r.json()["error"]["code"] == "authorization_error"


def test_owner_keeps_full_access_despite_own_grant_row(client, make_user):
    owner_id, owner = make_user("owner")
    pid = _mk_property(client, owner)

    # the API refuses this grant, so plant the row directly
    with SessionLocal() as db:
        db.add(PropertyPermission(user_id=owner_id, property_id=pid, role="viewer", granted_by=owner_id))
        db.commit()

    r = client.get(f"{API}/properties/{pid}", headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["accessType"] == "owner"
    assert all(data["permissions"].values())

    r = client.post(f"{API}/projects", json={"propertyId": pid, "title": "Fence"}, headers=owner)
    assert r.status_code == 201


def test_editor_can_create_but_not_delete_projects(client, make_user):
    _, owner = make_user("owner")
    editor_id, editor = make_user("editor")
    pid = _mk_property(client, owner)
    _grant(client, owner, pid, editor_id, "editor")

    r = client.post(f"{API}/projects", json={"propertyId": pid, "title": "Deck"}, headers=editor)
    assert r.status_code == 201
    project_id = r.json()["data"]["project"]["id"]

    r = client.delete(f"{API}/projects/{project_id}", headers=editor)
    assert r.status_code == 403

    r = client.delete(f"{API}/projects/{project_id}", headers=owner)
    assert r.status_code == 200


def test_only_owner_manages_permissions(client, make_user):
    _, owner = make_user("owner")
    admin_id, admin = make_user("admin")
    other_id, _ = make_user("other")
    pid = _mk_property(client, owner)
    _grant(client, owner, pid, admin_id, "admin")

    r = client.post(
        f"{API}/users/properties/{pid}/permissions", json={"userId": other_id, "role": "viewer"}, headers=admin
    )
    assert r.status_code == 403

    # regrant changes the role instead of adding a second row
    _grant(client, owner, pid, admin_id, "tenant")
    r = client.get(f"{API}/users/properties/{pid}/permissions", headers=owner)
    grants = r.json()["data"]["permissions"]
    assert len(grants) == 1
    assert grants[0]["role"] == "tenant"

    r = client.delete(f"{API}/users/properties/{pid}/permissions/{admin_id}", headers=owner)
    assert r.status_code == 200
    r = client.get(f"{API}/properties/{pid}", headers=admin)
    assert r.status_code == 403


def test_project_assignment_opens_the_project_only(client, make_user):
    _, owner = make_user("owner")
    worker_id, worker = make_user("worker", user_type="contractor")
    pid = _mk_property(client, owner)
    r = client.post(f"{API}/projects", json={"propertyId": pid, "title": "Roof"}, headers=owner)
    project_id = r.json()["data"]["project"]["id"]

    r = client.post(f"{API}/projects/{project_id}/assign", json={"userId": worker_id, "role": "contractor"}, headers=owner)
    assert r.status_code == 200

    r = client.get(f"{API}/projects/{project_id}", headers=worker)
    assert r.status_code == 200
    assert r.json()["data"]["permissions"]["editProjects"] is True

    r = client.get(f"{API}/properties/{pid}", headers=worker)
    assert r.status_code == 403

    r = client.get(f"{API}/projects", headers=worker)
    assert [p["id"] for p in r.json()["data"]["projects"]] == [project_id]
