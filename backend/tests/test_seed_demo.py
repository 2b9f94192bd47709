# backend/tests/test_seed_demo.py
from __future__ import annotations

from conftest import API
from homeskillet.cli.seed_demo import seed_demo


def _login(client, email: str, password: str) -> dict[str, str]:
    r = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['data']['token']}"}


def test_seed_is_idempotent_and_usable(client):
    first = seed_demo(owner_email="Owner@Demo.local", viewer_email="viewer@demo.local", password="Seed-pass-1")
    again = seed_demo(owner_email="owner@demo.local", viewer_email="viewer@demo.local", password="Seed-pass-1")
    assert again == first
    assert first.owner_email == "owner@demo.local"

    owner = _login(client, "owner@demo.local", "Seed-pass-1")
    r = client.get(f"{API}/projects/{first.project_id}", headers=owner)
    assert [t["title"] for t in r.json()["data"]["project"]["tasks"]] == [
        "Remove old cabinets",
        "Patch drywall",
        "Install new cabinets",
    ]

    viewer = _login(client, "viewer@demo.local", "Seed-pass-1")
    r = client.get(f"{API}/properties/{first.property_id}", headers=viewer)
    assert r.json()["data"]["accessType"] == "viewer"
    r = client.get(f"{API}/maintenance-schedules/{first.schedule_id}", headers=viewer)
    assert r.status_code == 200


def test_seed_without_work(client):
    out = seed_demo(owner_email="solo@demo.local", viewer_email="guest@demo.local", password="Seed-pass-1", with_work=False)
    assert out.project_id is None
    assert out.schedule_id is None
