# backend/tests/test_maintenance.py
from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import API
from homeskillet.services.recurrence import calculate_next_due_date


@pytest.mark.parametrize(
    "frequency,start,expected",
    [
        ("daily", date(2024, 3, 1), date(2024, 3, 2)),
        ("weekly", date(2024, 3, 1), date(2024, 3, 8)),
        ("biweekly", date(2024, 3, 1), date(2024, 3, 15)),
        ("monthly", date(2024, 1, 31), date(2024, 2, 29)),
        ("monthly", date(2023, 1, 31), date(2023, 2, 28)),
        ("quarterly", date(2024, 11, 30), date(2025, 2, 28)),
        ("biannual", date(2024, 8, 31), date(2025, 2, 28)),
        ("yearly", date(2024, 2, 29), date(2025, 2, 28)),
        ("seasonal", date(2024, 1, 15), date(2024, 4, 15)),
    ],
)
def test_next_due_date_steps_and_month_end_clamp(frequency, start, expected):
    assert calculate_next_due_date(frequency, start) == expected


def test_next_due_date_multiplier_and_edges():
    assert calculate_next_due_date("monthly", date(2024, 1, 15), multiplier=3) == date(2024, 4, 15)
    assert calculate_next_due_date("weekly", date(2024, 1, 1), multiplier=0) == date(2024, 1, 8)
    assert calculate_next_due_date("as_needed", date(2024, 1, 1)) is None
    assert calculate_next_due_date("daily") == date.today() + timedelta(days=1)
    with pytest.raises(ValueError):
        calculate_next_due_date("fortnightly", date(2024, 1, 1))


def _mk_property(client, headers) -> str:
    r = client.post(f"{API}/properties", json={"name": "Cabin"}, headers=headers)
    return r.json()["data"]["property"]["id"]


def _mk_schedule(client, headers, property_id: str, **extra) -> dict:
    body = {"propertyId": property_id, "title": "Clean gutters", "frequency": "monthly", **extra}
    r = client.post(f"{API}/maintenance-schedules", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]["schedule"]


def test_create_defaults_next_due_from_today(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    s = _mk_schedule(client, owner, pid, frequency="weekly", frequencyValue=2)
    assert s["nextDueDate"] == (date.today() + timedelta(days=14)).isoformat()

    s = _mk_schedule(client, owner, pid, nextDueDate="2030-01-01")
    assert s["nextDueDate"] == "2030-01-01"


def test_invalid_frequency_is_validation_error(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    r = client.post(
        f"{API}/maintenance-schedules",
        json={"propertyId": pid, "title": "X", "frequency": "hourly"},
        headers=owner,
    )
    assert r.status_code == 400


def test_complete_records_history_and_advances_due_date(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    s = _mk_schedule(client, owner, pid)

    r = client.post(
        f"{API}/maintenance-schedules/{s['id']}/complete",
        json={"completedDate": "2024-01-31", "actualCost": 40, "notes": "east side clogged"},
        headers=owner,
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["schedule"]["lastCompletedDate"] == "2024-01-31"
    assert data["schedule"]["nextDueDate"] == "2024-02-29"
    assert data["record"]["completedBy"]["email"].endswith("@example.com")

    r = client.get(f"{API}/maintenance-schedules/{s['id']}/history", headers=owner)
    history = r.json()["data"]
    assert history["pagination"]["total"] == 1
    assert history["records"][0]["actualCost"] == 40


def test_viewer_cannot_complete_but_editor_can(client, make_user):
    _, owner = make_user("owner")
    viewer_id, viewer = make_user("viewer")
    editor_id, editor = make_user("editor")
    pid = _mk_property(client, owner)
    for uid, role in ((viewer_id, "viewer"), (editor_id, "editor")):
        client.post(f"{API}/users/properties/{pid}/permissions", json={"userId": uid, "role": role}, headers=owner)
    s = _mk_schedule(client, owner, pid)

    url = f"{API}/maintenance-schedules/{s['id']}/complete"
    r = client.post(url, json={"completedDate": "2024-05-01"}, headers=viewer)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == "Permission denied to complete this maintenance task"

    assert client.post(url, json={"completedDate": "2024-05-01"}, headers=editor).status_code == 201


def test_frequency_change_recomputes_due_date(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    s = _mk_schedule(client, owner, pid, nextDueDate="2031-06-01")

    r = client.put(f"{API}/maintenance-schedules/{s['id']}", json={"frequency": "yearly"}, headers=owner)
    assert r.status_code == 200
    assert r.json()["data"]["schedule"]["nextDueDate"] == calculate_next_due_date("yearly").isoformat()

    r = client.put(f"{API}/maintenance-schedules/{s['id']}", json={}, headers=owner)
    assert r.status_code == 400


def test_due_window_includes_overdue(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    today = date.today()
    overdue = _mk_schedule(client, owner, pid, title="Smoke detectors", nextDueDate=(today - timedelta(days=3)).isoformat())
    soon = _mk_schedule(client, owner, pid, title="Filter", nextDueDate=(today + timedelta(days=2)).isoformat())
    _mk_schedule(client, owner, pid, title="Far", nextDueDate=(today + timedelta(days=60)).isoformat())
    _mk_schedule(client, owner, pid, title="Paused", nextDueDate=today.isoformat(), isActive=False)

    r = client.get(f"{API}/maintenance-schedules/due", params={"days": 7}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert [s["id"] for s in data["schedules"]] == [overdue["id"], soon["id"]]
    assert data["schedules"][0]["isOverdue"] is True
    assert data["schedules"][1]["isOverdue"] is False
    assert data["count"] == 2
