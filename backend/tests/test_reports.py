# backend/tests/test_reports.py
from __future__ import annotations

from datetime import date, timedelta

from conftest import API


def _mk_property(client, headers, **extra) -> str:
    body = {"name": "Farmhouse", "type": "single_family", **extra}
    r = client.post(f"{API}/properties", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]["property"]["id"]


def test_dashboard_is_zeroed_without_properties(client, make_user):
    _, nobody = make_user("nobody")
    r = client.get(f"{API}/reports/dashboard", headers=nobody)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["properties"]["total"] == 0
    assert data["tasks"]["completionRate"] == 0
    assert data["summary"] == {"totalBudget": 0, "totalSpent": 0, "savings": 0, "activeProjects": 0, "completedTasks": 0}


def test_dashboard_rolls_up_projects_and_tasks(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner, yearBuilt=2000)
    _mk_property(client, owner, name="Condo", type="condo")

    yesterday = (date.today() - timedelta(days=1)).isoformat()
    r = client.post(
        f"{API}/projects",
        json={
            "propertyId": pid,
            "title": "Barn roof",
            "status": "in_progress",
            "budget": 10000,
            "actualCost": 8000,
            "dueDate": yesterday,
            "tasks": [{"title": "Strip", "status": "completed"}, {"title": "Sheath"}],
        },
        headers=owner,
    )
    assert r.status_code == 201, r.text

    data = client.get(f"{API}/reports/dashboard", headers=owner).json()["data"]
    assert data["properties"]["total"] == 2
    assert data["properties"]["byType"] == {"single_family": 1, "condo": 1}
    assert data["properties"]["averageAge"] == date.today().year - 2000
    assert data["properties"]["withActiveProjects"] == 1
    assert data["projects"]["overdue"] == 1
    assert data["projects"]["budget"] == {"total": 10000, "actual": 8000, "variance": 2000}
    assert data["tasks"]["total"] == 2
    assert data["tasks"]["completionRate"] == 50
    assert data["summary"]["savings"] == 2000
    assert data["summary"]["activeProjects"] == 1
    assert data["summary"]["completedTasks"] == 1


def test_property_details(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    client.post(
        f"{API}/projects",
        json={"propertyId": pid, "title": "Fence", "budget": 3000, "tasks": [{"title": "Posts"}, {"title": "Rails"}]},
        headers=owner,
    )

    r = client.get(f"{API}/reports/properties/{pid}/details", headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["overview"]["totalProjects"] == 1
    assert data["overview"]["totalTasks"] == 2
    assert data["projects"][0]["completionRate"] == 0
    assert data["budget"]["totalBudgeted"] == 3000
    assert data["timeTracking"]["sessionCount"] == 0
    assert {a["title"] for a in data["recentActivity"]} == {"Posts", "Rails"}
    assert {a["assignedTo"] for a in data["recentActivity"]} == {"Unassigned"}


def test_property_details_hides_existence(client, make_user):
    _, owner = make_user("owner")
    _, stranger = make_user("stranger")
    pid = _mk_property(client, owner)

    for target in (pid, "missing"):
        r = client.get(f"{API}/reports/properties/{target}/details", headers=stranger)
        assert r.status_code == 404
        assert r.json()["error"]["message"] == "Property not found or access denied"
