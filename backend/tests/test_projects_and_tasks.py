# backend/tests/test_projects_and_tasks.py
from __future__ import annotations

import pytest

from conftest import API


def _mk_property(client, headers) -> str:
    r = client.post(f"{API}/properties", json={"name": "Bungalow"}, headers=headers)
    return r.json()["data"]["property"]["id"]


def _mk_project(client, headers, property_id: str, tasks: list[dict] | None = None) -> dict:
    r = client.post(
        f"{API}/projects",
        json={"propertyId": property_id, "title": "Bathroom remodel", "budget": 5000, "tasks": tasks or []},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]["project"]


def _mk_task(client, headers, project_id: str, title: str, **extra) -> dict:
    r = client.post(f"{API}/tasks/projects/{project_id}/tasks", json={"title": title, **extra}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_project_with_tasks_keeps_order(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    project = _mk_project(
        client,
        owner,
        pid,
        tasks=[{"title": "Demo"}, {"title": "Tile", "status": "completed"}, {"title": "Grout"}],
    )
    titles = [t["title"] for t in project["tasks"]]
    assert titles == ["Demo", "Tile", "Grout"]
    assert [t["sortOrder"] for t in project["tasks"]] == [0, 1, 2]
    assert project["tasks"][1]["progressPercentage"] == 100

    # new tasks go to the end
    t = _mk_task(client, owner, project["id"], "Caulk")
    assert t["sort_order"] == 3


def test_project_update_replaces_tasks(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    project = _mk_project(client, owner, pid, tasks=[{"title": "A"}, {"title": "B"}])

    r = client.put(f"{API}/projects/{project['id']}", json={"status": "in_progress", "tasks": [{"title": "C"}]}, headers=owner)
    assert r.status_code == 200
    updated = r.json()["data"]["project"]
    assert updated["status"] == "in_progress"
    assert [t["title"] for t in updated["tasks"]] == ["C"]


def test_project_filters_and_pagination(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    for _ in range(3):
        _mk_project(client, owner, pid)

    r = client.get(f"{API}/projects", params={"limit": 2, "page": 2, "propertyId": pid}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert len(data["projects"]) == 1
    meta = data["pagination"]
    assert meta["total"] == 3
    assert meta["pages"] == 2
    assert meta["has_prev"] is True
    assert meta["has_next"] is False


def test_completing_a_task_sets_progress_and_logs_status_comment(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Sand")

    r = client.put(f"{API}/tasks/{task['id']}/status", json={"status": "completed"}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["progress_percentage"] == 100
    assert data["completed_at"]

    r = client.get(f"{API}/tasks/{task['id']}/comments", headers=owner)
    comments = r.json()["data"]
    assert comments[0]["type"] == "status_update"
    assert comments[0]["metadata"]["old_status"] == "pending"
    assert comments[0]["metadata"]["new_status"] == "completed"


def test_completed_overrides_supplied_progress(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Grout")

    r = client.put(
        f"{API}/tasks/{task['id']}/status",
        json={"status": "completed", "progress_percentage": 40},
        headers=owner,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["progress_percentage"] == 100
    assert data["completed_at"]


@pytest.mark.parametrize("supplied,stored", [(150, 100), (-5, 0), (35, 35)])
def test_progress_is_clamped(client, make_user, supplied, stored):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Caulk")

    r = client.put(
        f"{API}/tasks/{task['id']}/status",
        json={"status": "on_hold", "progress_percentage": supplied},
        headers=owner,
    )
    assert r.status_code == 200
    assert r.json()["data"]["progress_percentage"] == stored


def test_reopening_a_completed_task_is_allowed(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Trim")

    done = client.put(f"{API}/tasks/{task['id']}/status", json={"status": "completed"}, headers=owner).json()["data"]

    r = client.put(f"{API}/tasks/{task['id']}/status", json={"status": "pending"}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "pending"
    # the last completion time is kept
    assert data["completed_at"] == done["completed_at"]


def test_invalid_status_is_rejected(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Sand")

    r = client.put(f"{API}/tasks/{task['id']}/status", json={"status": "exploded"}, headers=owner)
    assert r.status_code == 400

    r = client.put(f"{API}/tasks/{task['id']}/status", json={}, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Status is required"


def test_dependency_blocks_start_until_prerequisite_completes(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    first = _mk_task(client, owner, project["id"], "Frame")
    second = _mk_task(client, owner, project["id"], "Drywall")

    r = client.post(f"{API}/tasks/{second['id']}/dependencies", json={"depends_on_task_id": first["id"]}, headers=owner)
    assert r.status_code == 201

    r = client.put(f"{API}/tasks/{second['id']}/status", json={"status": "in_progress"}, headers=owner)
    assert r.status_code == 400
    assert "Frame" in r.json()["error"]["message"]

    client.put(f"{API}/tasks/{first['id']}/status", json={"status": "completed"}, headers=owner)
    r = client.put(f"{API}/tasks/{second['id']}/status", json={"status": "in_progress"}, headers=owner)
    assert r.status_code == 200

    r = client.get(f"{API}/tasks/{first['id']}/dependencies", headers=owner)
    data = r.json()["data"]
    assert data["dependencies"] == []
    assert data["dependents"][0]["task_title"] == "Drywall"


def test_dependency_rules(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    project = _mk_project(client, owner, pid)
    other_project = _mk_project(client, owner, pid)
    a = _mk_task(client, owner, project["id"], "A")
    b = _mk_task(client, owner, project["id"], "B")
    elsewhere = _mk_task(client, owner, other_project["id"], "X")

    url = f"{API}/tasks/{a['id']}/dependencies"
    assert client.post(url, json={"depends_on_task_id": a["id"]}, headers=owner).status_code == 400
    assert client.post(url, json={"depends_on_task_id": elsewhere["id"]}, headers=owner).status_code == 400
    assert client.post(url, json={"depends_on_task_id": "missing"}, headers=owner).status_code == 404

    assert client.post(url, json={"depends_on_task_id": b["id"]}, headers=owner).status_code == 201
    assert client.post(url, json={"depends_on_task_id": b["id"]}, headers=owner).status_code == 409

    r = client.post(f"{API}/tasks/{b['id']}/dependencies", json={"depends_on_task_id": a["id"]}, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Circular dependency detected"


def test_one_running_timer_per_user(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    a = _mk_task(client, owner, project["id"], "A", estimated_hours=2)
    b = _mk_task(client, owner, project["id"], "B")

    r = client.post(f"{API}/tasks/{b['id']}/time-tracking/stop", headers=owner)
    assert r.status_code == 404

    r = client.post(f"{API}/tasks/{a['id']}/time-tracking/start", json={"description": "first pass"}, headers=owner)
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is True

    r = client.post(f"{API}/tasks/{b['id']}/time-tracking/start", headers=owner)
    assert r.status_code == 400

    r = client.post(f"{API}/tasks/{a['id']}/time-tracking/stop", headers=owner)
    assert r.status_code == 200
    stopped = r.json()["data"]
    assert stopped["is_active"] is False
    assert stopped["duration_minutes"] == 0

    r = client.get(f"{API}/tasks/{a['id']}/time-tracking", headers=owner)
    data = r.json()["data"]
    assert data["estimated_hours"] == 2
    assert data["total_hours"] == 0
    assert len(data["sessions"]) == 1

    # free to start again once stopped
    assert client.post(f"{API}/tasks/{b['id']}/time-tracking/start", headers=owner).status_code == 200


def test_bulk_update_is_all_or_nothing(client, make_user):
    _, owner = make_user("owner")
    project = _mk_project(client, owner, _mk_property(client, owner))
    a = _mk_task(client, owner, project["id"], "A")
    b = _mk_task(client, owner, project["id"], "B")

    r = client.put(
        f"{API}/tasks/bulk-update",
        json={"task_ids": [a["id"], "missing"], "updates": {"priority": "high"}},
        headers=owner,
    )
    assert r.status_code == 404

    r = client.get(f"{API}/tasks/projects/{project['id']}/tasks", headers=owner)
    assert {t["priority"] for t in r.json()["data"]} == {"medium"}

    r = client.put(
        f"{API}/tasks/bulk-update",
        json={"task_ids": [a["id"], b["id"]], "updates": {"priority": "high", "status": "completed"}},
        headers=owner,
    )
    assert r.status_code == 200
    assert r.json()["data"]["updated_count"] == 2

    r = client.get(f"{API}/tasks/projects/{project['id']}/tasks", headers=owner)
    rows = r.json()["data"]
    assert {t["priority"] for t in rows} == {"high"}
    assert {t["progress_percentage"] for t in rows} == {100}

    r = client.put(f"{API}/tasks/bulk-update", json={"task_ids": [a["id"]]}, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "updates object is required"


def test_bulk_delete_checks_access_for_every_task(client, make_user):
    _, owner = make_user("owner")
    _, stranger = make_user("stranger")
    project = _mk_project(client, owner, _mk_property(client, owner))
    a = _mk_task(client, owner, project["id"], "A")

    r = client.request("DELETE", f"{API}/tasks/bulk-delete", json={"task_ids": [a["id"]]}, headers=stranger)
    assert r.status_code == 403

    r = client.request("DELETE", f"{API}/tasks/bulk-delete", json={"task_ids": [a["id"]]}, headers=owner)
    assert r.status_code == 200
    assert r.json()["data"]["deleted_count"] == 1


def test_task_assignee_can_update_their_task(client, make_user):
    _, owner = make_user("owner")
    helper_id, helper = make_user("helper", user_type="contractor")
    project = _mk_project(client, owner, _mk_property(client, owner))
    task = _mk_task(client, owner, project["id"], "Paint trim", assigned_to=helper_id)

    r = client.put(f"{API}/tasks/{task['id']}/status", json={"status": "in_progress"}, headers=helper)
    assert r.status_code == 200

    r = client.post(f"{API}/tasks/{task['id']}/comments", json={"content": "  "}, headers=helper)
    assert r.status_code == 400
    r = client.post(f"{API}/tasks/{task['id']}/comments", json={"content": "Primer done"}, headers=helper)
    assert r.status_code == 201
