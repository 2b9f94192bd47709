# backend/tests/test_insurance.py
from __future__ import annotations

from conftest import API

JPEG = b"\xff\xd8\xff\xe0 not really a jpeg"


def _mk_property(client, headers) -> str:
    r = client.post(f"{API}/properties", json={"name": "Townhouse"}, headers=headers)
    return r.json()["data"]["property"]["id"]


def _mk_item(client, headers, property_id: str, **extra) -> dict:
    body = {"property_id": property_id, "name": "OLED TV", "category": "electronics", **extra}
    r = client.post(f"{API}/insurance/items", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _upload_photos(client, headers, item_id: str, count: int = 2, **form):
    files = [("photos", (f"p{n}.jpg", JPEG + bytes([n]), "image/jpeg")) for n in range(count)]
    return client.post(f"{API}/insurance/items/{item_id}/photos", files=files, data=form, headers=headers)


def test_create_applies_defaults_and_coerces(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    item = _mk_item(client, owner, pid, replacement_cost="1800", tags="tv,living", purchase_date="2023-11-24")
    assert item["condition"] == "good"
    assert item["currency"] == "USD"
    assert item["priority"] == 3
    assert item["status"] == "active"
    assert item["replacement_cost"] == 1800.0
    assert item["tags"] == ["tv", "living"]
    assert item["purchase_date"] == "2023-11-24"


def test_create_validation(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    r = client.post(f"{API}/insurance/items", json={"property_id": pid, "name": "Lamp"}, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Property ID, name, and category are required"

    r = client.post(
        f"{API}/insurance/items",
        json={"property_id": pid, "name": "Lamp", "category": "furniture", "priority": 7},
        headers=owner,
    )
    assert r.status_code == 400

    r = client.post(
        f"{API}/insurance/items",
        json={"property_id": pid, "name": "Lamp", "category": "furniture", "purchase_price": -5},
        headers=owner,
    )
    assert r.status_code == 400


def test_items_are_hidden_from_strangers(client, make_user):
    _, owner = make_user("owner")
    _, stranger = make_user("stranger")
    item = _mk_item(client, owner, _mk_property(client, owner))

    r = client.get(f"{API}/insurance/items/{item['id']}", headers=stranger)
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Insurance item not found or access denied"

    r = client.get(f"{API}/insurance/items", headers=stranger)
    assert r.json()["data"]["items"] == []


def test_list_filters_and_photo_counts(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    tv = _mk_item(client, owner, pid, replacement_cost=6000)
    _mk_item(client, owner, pid, name="Sofa", category="furniture", replacement_cost=900)
    _upload_photos(client, owner, tv["id"], count=2)

    r = client.get(f"{API}/insurance/items", params={"high_value_only": "true"}, headers=owner)
    data = r.json()["data"]
    assert [i["name"] for i in data["items"]] == ["OLED TV"]
    assert data["items"][0]["photo_count"] == 2
    assert data["items"][0]["property_name"] == "Townhouse"

    r = client.get(f"{API}/insurance/items", params={"search": "sof"}, headers=owner)
    assert [i["name"] for i in r.json()["data"]["items"]] == ["Sofa"]

    r = client.get(f"{API}/insurance/items", params={"sort_by": "replacement_cost", "sort_order": "asc"}, headers=owner)
    assert [i["name"] for i in r.json()["data"]["items"]] == ["Sofa", "OLED TV"]


def test_summary_rollup(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    _mk_item(client, owner, pid, replacement_cost=6000, is_insured=True, room_location="Den")
    _mk_item(client, owner, pid, name="Sofa", category="furniture", replacement_cost=1000, room_location="Den")
    gone = _mk_item(client, owner, pid, name="Old chair", category="furniture", replacement_cost=50)
    client.delete(f"{API}/insurance/items/{gone['id']}", headers=owner)

    r = client.get(f"{API}/insurance/summary", params={"property_id": pid}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    overview = data["overview"]
    assert overview["total_items"] == 2
    assert overview["total_value"] == 7000
    assert overview["average_value"] == 3500
    assert overview["insurance_coverage_rate"] == 50
    assert data["breakdown"]["by_room"] == [{"room": "Den", "count": 2, "total_value": 7000}]
    assert data["alerts"]["high_value_items"] == {"count": 1, "total_value": 6000}
    assert data["alerts"]["uninsured_items"] == {"count": 1, "total_value": 1000}
    assert data["alerts"]["recent_additions"] == 2


def test_photo_upload_primary_handling_and_delete(client, make_user, storage):
    _, owner = make_user("owner")
    item = _mk_item(client, owner, _mk_property(client, owner))

    r = _upload_photos(client, owner, item["id"], count=2, photo_types='["serial_number"]', titles='["Back label"]')
    assert r.status_code == 201, r.text
    first_batch = r.json()["data"]["uploaded_photos"]
    assert [p["is_primary"] for p in first_batch] == [True, False]
    assert first_batch[0]["photo_type"] == "serial_number"
    assert first_batch[0]["title"] == "Back label"
    assert first_batch[1]["photo_type"] == "overview"

    # a later batch never steals the primary flag
    second = _upload_photos(client, owner, item["id"], count=1).json()["data"]["uploaded_photos"][0]
    assert second["is_primary"] is False

    r = client.put(f"{API}/insurance/photos/{second['id']}", json={"is_primary": True}, headers=owner)
    assert r.status_code == 200
    photos = client.get(f"{API}/insurance/items/{item['id']}/photos", headers=owner).json()["data"]["photos"]
    assert [p["id"] for p in photos if p["is_primary"]] == [second["id"]]

    r = client.delete(f"{API}/insurance/photos/{first_batch[0]['id']}", headers=owner)
    assert r.status_code == 200
    assert len(storage.deleted) == 1
    assert storage.deleted[0][1] == first_batch[0]["file_path"]
    assert client.delete(f"{API}/insurance/photos/{first_batch[0]['id']}", headers=owner).status_code == 404


def test_photo_upload_rejects_non_images(client, make_user, storage):
    _, owner = make_user("owner")
    item = _mk_item(client, owner, _mk_property(client, owner))

    files = [
        ("photos", ("ok.jpg", JPEG, "image/jpeg")),
        ("photos", ("notes.pdf", b"%PDF", "application/pdf")),
    ]
    r = client.post(f"{API}/insurance/items/{item['id']}/photos", files=files, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Only image files are allowed"
    # nothing from the rejected batch reached storage
    assert storage.objects == {}


def test_photo_upload_rejects_bad_photo_type_before_storing(client, make_user, storage):
    _, owner = make_user("owner")
    item = _mk_item(client, owner, _mk_property(client, owner))

    r = _upload_photos(client, owner, item["id"], count=3, photo_types='["overview", "receipt", "selfie"]')
    assert r.status_code == 400
    assert r.json()["error"]["details"][0]["field"] == "photo_types"
    assert storage.objects == {}
    photos = client.get(f"{API}/insurance/items/{item['id']}/photos", headers=owner).json()["data"]["photos"]
    assert photos == []


def test_valuation_updates_item_and_history(client, make_user):
    _, owner = make_user("owner")
    item = _mk_item(client, owner, _mk_property(client, owner), replacement_cost=1500)
    url = f"{API}/insurance/items/{item['id']}/valuations"

    assert client.post(url, json={}, headers=owner).status_code == 400

    r = client.post(url, json={"appraised_value": 1200, "valuation_date": "2024-01-10"}, headers=owner)
    assert r.status_code == 201
    r = client.post(
        url,
        json={"appraised_value": 1100, "replacement_cost": 1400, "valuation_date": "2024-06-01", "valuation_type": "professional"},
        headers=owner,
    )
    assert r.status_code == 201
    updated = r.json()["data"]["item"]
    assert updated["current_estimated_value"] == 1100
    assert updated["replacement_cost"] == 1400
    assert updated["last_appraised_date"] == "2024-06-01"
    assert updated["appraisal_type"] == "professional"

    rows = client.get(url, headers=owner).json()["data"]["valuations"]
    assert [(v["appraised_value"], v["is_current"]) for v in rows] == [(1100, True), (1200, False)]


def test_claim_report(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    tv = _mk_item(client, owner, pid, replacement_cost=6000, room_location="Den")
    _mk_item(client, owner, pid, name="Bike", category="sports_equipment", replacement_cost=700)
    _upload_photos(client, owner, tv["id"], count=1)

    url = f"{API}/insurance/export/claim-report/{pid}"
    r = client.get(url, params={"format": "pdf"}, headers=owner)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Only JSON format is currently supported"

    r = client.get(url, headers=owner)
    assert r.status_code == 200
    report = r.json()["data"]
    assert report["property"]["name"] == "Townhouse"
    assert report["summary"]["total_items"] == 2
    assert report["summary"]["total_estimated_value"] == 6700
    assert report["summary"]["high_value_items"] == 1
    rooms = {b["room"]: b for b in report["breakdown"]["by_room"]}
    assert rooms["Unassigned"]["sample_items"] == ["Bike"]
    with_photo = [i for i in report["items"] if i["primary_photo"] is not None]
    assert [i["id"] for i in with_photo] == [tv["id"]]

    r = client.get(url, params={"high_value_only": "true"}, headers=owner)
    assert [i["name"] for i in r.json()["data"]["items"]] == ["OLED TV"]


def test_link_and_unlink_documents(client, make_user):
    _, owner = make_user("owner")
    _, other = make_user("other")
    pid = _mk_property(client, owner)
    item = _mk_item(client, owner, pid)

    r = client.post(
        f"{API}/documents/upload",
        files={"file": ("tv.pdf", b"%PDF receipt", "application/pdf")},
        data={"title": "TV receipt", "document_type": "receipt", "property_id": pid},
        headers=owner,
    )
    doc_id = r.json()["data"]["id"]
    foreign_pid = _mk_property(client, other)
    r = client.post(
        f"{API}/documents/upload",
        files={"file": ("x.pdf", b"%PDF other", "application/pdf")},
        data={"title": "Not yours", "document_type": "other", "property_id": foreign_pid},
        headers=other,
    )
    foreign_doc = r.json()["data"]["id"]

    url = f"{API}/insurance/items/{item['id']}/documents"
    assert client.post(url, json={}, headers=owner).status_code == 400

    r = client.post(url, json={"document_ids": [foreign_doc]}, headers=owner)
    assert r.status_code == 403
    assert r.json()["error"]["message"] == f"Access denied or document not found: {foreign_doc}"

    r = client.post(url, json={"document_ids": [doc_id], "relationship_type": "warranty"}, headers=owner)
    assert r.status_code == 201
    assert r.json()["data"]["total_linked"] == 1

    # relinking is a no-op
    r = client.post(url, json={"document_ids": [doc_id]}, headers=owner)
    assert r.json()["data"]["total_linked"] == 0

    detail = client.get(f"{API}/insurance/items/{item['id']}", headers=owner).json()["data"]
    assert detail["linked_documents"][0]["document"]["title"] == "TV receipt"
    assert detail["linked_documents"][0]["relationship_type"] == "warranty"

    assert client.delete(f"{url}/{doc_id}", headers=owner).status_code == 200
    assert client.delete(f"{url}/{doc_id}", headers=owner).status_code == 404
    assert client.get(url, headers=owner).json()["data"]["total_count"] == 0


def test_photo_batch_limits_follow_settings(client, make_user, monkeypatch):
    from homeskillet.config import settings

    _, owner = make_user("owner")
    item = _mk_item(client, owner, _mk_property(client, owner))

    monkeypatch.setattr(settings, "max_photos_per_upload", 1)
    r = _upload_photos(client, owner, item["id"], count=2)
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Too many files. Maximum is 1 photos per upload"

    monkeypatch.setattr(settings, "max_photo_bytes", 4)
    r = _upload_photos(client, owner, item["id"], count=1)
    assert r.status_code == 400
    assert r.json()["error"]["message"].startswith("File too large")
