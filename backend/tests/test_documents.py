# backend/tests/test_documents.py
from __future__ import annotations

from sqlalchemy import select

from conftest import API
from homeskillet.db import SessionLocal
from homeskillet.models import DocumentAccessLog

PDF = b"%PDF-1.4 fake receipt body"


def _mk_property(client, headers, name: str = "Duplex") -> str:
    r = client.post(f"{API}/properties", json={"name": name}, headers=headers)
    return r.json()["data"]["property"]["id"]


def _upload(client, headers, property_id: str, data: bytes = PDF, mime: str = "application/pdf", **form):
    fields = {"title": "Furnace receipt", "document_type": "receipt", "property_id": property_id, **form}
    return client.post(
        f"{API}/documents/upload",
        files={"file": ("receipt.pdf", data, mime)},
        data=fields,
        headers=headers,
    )


def _actions(document_id: str) -> list[str]:
    db = SessionLocal()
    try:
        rows = db.scalars(
            select(DocumentAccessLog)
            .where(DocumentAccessLog.document_id == document_id)
            .order_by(DocumentAccessLog.accessed_at)
        ).all()
        return [r.action for r in rows]
    finally:
        db.close()


def test_upload_stores_bytes_and_records_hash(client, make_user, storage):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    r = _upload(client, owner, pid, amount="129.99", tags='["hvac", "2024"]')
    assert r.status_code == 201, r.text
    doc = r.json()["data"]
    assert doc["mime_type"] == "application/pdf"
    assert doc["file_size"] == len(PDF)
    assert doc["amount"] == 129.99
    assert doc["tags"] == ["hvac", "2024"]
    assert len(doc["file_hash"]) == 64
    assert any(data == PDF for data in storage.objects.values())
    assert _actions(doc["id"]) == ["upload"]


def test_duplicate_bytes_conflict_within_the_same_property_only(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    other_pid = _mk_property(client, owner, name="Annex")

    first = _upload(client, owner, pid).json()["data"]

    r = _upload(client, owner, pid)
    assert r.status_code == 409
    assert r.json()["error"]["details"]["existing_document_id"] == first["id"]

    assert _upload(client, owner, other_pid).status_code == 201


def test_rejects_disallowed_type_and_empty_file(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    r = _upload(client, owner, pid, data=b"MZ...", mime="application/x-msdownload")
    assert r.status_code == 400
    assert r.json()["error"]["message"].startswith("File type not allowed")

    r = _upload(client, owner, pid, data=b"")
    assert r.status_code == 400


def test_upload_requires_a_scope_and_access(client, make_user):
    _, owner = make_user("owner")
    _, stranger = make_user("stranger")
    pid = _mk_property(client, owner)

    r = client.post(
        f"{API}/documents/upload",
        files={"file": ("a.pdf", PDF, "application/pdf")},
        data={"title": "Loose", "document_type": "other"},
        headers=owner,
    )
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Document must be associated with either a property or project"

    assert _upload(client, stranger, pid).status_code == 403


def test_view_download_and_soft_delete_are_logged(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    doc = _upload(client, owner, pid).json()["data"]

    r = client.get(f"{API}/documents/{doc['id']}", headers=owner)
    assert r.status_code == 200
    assert r.json()["data"]["view_count"] == 1

    r = client.get(f"{API}/documents/{doc['id']}/download-url", headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert "signed=1" in data["url"]
    assert data["filename"] == "receipt.pdf"

    r = client.delete(f"{API}/documents/{doc['id']}", headers=owner)
    assert r.status_code == 200
    assert client.get(f"{API}/documents/{doc['id']}", headers=owner).status_code == 404

    assert sorted(_actions(doc["id"])) == ["delete", "download", "upload", "view"]

    # deleted rows do not block a re-upload of the same bytes
    assert _upload(client, owner, pid).status_code == 201


def test_metadata_record_list_and_category_summary(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)

    r = client.post(
        f"{API}/documents",
        json={
            "property_id": pid,
            "title": "Roof warranty",
            "document_type": "warranty",
            "category": "roof",
            "filename": "warranty.pdf",
            "file_url": "https://files.example.com/warranty.pdf",
            "file_size": 2048,
        },
        headers=owner,
    )
    assert r.status_code == 201, r.text
    _upload(client, owner, pid)

    r = client.post(f"{API}/documents", json={"property_id": pid, "title": "No file"}, headers=owner)
    assert r.status_code == 400

    r = client.get(f"{API}/documents", params={"property_id": pid, "document_type": "warranty"}, headers=owner)
    data = r.json()["data"]
    assert [d["title"] for d in data["documents"]] == ["Roof warranty"]
    assert data["pagination"]["total"] == 1

    r = client.get(f"{API}/documents/categories/summary", params={"property_id": pid}, headers=owner)
    summary = r.json()["data"]
    assert {t["type"]: t["count"] for t in summary["types"]} == {"warranty": 1, "receipt": 1}
    assert summary["categories"] == [{"category": "roof", "count": 1}]
    assert summary["summary"]["recent_uploads"] == 2

    # externally stored files come back as-is
    doc_id = next(d["id"] for d in data["documents"])
    r = client.get(f"{API}/documents/{doc_id}/download-url", headers=owner)
    assert r.json()["data"] == {
        "url": "https://files.example.com/warranty.pdf",
        "expires_in": None,
        "filename": "warranty.pdf",
    }


def test_update_ignores_location_fields(client, make_user):
    _, owner = make_user("owner")
    pid = _mk_property(client, owner)
    doc = _upload(client, owner, pid).json()["data"]

    r = client.put(f"{API}/documents/{doc['id']}", json={"file_url": "https://evil.example"}, headers=owner)
    assert r.status_code == 400

    r = client.put(f"{API}/documents/{doc['id']}", json={"title": "Furnace invoice", "is_favorite": True}, headers=owner)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["title"] == "Furnace invoice"
    assert data["is_favorite"] is True
    assert data["file_url"] == doc["file_url"]
