# backend/homeskillet/routers/insurance.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..db import get_db
from ..domain.vocab import DOCUMENT_RELATIONSHIPS, PHOTO_TYPES, RECORD_STATUSES
from ..errors import AuthorizationError, NotFoundError, ValidationFailed, field_error, ok
from ..models import (
    Document,
    InsuranceItem,
    InsuranceItemDocument,
    InsuranceItemPhoto,
    Property,
    User,
    _now,
)
from ..services.access import access_to_document, accessible_property_ids, resolve_access
from ..services.coerce import dumps, loads, one_of, parse_bool, parse_float, parse_int, parse_object, parse_str_list
from ..services.insurance import (
    HIGH_VALUE_THRESHOLD,
    apply_item_fields,
    claim_report_summary,
    inventory_summary,
    primary_photos,
    recent_valuations,
    record_valuation,
)
from ..services.pagination import page_params, paginate
from ..services.storage import Storage, StorageError, get_storage, object_path
from ..views import document_view, item_view, photo_view, user_ref, valuation_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/insurance", tags=["insurance"])

_SORT = {
    "created_at": InsuranceItem.created_at,
    "updated_at": InsuranceItem.updated_at,
    "name": InsuranceItem.name,
    "category": InsuranceItem.category,
    "room_location": InsuranceItem.room_location,
    "replacement_cost": InsuranceItem.replacement_cost,
    "current_estimated_value": InsuranceItem.current_estimated_value,
    "purchase_date": InsuranceItem.purchase_date,
    "priority": InsuranceItem.priority,
}


def _photo_counts(db: Session, item_ids: list[str]) -> dict[str, int]:
    if not item_ids:
        return {}
    rows = db.execute(
        select(InsuranceItemPhoto.item_id, func.count(InsuranceItemPhoto.id))
        .where(InsuranceItemPhoto.item_id.in_(item_ids))
        .group_by(InsuranceItemPhoto.item_id)
    ).all()
    return {item_id: int(n) for item_id, n in rows}


def _json_list(raw: Optional[str], field: str) -> list[Any]:
    if not raw:
        return []
    parsed = loads(raw)
    if not isinstance(parsed, list):
        raise field_error(field, f"{field} must be a JSON array")
    return parsed


def _link_view(link: InsuranceItemDocument) -> dict[str, Any]:
    return {
        "link_id": link.id,
        "document_id": link.document_id,
        "relationship_type": link.relationship_type,
        "notes": link.notes,
        "linked_at": link.linked_at.isoformat() if link.linked_at else None,
        "linked_by": user_ref(link.linker),
        "document": document_view(link.document) if link.document is not None else None,
    }


def _active_links(db: Session, item_id: str) -> list[InsuranceItemDocument]:
    return list(
        db.scalars(
            select(InsuranceItemDocument)
            .join(Document, Document.id == InsuranceItemDocument.document_id)
            .where(InsuranceItemDocument.item_id == item_id, Document.status == "active")
            .order_by(InsuranceItemDocument.linked_at.desc())
        ).all()
    )


def _load_photo(db: Session, user: User, photo_id: str) -> InsuranceItemPhoto:
    photo = db.get(InsuranceItemPhoto, photo_id)
    if photo is None:
        raise NotFoundError("Photo not found")
    # existence of the photo is hidden the same way as its item
    try:
        resolve_access(db, user, "insurance_item", photo.item_id)
    except NotFoundError:
        raise NotFoundError("Photo not found")
    return photo


# -------------------- items --------------------

@router.post("/items", status_code=201)
def create_item(
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not payload.get("property_id") or not payload.get("name") or not payload.get("category"):
        raise ValidationFailed("Property ID, name, and category are required")

    access = resolve_access(db, user, "property", str(payload["property_id"]))
    item = InsuranceItem(
        property_id=access.owning_property.id,
        created_by=user.id,
        condition="good",
        currency="USD",
        priority=3,
        status="active",
    )
    apply_item_fields(item, payload)
    db.add(item)
    db.commit()
    db.refresh(item)

    log.info("insurance item created", extra={"user_id": user.id, "property_id": item.property_id})
    return ok(item_view(item))


@router.get("/items")
def list_items(
    request: Request,
    property_id: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    subcategory: Optional[str] = Query(default=None),
    room_location: Optional[str] = Query(default=None),
    condition: Optional[str] = Query(default=None),
    status: str = Query(default="active"),
    search: Optional[str] = Query(default=None),
    tags: Optional[str] = Query(default=None),
    min_value: Optional[str] = Query(default=None),
    max_value: Optional[str] = Query(default=None),
    high_value_only: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT))
    status = one_of(status, RECORD_STATUSES, "status")

    stmt = select(InsuranceItem).where(
        InsuranceItem.property_id.in_(accessible_property_ids(db, user)),
        InsuranceItem.status == status,
    )
    if property_id:
        stmt = stmt.where(InsuranceItem.property_id == property_id)
    if category:
        stmt = stmt.where(InsuranceItem.category == category)
    if subcategory:
        stmt = stmt.where(InsuranceItem.subcategory == subcategory)
    if room_location:
        stmt = stmt.where(InsuranceItem.room_location == room_location)
    if condition:
        stmt = stmt.where(InsuranceItem.condition == condition)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                InsuranceItem.name.ilike(like),
                InsuranceItem.description.ilike(like),
                InsuranceItem.brand.ilike(like),
                InsuranceItem.model.ilike(like),
            )
        )
    for tag in parse_str_list(tags):
        stmt = stmt.where(InsuranceItem.tags_json.like(f'%"{tag}"%'))

    low = parse_float(min_value, "min_value")
    if low is not None:
        stmt = stmt.where(InsuranceItem.replacement_cost >= low)
    high = parse_float(max_value, "max_value")
    if high is not None:
        stmt = stmt.where(InsuranceItem.replacement_cost <= high)
    if parse_bool(high_value_only):
        stmt = stmt.where(InsuranceItem.replacement_cost > HIGH_VALUE_THRESHOLD)

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    counts = _photo_counts(db, [i.id for i in rows])

    items = []
    for it in rows:
        v = item_view(it)
        v["photo_count"] = counts.get(it.id, 0)
        v["property_name"] = it.owning_property.name if it.owning_property is not None else None
        items.append(v)
    return ok({"items": items, "pagination": meta})


@router.get("/summary")
def summary(
    property_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if property_id:
        resolve_access(db, user, "property", property_id)
        prop_ids = [property_id]
    else:
        prop_ids = accessible_property_ids(db, user)

    items = list(
        db.scalars(
            select(InsuranceItem).where(InsuranceItem.property_id.in_(prop_ids), InsuranceItem.status == "active")
        ).all()
    )
    return ok(inventory_summary(items).as_dict())


@router.get("/export/claim-report/{property_id}")
def claim_report(
    property_id: str,
    format: str = Query(default="json"),
    include_photos: Optional[str] = Query(default="true"),
    room_filter: Optional[str] = Query(default=None),
    category_filter: Optional[str] = Query(default=None),
    min_value: Optional[str] = Query(default=None),
    high_value_only: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if (format or "json").lower() != "json":
        raise ValidationFailed("Only JSON format is currently supported")

    access = resolve_access(db, user, "property", property_id)
    prop: Property = access.resource

    stmt = select(InsuranceItem).where(InsuranceItem.property_id == property_id, InsuranceItem.status == "active")
    if room_filter:
        stmt = stmt.where(InsuranceItem.room_location == room_filter)
    if category_filter:
        stmt = stmt.where(InsuranceItem.category == category_filter)
    low = parse_float(min_value, "min_value")
    if low is not None:
        stmt = stmt.where(InsuranceItem.replacement_cost >= low)
    if parse_bool(high_value_only):
        stmt = stmt.where(InsuranceItem.replacement_cost > HIGH_VALUE_THRESHOLD)

    items = list(
        db.scalars(
            stmt.order_by(InsuranceItem.room_location, InsuranceItem.category, InsuranceItem.replacement_cost.desc())
        ).all()
    )
    summary_block, breakdown = claim_report_summary(items)

    photos = primary_photos(db, [i.id for i in items]) if parse_bool(include_photos) is not False else {}
    rows = []
    for it in items:
        v = item_view(it)
        photo = photos.get(it.id)
        v["primary_photo"] = photo_view(photo) if photo is not None else None
        rows.append(v)

    log.info("claim report generated items=%d", len(items), extra={"user_id": user.id, "property_id": property_id})
    return ok(
        {
            "property": {"id": prop.id, "name": prop.name, "address": prop.address},
            "generated": {"at": _now().isoformat(), "by": user_ref(user)},
            "summary": summary_block,
            "breakdown": breakdown,
            "items": rows,
        }
    )


@router.get("/items/{item_id}")
def get_item(item_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "insurance_item", item_id)
    item: InsuranceItem = access.resource

    out = item_view(item)
    out["property_name"] = access.owning_property.name
    out["photos"] = [photo_view(p) for p in item.photos]
    out["linked_documents"] = [_link_view(link) for link in _active_links(db, item.id)]
    out["valuations"] = [valuation_view(v) for v in recent_valuations(db, item.id)]
    return ok(out)


@router.put("/items/{item_id}")
def update_item(
    item_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "insurance_item", item_id)
    item: InsuranceItem = access.resource

    # property_id, status and created_by are not editable here
    fields = {k: v for k, v in payload.items() if k not in ("id", "property_id", "status", "created_by", "created_at")}
    if not fields:
        raise ValidationFailed("No valid fields to update")

    apply_item_fields(item, fields)
    db.add(item)
    db.commit()
    db.refresh(item)
    return ok(item_view(item))


@router.delete("/items/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "insurance_item", item_id)
    item: InsuranceItem = access.resource
    item.status = "deleted"
    db.add(item)
    db.commit()

    log.info("insurance item deleted", extra={"user_id": user.id, "property_id": item.property_id})
    return ok({"message": "Insurance item deleted successfully"})


# -------------------- valuations --------------------

@router.post("/items/{item_id}/valuations", status_code=201)
def add_valuation(
    item_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "insurance_item", item_id)
    try:
        row = record_valuation(db, access.resource, user, payload)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(row)
    db.refresh(access.resource)
    return ok({"valuation": valuation_view(row), "item": item_view(access.resource)})


@router.get("/items/{item_id}/valuations")
def list_valuations(item_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolve_access(db, user, "insurance_item", item_id)
    rows = recent_valuations(db, item_id, limit=1000)
    return ok({"valuations": [valuation_view(v) for v in rows]})


# -------------------- photos --------------------

@router.post("/items/{item_id}/photos", status_code=201)
def upload_photos(
    item_id: str,
    photos: list[UploadFile] = File(...),
    photo_types: Optional[str] = Form(default=None),
    descriptions: Optional[str] = Form(default=None),
    titles: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    access = resolve_access(db, user, "insurance_item", item_id)
    item: InsuranceItem = access.resource

    if not photos:
        raise ValidationFailed("No photos uploaded")
    if len(photos) > settings.max_photos_per_upload:
        raise ValidationFailed(f"Too many files. Maximum is {settings.max_photos_per_upload} photos per upload")

    types = _json_list(photo_types, "photo_types")
    descs = _json_list(descriptions, "descriptions")
    names = _json_list(titles, "titles")

    # validate the whole batch before anything reaches storage
    blobs: list[tuple[UploadFile, bytes, str, str]] = []
    for idx, f in enumerate(photos):
        ptype = one_of(types[idx] if idx < len(types) and types[idx] else "overview", PHOTO_TYPES, "photo_types")
        mime = (f.content_type or "").lower()
        if not mime.startswith("image/"):
            raise ValidationFailed("Only image files are allowed")
        data = f.file.read()
        if not data:
            raise field_error("photos", f"{f.filename or 'photo'} is empty")
        if len(data) > settings.max_photo_bytes:
            raise ValidationFailed(f"File too large. Maximum size is {settings.max_photo_bytes // (1024 * 1024)}MB")
        blobs.append((f, data, mime, ptype))

    has_primary = any(p.is_primary for p in item.photos)
    uploaded: list[InsuranceItemPhoto] = []
    for idx, (f, data, mime, ptype) in enumerate(blobs):
        path = object_path(item.property_id, item.id, filename=f.filename or "photo")
        try:
            stored = storage.upload(settings.insurance_photos_bucket, path, data, content_type=mime)
        except StorageError:
            log.error("insurance photo upload failed", extra={"user_id": user.id, "property_id": item.property_id})
            raise

        photo = InsuranceItemPhoto(
            item_id=item.id,
            uploaded_by=user.id,
            photo_type=ptype,
            title=(names[idx] if idx < len(names) else None) or None,
            description=(descs[idx] if idx < len(descs) else None) or None,
            filename=path.rsplit("/", 1)[-1],
            original_filename=f.filename,
            file_path=stored.path,
            file_url=stored.url,
            file_size=stored.size,
            mime_type=mime,
            display_order=idx,
            is_primary=(idx == 0 and not has_primary),
        )
        db.add(photo)
        uploaded.append(photo)

    db.commit()
    for p in uploaded:
        db.refresh(p)

    log.info("insurance photos uploaded count=%d", len(uploaded), extra={"user_id": user.id, "property_id": item.property_id})
    return ok(
        {
            "uploaded_photos": [photo_view(p) for p in uploaded],
            "total_uploaded": len(uploaded),
            "message": f"Successfully uploaded {len(uploaded)} photo(s)",
        }
    )


@router.get("/items/{item_id}/photos")
def list_photos(item_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "insurance_item", item_id)
    return ok({"photos": [photo_view(p) for p in access.resource.photos]})


@router.put("/photos/{photo_id}")
def update_photo(
    photo_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    photo = _load_photo(db, user, photo_id)

    if "photo_type" in payload:
        photo.photo_type = one_of(payload["photo_type"] or "overview", PHOTO_TYPES, "photo_type")
    if "title" in payload:
        photo.title = payload["title"] or None
    if "description" in payload:
        photo.description = payload["description"] or None
    if "display_order" in payload:
        order = parse_int(payload["display_order"], "display_order")
        photo.display_order = order if order is not None else 0
    if "annotations" in payload:
        photo.annotations_json = dumps(parse_object(payload["annotations"], "annotations"))

    if parse_bool(payload.get("is_primary")):
        # one primary per item
        for other in db.scalars(
            select(InsuranceItemPhoto).where(
                InsuranceItemPhoto.item_id == photo.item_id, InsuranceItemPhoto.id != photo.id
            )
        ).all():
            if other.is_primary:
                other.is_primary = False
                db.add(other)
        photo.is_primary = True
    elif "is_primary" in payload:
        photo.is_primary = False

    db.add(photo)
    db.commit()
    db.refresh(photo)
    return ok(photo_view(photo))


@router.delete("/photos/{photo_id}")
def delete_photo(
    photo_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    photo = _load_photo(db, user, photo_id)
    try:
        storage.delete(settings.insurance_photos_bucket, photo.file_path)
    except StorageError:
        # the row goes regardless; an orphaned object is only wasted space
        log.warning("insurance photo storage delete failed", extra={"user_id": user.id})

    db.delete(photo)
    db.commit()
    return ok({"message": "Photo deleted successfully"})


# -------------------- document links --------------------

@router.post("/items/{item_id}/documents", status_code=201)
def link_documents(
    item_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resolve_access(db, user, "insurance_item", item_id)

    ids = parse_str_list(payload.get("document_ids"))
    if not ids:
        raise ValidationFailed("document_ids is required")
    relationship_type = one_of(payload.get("relationship_type") or "receipt", DOCUMENT_RELATIONSHIPS, "relationship_type")
    notes = payload.get("notes") or None

    docs: list[Document] = []
    for doc_id in ids:
        doc = db.get(Document, doc_id)
        if doc is None or doc.status != "active" or access_to_document(db, user, doc) is None:
            raise AuthorizationError(f"Access denied or document not found: {doc_id}")
        docs.append(doc)

    existing = set(
        db.scalars(select(InsuranceItemDocument.document_id).where(InsuranceItemDocument.item_id == item_id)).all()
    )
    created: list[InsuranceItemDocument] = []
    for doc in docs:
        if doc.id in existing:
            continue
        link = InsuranceItemDocument(
            item_id=item_id,
            document_id=doc.id,
            relationship_type=relationship_type,
            notes=notes,
            linked_by=user.id,
        )
        db.add(link)
        existing.add(doc.id)
        created.append(link)

    db.commit()
    for link in created:
        db.refresh(link)
    return ok({"linked_documents": [_link_view(link) for link in created], "total_linked": len(created)})


@router.get("/items/{item_id}/documents")
def list_linked_documents(item_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolve_access(db, user, "insurance_item", item_id)
    links = _active_links(db, item_id)
    return ok({"linked_documents": [_link_view(link) for link in links], "total_count": len(links)})


@router.delete("/items/{item_id}/documents/{document_id}")
def unlink_document(
    item_id: str,
    document_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resolve_access(db, user, "insurance_item", item_id)
    link = db.scalar(
        select(InsuranceItemDocument).where(
            InsuranceItemDocument.item_id == item_id, InsuranceItemDocument.document_id == document_id
        )
    )
    if link is None:
        raise NotFoundError("Document link not found")

    db.delete(link)
    db.commit()
    return ok({"message": "Document unlinked successfully"})
