# backend/homeskillet/routers/documents.py
from __future__ import annotations

import hashlib
import logging
from datetime import date, timedelta
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..db import get_db
from ..domain.audit import document_access_write
from ..domain.vocab import DOCUMENT_TYPES
from ..errors import ConflictError, ValidationFailed, field_error, ok
from ..models import Document, Project, User, _now
from ..services.access import accessible_property_ids, assigned_project_ids, resolve_access
from ..services.coerce import dumps, one_of, parse_bool, parse_date, parse_float, parse_object, parse_str_list
from ..services.pagination import page_params, paginate
from ..services.storage import Storage, StorageError, get_storage, object_path
from ..views import document_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

ALLOWED_MIME_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
)

_SORT = {
    "created_at": Document.created_at,
    "updated_at": Document.updated_at,
    "title": Document.title,
    "document_date": Document.document_date,
    "expiry_date": Document.expiry_date,
    "amount": Document.amount,
}


def file_sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def find_duplicate(
    db: Session, *, file_hash: str, property_id: Optional[str], project_id: Optional[str]
) -> Optional[Document]:
    """Same bytes already filed under the same property / project."""
    stmt = select(Document).where(Document.file_hash == file_hash, Document.status == "active")
    if property_id:
        stmt = stmt.where(Document.property_id == property_id)
    if project_id:
        stmt = stmt.where(Document.project_id == project_id)
    return db.scalar(stmt.limit(1))


def _visible_documents(db: Session, user: User):
    prop_ids = accessible_property_ids(db, user)
    project_ids = select(Project.id).where(
        or_(Project.property_id.in_(prop_ids), Project.id.in_(assigned_project_ids(db, user)))
    )
    return select(Document).where(
        Document.status == "active",
        or_(Document.property_id.in_(prop_ids), Document.project_id.in_(project_ids)),
    )


def _check_owner_scope(db: Session, user: User, property_id: Optional[str], project_id: Optional[str]) -> None:
    if not property_id and not project_id:
        raise ValidationFailed("Document must be associated with either a property or project")
    if property_id:
        resolve_access(db, user, "property", property_id)
    if project_id:
        access = resolve_access(db, user, "project", project_id)
        if property_id and access.resource.property_id != property_id:
            raise field_error("project_id", "Project does not belong to the given property")


def _apply_fields(doc: Document, payload: dict[str, Any]) -> None:
    if "title" in payload:
        title = str(payload.get("title") or "").strip()
        if not title:
            raise field_error("title", "title is required")
        doc.title = title[:200]
    if "description" in payload:
        doc.description = (str(payload["description"]).strip() or None) if payload["description"] is not None else None
    if "document_type" in payload:
        doc.document_type = one_of(payload["document_type"], DOCUMENT_TYPES, "document_type")
    if "category" in payload:
        doc.category = payload["category"] or None
    if "vendor_name" in payload:
        doc.vendor_name = (str(payload["vendor_name"]).strip() or None) if payload["vendor_name"] else None
    if "amount" in payload:
        doc.amount = parse_float(payload["amount"], "amount")
    if "currency" in payload:
        doc.currency = (str(payload["currency"] or "USD").strip().upper() or "USD")[:3]
    if "document_date" in payload:
        doc.document_date = parse_date(payload["document_date"], "document_date")
    if "expiry_date" in payload:
        doc.expiry_date = parse_date(payload["expiry_date"], "expiry_date")
    if "tags" in payload:
        doc.tags_json = dumps(parse_str_list(payload["tags"]))
    if "metadata" in payload:
        doc.metadata_json = dumps(parse_object(payload["metadata"], "metadata") or {})
    if "is_favorite" in payload:
        doc.is_favorite = bool(parse_bool(payload["is_favorite"]))


# -------------------- create --------------------

@router.post("/upload", status_code=201)
def upload_document(
    request: Request,
    file: UploadFile = File(...),
    title: str = Form(...),
    document_type: str = Form(...),
    property_id: Optional[str] = Form(default=None),
    project_id: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    vendor_name: Optional[str] = Form(default=None),
    amount: Optional[str] = Form(default=None),
    currency: Optional[str] = Form(default=None),
    document_date: Optional[str] = Form(default=None),
    expiry_date: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    metadata: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    property_id = property_id or None
    project_id = project_id or None
    _check_owner_scope(db, user, property_id, project_id)

    mime = (file.content_type or "application/octet-stream").lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise ValidationFailed("File type not allowed. Supported types: PDF, Images, Word, Excel, Text, CSV")

    data = file.file.read()
    if len(data) > settings.max_document_bytes:
        raise ValidationFailed(f"File too large. Maximum size is {settings.max_document_bytes // (1024 * 1024)}MB")
    if not data:
        raise field_error("file", "file is empty")

    digest = file_sha256(data)
    dup = find_duplicate(db, file_hash=digest, property_id=property_id, project_id=project_id)
    if dup is not None:
        log.warning("duplicate document upload", extra={"user_id": user.id, "document_id": dup.id})
        raise ConflictError("Duplicate document", details={"existing_document_id": dup.id})

    doc = Document(property_id=property_id, project_id=project_id, uploaded_by=user.id, filename="", file_url="")
    _apply_fields(
        doc,
        {
            "title": title,
            "document_type": document_type,
            "description": description,
            "category": category,
            "vendor_name": vendor_name,
            "amount": amount,
            "currency": currency,
            "document_date": document_date,
            "expiry_date": expiry_date,
            "tags": tags,
            "metadata": metadata,
        },
    )

    # bytes go to storage first; the row only records where they landed
    path = object_path(property_id or "projects", project_id or "", filename=file.filename or "document")
    try:
        stored = storage.upload(settings.documents_bucket, path, data, content_type=mime)
    except StorageError:
        log.error("document upload to storage failed", extra={"user_id": user.id})
        raise

    doc.filename = path.rsplit("/", 1)[-1]
    doc.original_filename = file.filename
    doc.file_path = stored.path
    doc.file_url = stored.url
    doc.file_size = stored.size
    doc.mime_type = mime
    doc.file_hash = digest
    db.add(doc)
    db.flush()
    document_access_write(db, document_id=doc.id, user_id=user.id, action="upload", request=request)
    db.commit()
    db.refresh(doc)

    log.info("document uploaded bytes=%d", stored.size, extra={"user_id": user.id, "document_id": doc.id})
    return ok(document_view(doc))


@router.post("", status_code=201)
def create_document_record(
    request: Request,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Metadata-only record for a file that already lives somewhere else."""
    property_id = payload.get("property_id") or None
    project_id = payload.get("project_id") or None
    _check_owner_scope(db, user, property_id, project_id)

    for required in ("title", "document_type", "filename", "file_url"):
        if not payload.get(required):
            raise field_error(required, f"{required} is required")

    file_hash = payload.get("file_hash") or None
    if file_hash:
        dup = find_duplicate(db, file_hash=str(file_hash), property_id=property_id, project_id=project_id)
        if dup is not None:
            raise ConflictError("Duplicate document", details={"existing_document_id": dup.id})

    doc = Document(
        property_id=property_id,
        project_id=project_id,
        uploaded_by=user.id,
        filename=str(payload["filename"]),
        original_filename=payload.get("original_filename") or str(payload["filename"]),
        file_path=payload.get("file_path"),
        file_url=str(payload["file_url"]),
        file_size=payload.get("file_size"),
        mime_type=payload.get("mime_type"),
        file_hash=file_hash,
    )
    _apply_fields(doc, {k: v for k, v in payload.items() if k not in ("property_id", "project_id")})
    db.add(doc)
    db.flush()
    document_access_write(db, document_id=doc.id, user_id=user.id, action="upload", request=request)
    db.commit()
    db.refresh(doc)
    return ok(document_view(doc))


# -------------------- read --------------------

@router.get("")
def list_documents(
    request: Request,
    property_id: Optional[str] = Query(default=None),
    project_id: Optional[str] = Query(default=None),
    document_type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    tags: Optional[str] = Query(default=None),
    is_favorite: Optional[bool] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    expiring_soon: Optional[bool] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT), default_sort="created_at")

    stmt = _visible_documents(db, user)
    if property_id:
        stmt = stmt.where(Document.property_id == property_id)
    if project_id:
        stmt = stmt.where(Document.project_id == project_id)
    if document_type:
        stmt = stmt.where(Document.document_type == document_type)
    if category:
        stmt = stmt.where(Document.category == category)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(Document.title.ilike(like), Document.description.ilike(like), Document.vendor_name.ilike(like))
        )
    for tag in parse_str_list(tags):
        stmt = stmt.where(Document.tags_json.like(f'%"{tag}"%'))
    if is_favorite is not None:
        stmt = stmt.where(Document.is_favorite.is_(is_favorite))
    if date_from:
        stmt = stmt.where(Document.document_date >= date_from)
    if date_to:
        stmt = stmt.where(Document.document_date <= date_to)
    if expiring_soon:
        today = date.today()
        stmt = stmt.where(Document.expiry_date.is_not(None), Document.expiry_date >= today, Document.expiry_date <= today + timedelta(days=30))

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    return ok({"documents": [document_view(d) for d in rows], "pagination": meta})


@router.get("/categories/summary")
def categories_summary(
    property_id: Optional[str] = Query(default=None),
    project_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    base = _visible_documents(db, user)
    if property_id:
        base = base.where(Document.property_id == property_id)
    if project_id:
        base = base.where(Document.project_id == project_id)
    docs = base.subquery()

    types = db.execute(
        select(docs.c.document_type, func.count().label("count"), func.coalesce(func.sum(docs.c.file_size), 0))
        .group_by(docs.c.document_type)
        .order_by(func.count().desc())
    ).all()
    categories = db.execute(
        select(docs.c.category, func.count().label("count"))
        .where(docs.c.category.is_not(None))
        .group_by(docs.c.category)
        .order_by(func.count().desc())
    ).all()

    today = date.today()
    expiring = db.scalar(
        select(func.count()).select_from(docs).where(
            docs.c.expiry_date.is_not(None), docs.c.expiry_date >= today, docs.c.expiry_date <= today + timedelta(days=30)
        )
    )
    recent = db.scalar(select(func.count()).select_from(docs).where(docs.c.created_at >= _now() - timedelta(days=7)))

    return ok(
        {
            "types": [{"type": t, "count": int(c), "total_size": int(s or 0)} for t, c, s in types],
            "categories": [{"category": cat, "count": int(c)} for cat, c in categories],
            "summary": {"expiring_soon": int(expiring or 0), "recent_uploads": int(recent or 0)},
        }
    )


@router.get("/{document_id}")
def get_document(document_id: str, request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "document", document_id)
    doc: Document = access.resource

    doc.view_count = int(doc.view_count or 0) + 1
    db.add(doc)
    document_access_write(db, document_id=doc.id, user_id=user.id, action="view", request=request)
    db.commit()
    db.refresh(doc)
    return ok(document_view(doc))


@router.get("/{document_id}/download-url")
def download_url(
    document_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    access = resolve_access(db, user, "document", document_id)
    doc: Document = access.resource

    if doc.file_path:
        url = storage.signed_url(settings.documents_bucket, doc.file_path)
        expires_in: Optional[int] = settings.signed_url_expiry_seconds
    else:
        # externally stored file, nothing to sign
        url, expires_in = doc.file_url, None

    document_access_write(db, document_id=doc.id, user_id=user.id, action="download", request=request, commit=True)
    return ok({"url": url, "expires_in": expires_in, "filename": doc.original_filename or doc.filename})


# -------------------- update / delete --------------------

@router.put("/{document_id}")
def update_document(
    document_id: str,
    request: Request,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "document", document_id)
    doc: Document = access.resource

    editable = {k: v for k, v in payload.items() if k not in ("property_id", "project_id", "file_url", "file_path", "file_hash")}
    if not editable:
        raise ValidationFailed("At least one field must be provided for update")
    _apply_fields(doc, editable)
    db.add(doc)
    document_access_write(db, document_id=doc.id, user_id=user.id, action="edit", request=request, info={"fields": sorted(editable)})
    db.commit()
    db.refresh(doc)
    return ok(document_view(doc))


@router.delete("/{document_id}")
def delete_document(document_id: str, request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "document", document_id)
    doc: Document = access.resource

    # soft delete; bytes stay in storage
    doc.status = "deleted"
    db.add(doc)
    document_access_write(db, document_id=doc.id, user_id=user.id, action="delete", request=request)
    db.commit()

    log.info("document deleted", extra={"user_id": user.id, "document_id": doc.id})
    return ok({"message": "Document deleted successfully"})
