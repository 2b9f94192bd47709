# backend/homeskillet/routers/properties.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..errors import AuthorizationError, ok
from ..models import Property, PropertyPermission, User
from ..schemas import PropertyCreate, PropertyUpdate
from ..services.access import FULL_ACCESS, resolve_access
from ..services.pagination import page_params, paginate
from ..views import property_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["properties"])

_SORT = {
    "created_at": Property.created_at,
    "createdAt": Property.created_at,
    "updated_at": Property.updated_at,
    "updatedAt": Property.updated_at,
    "name": Property.name,
    "type": Property.type,
    "year_built": Property.year_built,
    "yearBuilt": Property.year_built,
    "square_feet": Property.square_feet,
    "squareFeet": Property.square_feet,
}


@router.post("", status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    row = Property(owner_id=user.id, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)

    log.info("property created", extra={"user_id": user.id, "property_id": row.id})
    return ok({"property": property_view(row), "permissions": FULL_ACCESS.as_dict(), "accessType": "owner"})


@router.get("")
def list_properties(
    request: Request,
    search: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT), default_sort="created_at")

    granted = select(PropertyPermission.property_id).where(PropertyPermission.user_id == user.id)
    stmt = select(Property).where(or_(Property.owner_id == user.id, Property.id.in_(granted)))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Property.name.ilike(like), Property.address.ilike(like), Property.description.ilike(like)))
    if type:
        stmt = stmt.where(Property.type == type)

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    return ok({"properties": [property_view(p) for p in rows], "pagination": meta})


@router.get("/{property_id}")
def get_property(property_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "property", property_id)
    return ok(
        {
            "property": property_view(access.owning_property),
            "permissions": access.permissions.as_dict(),
            "accessType": access.access_type,
        }
    )


@router.put("/{property_id}")
def update_property(
    property_id: str,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "property", property_id)
    if not access.is_owner:
        raise AuthorizationError("Only property owner can update property details")

    row = access.owning_property
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    db.add(row)
    db.commit()
    db.refresh(row)
    return ok({"property": property_view(row)})


@router.delete("/{property_id}")
def delete_property(property_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "property", property_id)
    if not access.is_owner:
        raise AuthorizationError("Only property owner can delete property")

    db.delete(access.owning_property)
    db.commit()
    log.info("property deleted", extra={"user_id": user.id, "property_id": property_id})
    return ok({"message": "Property deleted successfully"})
