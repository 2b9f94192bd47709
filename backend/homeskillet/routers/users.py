# backend/homeskillet/routers/users.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..errors import AuthorizationError, NotFoundError, field_error, ok
from ..models import Property, PropertyPermission, User
from ..schemas import PermissionGrantIn, PermissionUpdateIn, UserUpdateIn
from ..services.access import permissions_for, property_grant, resolve_access
from ..services.pagination import page_params, paginate
from ..views import permission_view, user_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

_SORT = {
    "created_at": User.created_at,
    "createdAt": User.created_at,
    "email": User.email,
    "first_name": User.first_name,
    "firstName": User.first_name,
    "last_name": User.last_name,
    "lastName": User.last_name,
}


def _owned_property(db: Session, user: User, property_id: str, action: str) -> Property:
    access = resolve_access(db, user, "property", property_id)
    if not access.is_owner:
        raise AuthorizationError(f"Only property owner can {action} permissions")
    return access.owning_property


def _get_user_or_404(db: Session, user_id: str) -> User:
    row = db.get(User, user_id)
    if row is None:
        raise NotFoundError("User not found")
    return row


@router.get("")
def list_users(
    request: Request,
    search: Optional[str] = Query(default=None),
    user_type: Optional[str] = Query(default=None, alias="userType"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT), default_sort="created_at")
    stmt = select(User)
    if search:
        like = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like))
        )
    if user_type:
        stmt = stmt.where(User.user_type == user_type)

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    return ok({"users": [user_view(u) for u in rows], "pagination": meta})


@router.get("/properties/{property_id}/permissions")
def list_permissions(property_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    prop = _owned_property(db, user, property_id, "view")
    grants = db.scalars(
        select(PropertyPermission).where(PropertyPermission.property_id == prop.id).order_by(PropertyPermission.created_at)
    ).all()
    return ok({"permissions": [permission_view(g, permissions_for(g.role).as_dict()) for g in grants]})


@router.post("/properties/{property_id}/permissions", status_code=201)
def grant_permission(
    property_id: str,
    payload: PermissionGrantIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    prop = _owned_property(db, user, property_id, "grant")
    if payload.user_id == prop.owner_id:
        raise field_error("userId", "Property owner already has full access")
    _get_user_or_404(db, payload.user_id)

    grant = property_grant(db, user_id=payload.user_id, property_id=prop.id)
    if grant is None:
        grant = PropertyPermission(user_id=payload.user_id, property_id=prop.id, role=payload.role, granted_by=user.id)
    else:
        # one row per (user, property); re-granting changes the role
        grant.role = payload.role
        grant.granted_by = user.id
    db.add(grant)
    db.commit()
    db.refresh(grant)

    log.info("property permission granted role=%s", grant.role, extra={"user_id": user.id, "property_id": prop.id})
    return ok({"permission": permission_view(grant, permissions_for(grant.role).as_dict())})


@router.put("/properties/{property_id}/permissions/{user_id}")
def update_permission(
    property_id: str,
    user_id: str,
    payload: PermissionUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    prop = _owned_property(db, user, property_id, "update")
    grant = property_grant(db, user_id=user_id, property_id=prop.id)
    if grant is None:
        raise NotFoundError("Permission not found")

    grant.role = payload.role
    db.add(grant)
    db.commit()
    db.refresh(grant)
    return ok({"permission": permission_view(grant, permissions_for(grant.role).as_dict())})


@router.delete("/properties/{property_id}/permissions/{user_id}")
def revoke_permission(property_id: str, user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    prop = _owned_property(db, user, property_id, "revoke")
    grant = property_grant(db, user_id=user_id, property_id=prop.id)
    if grant is None:
        raise NotFoundError("Permission not found")

    db.delete(grant)
    db.commit()
    log.info("property permission revoked", extra={"user_id": user.id, "property_id": prop.id})
    return ok({"message": "Permission revoked successfully"})


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ok({"user": user_view(_get_user_or_404(db, user_id))})


@router.put("/{user_id}")
def update_user(user_id: str, payload: UserUpdateIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if user_id != user.id:
        raise AuthorizationError("Permission denied to update this user")

    if payload.first_name is not None:
        user.first_name = payload.first_name.strip()
    if payload.last_name is not None:
        user.last_name = payload.last_name.strip()
    if payload.user_type is not None:
        user.user_type = payload.user_type

    db.add(user)
    db.commit()
    db.refresh(user)
    return ok({"user": user_view(user)})
