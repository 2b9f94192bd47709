# backend/homeskillet/routers/reports.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..errors import AuthorizationError, NotFoundError, ok
from ..models import User
from ..services.access import accessible_property_ids, resolve_access
from ..services.report_rollups import compute_dashboard, property_details

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Portfolio counts over every property the caller owns or holds a grant on."""
    return ok(compute_dashboard(db, accessible_property_ids(db, user)).as_dict())


@router.get("/properties/{property_id}/details")
def details(property_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        access = resolve_access(db, user, "property", property_id)
    except (NotFoundError, AuthorizationError):
        raise NotFoundError("Property not found or access denied")
    return ok(property_details(db, access.resource))
