# backend/homeskillet/routers/maintenance.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..errors import AuthorizationError, field_error, ok
from ..models import MaintenanceRecord, MaintenanceSchedule, User
from ..schemas import CompleteIn, ScheduleCreate, ScheduleUpdate
from ..services.access import Access, accessible_property_ids, resolve_access
from ..services.pagination import page_params, paginate
from ..services.recurrence import calculate_next_due_date
from ..views import record_view, schedule_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance-schedules", tags=["maintenance"])

_SORT = {
    "created_at": MaintenanceSchedule.created_at,
    "createdAt": MaintenanceSchedule.created_at,
    "title": MaintenanceSchedule.title,
    "frequency": MaintenanceSchedule.frequency,
    "priority": MaintenanceSchedule.priority,
    "next_due_date": MaintenanceSchedule.next_due_date,
    "nextDueDate": MaintenanceSchedule.next_due_date,
    "last_completed_date": MaintenanceSchedule.last_completed_date,
    "lastCompletedDate": MaintenanceSchedule.last_completed_date,
}

_HISTORY_SORT = {
    "completed_date": MaintenanceRecord.completed_date,
    "completedDate": MaintenanceRecord.completed_date,
    "created_at": MaintenanceRecord.created_at,
    "createdAt": MaintenanceRecord.created_at,
}


def _require_manage(access: Access, message: str) -> None:
    if not (access.is_owner or access.permissions.manage_maintenance):
        raise AuthorizationError(message)


def _check_user(db: Session, user_id: Optional[str]) -> None:
    if user_id and db.get(User, user_id) is None:
        raise field_error("assignedTo", f"Unknown user: {user_id}")


@router.post("", status_code=201)
def create_schedule(payload: ScheduleCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "property", payload.property_id)
    _require_manage(access, "Permission denied to manage maintenance for this property")
    _check_user(db, payload.assigned_to)

    data = payload.model_dump()
    if data["next_due_date"] is None:
        data["next_due_date"] = calculate_next_due_date(payload.frequency, multiplier=payload.frequency_value)

    row = MaintenanceSchedule(created_by=user.id, **data)
    db.add(row)
    db.commit()
    db.refresh(row)

    log.info("maintenance schedule created next_due=%s", row.next_due_date, extra={"user_id": user.id, "property_id": row.property_id})
    return ok({"schedule": schedule_view(row)})


@router.get("")
def list_schedules(
    request: Request,
    property_id: Optional[str] = Query(default=None, alias="propertyId"),
    frequency: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None, alias="isActive"),
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT), default_sort="next_due_date", default_order="asc")

    stmt = select(MaintenanceSchedule).where(MaintenanceSchedule.property_id.in_(accessible_property_ids(db, user)))
    if property_id:
        stmt = stmt.where(MaintenanceSchedule.property_id == property_id)
    if frequency:
        stmt = stmt.where(MaintenanceSchedule.frequency == frequency)
    if is_active is not None:
        stmt = stmt.where(MaintenanceSchedule.is_active.is_(is_active))
    if category:
        stmt = stmt.where(MaintenanceSchedule.category == category)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(MaintenanceSchedule.title.ilike(like), MaintenanceSchedule.description.ilike(like)))

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    return ok({"schedules": [schedule_view(s) for s in rows], "pagination": meta})


@router.get("/due")
def due_schedules(
    days: int = Query(default=7, ge=0, le=365),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Active schedules due within `days`, overdue ones included, soonest first."""
    horizon = date.today() + timedelta(days=days)
    rows = db.scalars(
        select(MaintenanceSchedule)
        .where(
            MaintenanceSchedule.property_id.in_(accessible_property_ids(db, user)),
            MaintenanceSchedule.is_active.is_(True),
            MaintenanceSchedule.next_due_date.is_not(None),
            MaintenanceSchedule.next_due_date <= horizon,
        )
        .order_by(MaintenanceSchedule.next_due_date.asc())
    ).all()

    today = date.today()
    out = []
    for s in rows:
        v = schedule_view(s)
        v["isOverdue"] = s.next_due_date < today
        out.append(v)
    return ok({"schedules": out, "count": len(out)})


@router.get("/{schedule_id}")
def get_schedule(schedule_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "schedule", schedule_id)
    return ok({"schedule": schedule_view(access.resource), "permissions": access.permissions.as_dict()})


@router.put("/{schedule_id}")
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "schedule", schedule_id)
    _require_manage(access, "Permission denied to manage this maintenance schedule")

    row: MaintenanceSchedule = access.resource
    fields = payload.model_dump(exclude_unset=True)
    if "assigned_to" in fields:
        _check_user(db, fields["assigned_to"])

    frequency_changed = "frequency" in fields and fields["frequency"] != row.frequency
    for k, v in fields.items():
        setattr(row, k, v)

    # a new frequency restarts the cycle from today unless a due date came with it
    if frequency_changed and "next_due_date" not in fields:
        row.next_due_date = calculate_next_due_date(row.frequency, multiplier=row.frequency_value)

    db.add(row)
    db.commit()
    db.refresh(row)
    return ok({"schedule": schedule_view(row)})


@router.delete("/{schedule_id}")
def delete_schedule(schedule_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "schedule", schedule_id)
    _require_manage(access, "Permission denied to manage this maintenance schedule")

    db.delete(access.resource)
    db.commit()
    return ok({"message": "Maintenance schedule deleted successfully"})


@router.post("/{schedule_id}/complete", status_code=201)
def complete_schedule(
    schedule_id: str,
    payload: CompleteIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "schedule", schedule_id)
    _require_manage(access, "Permission denied to complete this maintenance task")

    schedule: MaintenanceSchedule = access.resource
    record = MaintenanceRecord(
        schedule_id=schedule.id,
        completed_date=payload.completed_date,
        notes=payload.notes,
        actual_duration=payload.actual_duration,
        actual_cost=payload.actual_cost,
        status=payload.status,
        completed_by=user.id,
    )

    next_due = payload.next_due_date
    if next_due is None:
        next_due = calculate_next_due_date(schedule.frequency, payload.completed_date, multiplier=schedule.frequency_value)

    schedule.last_completed_date = payload.completed_date
    schedule.next_due_date = next_due
    db.add(record)
    db.add(schedule)
    db.commit()
    db.refresh(record)
    db.refresh(schedule)

    log.info("maintenance completed next_due=%s", next_due, extra={"user_id": user.id, "property_id": schedule.property_id})
    return ok({"record": record_view(record), "schedule": schedule_view(schedule)})


@router.get("/{schedule_id}/history")
def schedule_history(
    schedule_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resolve_access(db, user, "schedule", schedule_id)
    params = page_params(request.query_params, sortable=tuple(_HISTORY_SORT), default_sort="completed_date")

    stmt = select(MaintenanceRecord).where(MaintenanceRecord.schedule_id == schedule_id)
    rows, meta = paginate(db, stmt, params, _HISTORY_SORT[params.sort_by])
    return ok({"records": [record_view(r) for r in rows], "pagination": meta})
