# backend/homeskillet/views.py
"""
Row -> JSON shapes.

Properties, projects, maintenance and users are camelCase on the wire; tasks,
documents and insurance records keep their snake_case column names.
"""
from __future__ import annotations

from typing import Any, Optional

from .models import (
    Document,
    InsuranceItem,
    InsuranceItemPhoto,
    InsuranceValuation,
    MaintenanceRecord,
    MaintenanceSchedule,
    Project,
    ProjectAssignment,
    ProjectTask,
    Property,
    PropertyPermission,
    TaskComment,
    TaskDependency,
    TaskTimeTracking,
    User,
)
from .services.coerce import iso, loads


def user_view(u: User) -> dict[str, Any]:
    return {
        "id": u.id,
        "email": u.email,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "userType": u.user_type,
        "createdAt": iso(u.created_at),
        "updatedAt": iso(u.updated_at),
    }


def user_ref(u: Optional[User]) -> Optional[dict[str, Any]]:
    if u is None:
        return None
    return {"id": u.id, "name": u.full_name}


def property_view(p: Property) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "address": p.address,
        "type": p.type,
        "bedrooms": p.bedrooms,
        "bathrooms": p.bathrooms,
        "squareFeet": p.square_feet,
        "lotSize": p.lot_size,
        "yearBuilt": p.year_built,
        "ownerId": p.owner_id,
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }


def permission_view(grant: PropertyPermission, permissions: dict[str, bool]) -> dict[str, Any]:
    out = {
        "id": grant.id,
        "userId": grant.user_id,
        "propertyId": grant.property_id,
        "role": grant.role,
        "permissions": permissions,
        "grantedBy": grant.granted_by,
        "createdAt": iso(grant.created_at),
        "updatedAt": iso(grant.updated_at),
    }
    if grant.user is not None:
        out["user"] = user_view(grant.user)
    return out


# -------------------- projects / tasks --------------------

def project_task_view(t: ProjectTask) -> dict[str, Any]:
    return {
        "id": t.id,
        "projectId": t.project_id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "assignedTo": t.assigned_to,
        "dueDate": iso(t.due_date),
        "estimatedHours": t.estimated_hours,
        "actualHours": t.actual_hours,
        "cost": t.cost,
        "sortOrder": t.sort_order,
        "progressPercentage": t.progress_percentage,
        "completedAt": iso(t.completed_at),
        "createdAt": iso(t.created_at),
        "updatedAt": iso(t.updated_at),
    }


def project_view(p: Project, *, with_tasks: bool = True) -> dict[str, Any]:
    out = {
        "id": p.id,
        "propertyId": p.property_id,
        "title": p.title,
        "description": p.description,
        "category": p.category,
        "status": p.status,
        "priority": p.priority,
        "budget": p.budget,
        "actualCost": p.actual_cost,
        "startDate": iso(p.start_date),
        "endDate": iso(p.end_date),
        "dueDate": iso(p.due_date),
        "createdBy": p.created_by,
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }
    if with_tasks:
        out["tasks"] = [project_task_view(t) for t in p.tasks]
    return out


def assignment_view(a: ProjectAssignment) -> dict[str, Any]:
    out = {
        "id": a.id,
        "userId": a.user_id,
        "projectId": a.project_id,
        "role": a.role,
        "assignedBy": a.assigned_by,
        "createdAt": iso(a.created_at),
        "updatedAt": iso(a.updated_at),
    }
    if a.user is not None:
        out["user"] = user_view(a.user)
    return out


def task_view(t: ProjectTask) -> dict[str, Any]:
    return {
        "id": t.id,
        "project_id": t.project_id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "assigned_to": t.assigned_to,
        "due_date": iso(t.due_date),
        "estimated_hours": t.estimated_hours,
        "actual_hours": t.actual_hours,
        "cost": t.cost,
        "sort_order": t.sort_order,
        "progress_percentage": t.progress_percentage,
        "notes": t.notes,
        "status_updated_at": iso(t.status_updated_at),
        "completed_at": iso(t.completed_at),
        "created_at": iso(t.created_at),
        "updated_at": iso(t.updated_at),
    }


def session_view(s: TaskTimeTracking) -> dict[str, Any]:
    return {
        "id": s.id,
        "task_id": s.task_id,
        "user_id": s.user_id,
        "started_at": iso(s.started_at),
        "ended_at": iso(s.ended_at),
        "duration_minutes": s.duration_minutes,
        "description": s.description,
        "is_active": bool(s.is_active),
        "created_at": iso(s.created_at),
        "updated_at": iso(s.updated_at),
    }


def comment_view(c: TaskComment) -> dict[str, Any]:
    out = {
        "id": c.id,
        "task_id": c.task_id,
        "user_id": c.user_id,
        "content": c.content,
        "type": c.type,
        "metadata": loads(c.metadata_json, default={}),
        "created_at": iso(c.created_at),
    }
    if c.user is not None:
        out["user"] = {
            "id": c.user.id,
            "first_name": c.user.first_name,
            "last_name": c.user.last_name,
            "email": c.user.email,
        }
    return out


def dependency_view(d: TaskDependency) -> dict[str, Any]:
    return {
        "id": d.id,
        "task_id": d.task_id,
        "depends_on_task_id": d.depends_on_task_id,
        "dependency_type": d.dependency_type,
        "created_at": iso(d.created_at),
    }


# -------------------- maintenance --------------------

def schedule_view(s: MaintenanceSchedule) -> dict[str, Any]:
    return {
        "id": s.id,
        "propertyId": s.property_id,
        "title": s.title,
        "description": s.description,
        "category": s.category,
        "frequency": s.frequency,
        "frequencyValue": s.frequency_value,
        "priority": s.priority,
        "estimatedDuration": s.estimated_duration,
        "estimatedCost": s.estimated_cost,
        "instructions": s.instructions,
        "nextDueDate": iso(s.next_due_date),
        "lastCompletedDate": iso(s.last_completed_date),
        "isActive": bool(s.is_active),
        "assignedTo": s.assigned_to,
        "createdBy": s.created_by,
        "createdAt": iso(s.created_at),
        "updatedAt": iso(s.updated_at),
    }


def record_view(r: MaintenanceRecord) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": r.id,
        "scheduleId": r.schedule_id,
        "completedDate": iso(r.completed_date),
        "notes": r.notes,
        "actualDuration": r.actual_duration,
        "actualCost": r.actual_cost,
        "status": r.status,
        "createdAt": iso(r.created_at),
        "completedBy": None,
    }
    if r.completer is not None:
        out["completedBy"] = {
            "id": r.completer.id,
            "firstName": r.completer.first_name,
            "lastName": r.completer.last_name,
            "email": r.completer.email,
        }
    return out


# -------------------- documents --------------------

def document_view(d: Document) -> dict[str, Any]:
    return {
        "id": d.id,
        "property_id": d.property_id,
        "project_id": d.project_id,
        "title": d.title,
        "description": d.description,
        "document_type": d.document_type,
        "category": d.category,
        "vendor_name": d.vendor_name,
        "amount": d.amount,
        "currency": d.currency,
        "document_date": iso(d.document_date),
        "expiry_date": iso(d.expiry_date),
        "metadata": loads(d.metadata_json, default={}),
        "filename": d.filename,
        "original_filename": d.original_filename,
        "file_path": d.file_path,
        "file_url": d.file_url,
        "file_size": d.file_size,
        "mime_type": d.mime_type,
        "file_hash": d.file_hash,
        "status": d.status,
        "tags": loads(d.tags_json, default=[]),
        "is_favorite": bool(d.is_favorite),
        "view_count": d.view_count,
        "uploaded_by": user_ref(d.uploader),
        "created_at": iso(d.created_at),
        "updated_at": iso(d.updated_at),
    }


# -------------------- insurance --------------------

def photo_view(p: InsuranceItemPhoto) -> dict[str, Any]:
    return {
        "id": p.id,
        "item_id": p.item_id,
        "photo_type": p.photo_type,
        "title": p.title,
        "description": p.description,
        "filename": p.filename,
        "original_filename": p.original_filename,
        "file_path": p.file_path,
        "file_url": p.file_url,
        "file_size": p.file_size,
        "mime_type": p.mime_type,
        "display_order": p.display_order,
        "is_primary": bool(p.is_primary),
        "exif_data": loads(p.exif_data_json, default=None),
        "annotations": loads(p.annotations_json, default=None),
        "uploaded_by": p.uploaded_by,
        "created_at": iso(p.created_at),
        "updated_at": iso(p.updated_at),
    }


def valuation_view(v: InsuranceValuation) -> dict[str, Any]:
    return {
        "id": v.id,
        "item_id": v.item_id,
        "appraised_value": v.appraised_value,
        "replacement_cost": v.replacement_cost,
        "valuation_date": iso(v.valuation_date),
        "valuation_type": v.valuation_type,
        "appraiser_name": v.appraiser_name,
        "notes": v.notes,
        "is_current": bool(v.is_current),
        "created_by": v.created_by,
        "created_at": iso(v.created_at),
    }


_ITEM_COLUMNS = (
    "id",
    "property_id",
    "name",
    "description",
    "category",
    "subcategory",
    "room_location",
    "specific_location",
    "brand",
    "model",
    "serial_number",
    "condition",
    "purchase_date",
    "purchase_location",
    "purchase_price",
    "current_estimated_value",
    "replacement_cost",
    "currency",
    "last_appraised_date",
    "appraisal_type",
    "is_insured",
    "insurance_policy_number",
    "insurance_coverage_amount",
    "requires_separate_coverage",
    "status",
    "is_favorite",
    "priority",
    "notes",
    "created_at",
    "updated_at",
)


def item_view(i: InsuranceItem) -> dict[str, Any]:
    out = {k: iso(getattr(i, k)) for k in _ITEM_COLUMNS}
    out["tags"] = loads(i.tags_json, default=[])
    out["custom_fields"] = loads(i.custom_fields_json, default={})
    out["created_by"] = user_ref(i.creator)
    return out
