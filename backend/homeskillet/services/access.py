# backend/homeskillet/services/access.py
"""
Who may touch what.

Every resource hangs off a Property. The property owner has full access to
everything under it; anyone else needs a grant: a PropertyPermission (role on
the property) or, for projects and their tasks, a ProjectAssignment. The role
on the grant maps to a fixed PermissionSet and routes check the one capability
their write needs.

resolve_access() is the single entry point. It loads the target, raises 404
if it does not exist and 403 if no access path exists, and otherwise returns
an Access describing how the caller got in.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Literal, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import AuthorizationError, NotFoundError
from ..models import (
    Document,
    InsuranceItem,
    MaintenanceSchedule,
    Project,
    ProjectAssignment,
    ProjectTask,
    Property,
    PropertyPermission,
    User,
)


@dataclass(frozen=True)
class PermissionSet:
    view_projects: bool = False
    create_projects: bool = False
    edit_projects: bool = False
    delete_projects: bool = False
    view_maintenance: bool = False
    manage_maintenance: bool = False
    view_financials: bool = False
    manage_vendors: bool = False

    def as_dict(self) -> dict[str, bool]:
        # camelCase on the wire
        out: dict[str, bool] = {}
        for f in fields(self):
            head, *rest = f.name.split("_")
            out[head + "".join(p.title() for p in rest)] = bool(getattr(self, f.name))
        return out


FULL_ACCESS = PermissionSet(
    view_projects=True,
    create_projects=True,
    edit_projects=True,
    delete_projects=True,
    view_maintenance=True,
    manage_maintenance=True,
    view_financials=True,
    manage_vendors=True,
)

_ROLE_PERMISSIONS: dict[str, PermissionSet] = {
    "viewer": PermissionSet(view_projects=True, view_maintenance=True),
    "editor": PermissionSet(
        view_projects=True,
        create_projects=True,
        edit_projects=True,
        view_maintenance=True,
        manage_maintenance=True,
    ),
    "admin": FULL_ACCESS,
    "contractor": PermissionSet(view_projects=True, edit_projects=True, view_maintenance=True, manage_maintenance=True),
    "tenant": PermissionSet(view_projects=True, view_maintenance=True),
    "manager": FULL_ACCESS,
}


def permissions_for(role: Optional[str]) -> PermissionSet:
    """Fixed role table; anything unknown gets viewer rights."""
    return _ROLE_PERMISSIONS.get(str(role or "").strip().lower(), _ROLE_PERMISSIONS["viewer"])


ResourceKind = Literal["property", "project", "schedule", "task", "document", "insurance_item"]
AccessVia = Literal["owner", "grant", "assignment", "assignee"]


@dataclass(frozen=True)
class Access:
    allowed: bool
    permissions: PermissionSet
    via: AccessVia
    role: Optional[str]
    resource: Any
    owning_property: Property

    @property
    def is_owner(self) -> bool:
        return self.via == "owner"

    @property
    def access_type(self) -> str:
        return "owner" if self.is_owner else str(self.role or self.via)


_NOT_FOUND: dict[str, str] = {
    "property": "Property not found",
    "project": "Project not found",
    "schedule": "Maintenance schedule not found",
    "task": "Task not found",
    "document": "Document not found",
    "insurance_item": "Insurance item not found or access denied",
}

_DENIED: dict[str, str] = {
    "property": "Access denied to this property",
    "project": "Access denied to this project",
    "schedule": "Access denied to this maintenance schedule",
    "task": "Access denied to this task",
    "document": "Access denied to this document",
}


# -------------------------
# Grant lookups
# -------------------------
def property_grant(db: Session, *, user_id: str, property_id: str) -> PropertyPermission | None:
    return db.scalar(
        select(PropertyPermission).where(PropertyPermission.user_id == user_id, PropertyPermission.property_id == property_id)
    )


def project_assignment(db: Session, *, user_id: str, project_id: str) -> ProjectAssignment | None:
    return db.scalar(
        select(ProjectAssignment).where(ProjectAssignment.user_id == user_id, ProjectAssignment.project_id == project_id)
    )


def accessible_property_ids(db: Session, user: User) -> list[str]:
    """Owned properties first, then granted ones."""
    owned = list(db.scalars(select(Property.id).where(Property.owner_id == user.id)).all())
    granted = db.scalars(select(PropertyPermission.property_id).where(PropertyPermission.user_id == user.id)).all()
    return owned + [pid for pid in granted if pid not in owned]


def assigned_project_ids(db: Session, user: User) -> list[str]:
    return list(db.scalars(select(ProjectAssignment.project_id).where(ProjectAssignment.user_id == user.id)).all())


# -------------------------
# Per-kind resolution (no raising)
# -------------------------
def _owner(prop: Property, resource: Any) -> Access:
    return Access(True, FULL_ACCESS, "owner", "owner", resource, prop)


def access_to_property(db: Session, user: User, prop: Property, *, resource: Any = None) -> Optional[Access]:
    resource = prop if resource is None else resource
    if prop.owner_id == user.id:
        return _owner(prop, resource)
    grant = property_grant(db, user_id=user.id, property_id=prop.id)
    if grant is not None:
        return Access(True, permissions_for(grant.role), "grant", grant.role, resource, prop)
    return None


def access_to_project(db: Session, user: User, project: Project) -> Optional[Access]:
    prop = project.owning_property
    if prop.owner_id == user.id:
        return _owner(prop, project)
    assignment = project_assignment(db, user_id=user.id, project_id=project.id)
    if assignment is not None:
        return Access(True, permissions_for(assignment.role), "assignment", assignment.role, project, prop)
    return access_to_property(db, user, prop, resource=project)


def access_to_task(db: Session, user: User, task: ProjectTask) -> Optional[Access]:
    project = task.project
    prop = project.owning_property
    if prop.owner_id == user.id:
        return _owner(prop, task)
    if task.assigned_to and task.assigned_to == user.id:
        return Access(True, permissions_for("contractor"), "assignee", None, task, prop)
    found = access_to_property(db, user, prop, resource=task)
    if found is not None:
        return found
    assignment = project_assignment(db, user_id=user.id, project_id=project.id)
    if assignment is not None:
        return Access(True, permissions_for(assignment.role), "assignment", assignment.role, task, prop)
    return None


def access_to_document(db: Session, user: User, doc: Document) -> Optional[Access]:
    if doc.property_id:
        prop = db.get(Property, doc.property_id)
        if prop is not None:
            found = access_to_property(db, user, prop, resource=doc)
            if found is not None:
                return found
    if doc.project_id:
        project = db.get(Project, doc.project_id)
        if project is not None:
            found = access_to_project(db, user, project)
            if found is not None:
                return Access(True, found.permissions, found.via, found.role, doc, found.owning_property)
    return None


# -------------------------
# Single entry point
# -------------------------
def _load(db: Session, kind: ResourceKind, resource_id: str) -> Any:
    if kind == "property":
        return db.get(Property, resource_id)
    if kind == "project":
        return db.get(Project, resource_id)
    if kind == "schedule":
        return db.get(MaintenanceSchedule, resource_id)
    if kind == "task":
        return db.get(ProjectTask, resource_id)
    if kind == "document":
        row = db.get(Document, resource_id)
        return row if row is not None and row.status == "active" else None
    if kind == "insurance_item":
        row = db.get(InsuranceItem, resource_id)
        return row if row is not None and row.status != "deleted" else None
    raise ValueError(f"unknown resource kind: {kind}")


def check_access(db: Session, user: User, kind: ResourceKind, row: Any) -> Optional[Access]:
    if kind == "property":
        return access_to_property(db, user, row)
    if kind == "project":
        return access_to_project(db, user, row)
    if kind in ("schedule", "insurance_item"):
        return access_to_property(db, user, row.owning_property, resource=row)
    if kind == "task":
        return access_to_task(db, user, row)
    if kind == "document":
        return access_to_document(db, user, row)
    raise ValueError(f"unknown resource kind: {kind}")


def resolve_access(db: Session, user: User, kind: ResourceKind, resource_id: str) -> Access:
    row = _load(db, kind, resource_id)
    if row is None:
        raise NotFoundError(_NOT_FOUND[kind])

    found = check_access(db, user, kind, row)
    if found is None:
        # insurance items never confirm existence to outsiders
        if kind == "insurance_item":
            raise NotFoundError(_NOT_FOUND[kind])
        raise AuthorizationError(_DENIED[kind])
    return found
