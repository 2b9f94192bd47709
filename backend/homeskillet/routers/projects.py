# backend/homeskillet/routers/projects.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..errors import AuthorizationError, NotFoundError, field_error, ok
from ..models import Project, ProjectAssignment, ProjectTask, User, _now
from ..schemas import AssignIn, ProjectCreate, ProjectTaskIn, ProjectUpdate
from ..services.access import Access, accessible_property_ids, assigned_project_ids, project_assignment, resolve_access
from ..services.pagination import page_params, paginate
from ..views import assignment_view, project_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

_SORT = {
    "created_at": Project.created_at,
    "createdAt": Project.created_at,
    "updated_at": Project.updated_at,
    "updatedAt": Project.updated_at,
    "title": Project.title,
    "status": Project.status,
    "priority": Project.priority,
    "due_date": Project.due_date,
    "dueDate": Project.due_date,
    "budget": Project.budget,
}


def _check_users_exist(db: Session, user_ids: Iterable[Optional[str]], field: str) -> None:
    wanted = {u for u in user_ids if u}
    if not wanted:
        return
    found = set(db.scalars(select(User.id).where(User.id.in_(wanted))).all())
    missing = wanted - found
    if missing:
        raise field_error(field, f"Unknown user: {sorted(missing)[0]}")


def _task_rows(project_id: str, tasks: list[ProjectTaskIn]) -> list[ProjectTask]:
    rows = []
    for i, t in enumerate(tasks):
        rows.append(
            ProjectTask(
                project_id=project_id,
                title=t.title,
                description=t.description,
                status=t.status,
                priority=t.priority,
                assigned_to=t.assigned_to,
                due_date=t.due_date,
                estimated_hours=t.estimated_hours,
                cost=t.cost,
                sort_order=t.sort_order if t.sort_order is not None else i,
                progress_percentage=100 if t.status == "completed" else 0,
                completed_at=_now() if t.status == "completed" else None,
            )
        )
    return rows


def _can_edit(access: Access) -> bool:
    # assigned users may edit the project they are on
    return access.is_owner or access.permissions.edit_projects or access.via == "assignment"


@router.post("", status_code=201)
def create_project(payload: ProjectCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "property", payload.property_id)
    if not (access.is_owner or access.permissions.create_projects):
        raise AuthorizationError("Permission denied to create projects for this property")
    _check_users_exist(db, (t.assigned_to for t in payload.tasks), "tasks.assignedTo")

    data = payload.model_dump(exclude={"tasks"})
    project = Project(created_by=user.id, **data)

    # project and its initial tasks land in one commit, or not at all
    try:
        db.add(project)
        db.flush()
        for row in _task_rows(project.id, payload.tasks):
            db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)

    log.info("project created with %d tasks", len(payload.tasks), extra={"user_id": user.id, "project_id": project.id})
    return ok({"project": project_view(project)})


@router.get("")
def list_projects(
    request: Request,
    property_id: Optional[str] = Query(default=None, alias="propertyId"),
    status: Optional[str] = Query(default=None),
    priority: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    params = page_params(request.query_params, sortable=tuple(_SORT), default_sort="created_at")

    prop_ids = accessible_property_ids(db, user)
    proj_ids = assigned_project_ids(db, user)
    stmt = select(Project).where(or_(Project.property_id.in_(prop_ids), Project.id.in_(proj_ids)))
    if property_id:
        stmt = stmt.where(Project.property_id == property_id)
    if status:
        stmt = stmt.where(Project.status == status)
    if priority:
        stmt = stmt.where(Project.priority == priority)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Project.title.ilike(like), Project.description.ilike(like)))

    rows, meta = paginate(db, stmt, params, _SORT[params.sort_by])
    return ok({"projects": [project_view(p) for p in rows], "pagination": meta})


@router.get("/{project_id}")
def get_project(project_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "project", project_id)
    return ok({"project": project_view(access.resource), "permissions": access.permissions.as_dict()})


@router.put("/{project_id}")
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "project", project_id)
    if not _can_edit(access):
        raise AuthorizationError("Permission denied to edit this project")

    project: Project = access.resource
    fields = payload.model_dump(exclude_unset=True, exclude={"tasks"})
    if payload.tasks is not None:
        _check_users_exist(db, (t.assigned_to for t in payload.tasks), "tasks.assignedTo")

    try:
        for k, v in fields.items():
            setattr(project, k, v)
        if payload.tasks is not None:
            # a task list replaces the old one wholesale
            project.tasks.clear()
            db.flush()
            project.tasks.extend(_task_rows(project.id, payload.tasks))
        db.add(project)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(project)
    return ok({"project": project_view(project)})


@router.delete("/{project_id}")
def delete_project(project_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "project", project_id)
    if not (access.is_owner or access.permissions.delete_projects):
        raise AuthorizationError("Permission denied to delete this project")

    db.delete(access.resource)
    db.commit()
    log.info("project deleted", extra={"user_id": user.id, "project_id": project_id})
    return ok({"message": "Project deleted successfully"})


# -------------------- assignments --------------------

@router.post("/{project_id}/assign")
def assign_user(
    project_id: str,
    payload: AssignIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "project", project_id)
    if not (access.is_owner or access.permissions.edit_projects):
        raise AuthorizationError("Permission denied to assign users to this project")
    if db.get(User, payload.user_id) is None:
        raise NotFoundError("User not found")

    row = project_assignment(db, user_id=payload.user_id, project_id=project_id)
    if row is None:
        row = ProjectAssignment(user_id=payload.user_id, project_id=project_id, role=payload.role, assigned_by=user.id)
    else:
        row.role = payload.role
        row.assigned_by = user.id
    db.add(row)
    db.commit()
    db.refresh(row)

    return ok({"assignment": assignment_view(row), "message": "User assigned to project successfully"})


@router.delete("/{project_id}/assign/{user_id}")
def unassign_user(project_id: str, user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "project", project_id)
    if not (access.is_owner or access.permissions.edit_projects):
        raise AuthorizationError("Permission denied to unassign users from this project")

    row = project_assignment(db, user_id=user_id, project_id=project_id)
    if row is None:
        raise NotFoundError("Project assignment not found")

    db.delete(row)
    db.commit()
    return ok({"message": "User unassigned from project successfully"})


@router.get("/{project_id}/assignments")
def list_assignments(project_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolve_access(db, user, "project", project_id)
    rows = db.scalars(
        select(ProjectAssignment).where(ProjectAssignment.project_id == project_id).order_by(ProjectAssignment.created_at)
    ).all()
    return ok({"assignments": [assignment_view(a) for a in rows]})
