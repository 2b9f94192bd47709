# backend/homeskillet/routers/tasks.py
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db import get_db
from ..domain.vocab import COMMENT_TYPES, PRIORITIES, TASK_DONE, TASK_STATUSES
from ..errors import ApiError, AuthorizationError, ConflictError, NotFoundError, ValidationFailed, field_error, ok
from ..models import ProjectTask, TaskComment, TaskDependency, User, _now
from ..services.access import resolve_access
from ..services.coerce import dumps, one_of, parse_date, parse_float, parse_int
from ..services.task_state import (
    BulkTaskError,
    DuplicateDependencyError,
    NoActiveSessionError,
    TaskRuleError,
    add_dependency,
    bulk_delete,
    bulk_update,
    load_bulk_tasks,
    set_status,
    start_timer,
    stop_timer,
    time_summary,
)
from ..views import comment_view, dependency_view, session_view, task_view

log = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _bulk_error(e: BulkTaskError) -> ApiError:
    if e.status == 404:
        return NotFoundError(str(e))
    if e.status == 403:
        return AuthorizationError(str(e))
    return ValidationFailed(str(e))


def _task_ids(payload: dict[str, Any]) -> list[Any]:
    ids = payload.get("task_ids")
    if not isinstance(ids, list) or not ids:
        raise ValidationFailed("task_ids array is required")
    return ids


# -------------------- bulk (declared before /{task_id}) --------------------

@router.put("/bulk-update")
def bulk_update_tasks(
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ids = _task_ids(payload)
    updates = payload.get("updates")
    if not isinstance(updates, dict) or not updates:
        raise ValidationFailed("updates object is required")

    try:
        tasks = load_bulk_tasks(db, user, ids)
        count = bulk_update(db, user, tasks, updates)
    except BulkTaskError as e:
        raise _bulk_error(e)
    except TaskRuleError as e:
        db.rollback()
        raise ValidationFailed(str(e))
    except Exception:
        db.rollback()
        raise

    log.info("bulk task update count=%d", count, extra={"user_id": user.id})
    return ok({"updated_count": count})


@router.delete("/bulk-delete")
def bulk_delete_tasks(
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ids = _task_ids(payload)
    try:
        tasks = load_bulk_tasks(db, user, ids)
    except BulkTaskError as e:
        raise _bulk_error(e)

    count = bulk_delete(db, tasks)
    log.info("bulk task delete count=%d", count, extra={"user_id": user.id})
    return ok({"deleted_count": count})


# -------------------- project task list --------------------

@router.get("/projects/{project_id}/tasks")
def list_project_tasks(project_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "project", project_id)
    return ok([task_view(t) for t in access.resource.tasks])


@router.post("/projects/{project_id}/tasks", status_code=201)
def create_task(
    project_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "project", project_id)
    if not (access.is_owner or access.permissions.edit_projects or access.via == "assignment"):
        raise AuthorizationError("Permission denied to add tasks to this project")

    title = str(payload.get("title") or "").strip()
    if not title:
        raise field_error("title", "title is required")
    if len(title) > 200:
        raise field_error("title", "title must be at most 200 characters")

    status = one_of(payload.get("status") or "pending", TASK_STATUSES, "status")
    priority = one_of(payload.get("priority") or "medium", PRIORITIES, "priority")

    assigned_to = payload.get("assigned_to") or None
    if assigned_to and db.get(User, assigned_to) is None:
        raise field_error("assigned_to", f"Unknown user: {assigned_to}")

    sort_order = parse_int(payload.get("sort_order"), "sort_order")
    if sort_order is None:
        # append after the current last task
        current = db.scalar(select(func.max(ProjectTask.sort_order)).where(ProjectTask.project_id == project_id))
        sort_order = 0 if current is None else int(current) + 1

    task = ProjectTask(
        project_id=project_id,
        title=title,
        description=payload.get("description"),
        status=status,
        priority=priority,
        assigned_to=assigned_to,
        due_date=parse_date(payload.get("due_date"), "due_date"),
        estimated_hours=parse_float(payload.get("estimated_hours"), "estimated_hours"),
        cost=parse_float(payload.get("cost"), "cost"),
        sort_order=sort_order,
        progress_percentage=100 if status == TASK_DONE else 0,
        completed_at=_now() if status == TASK_DONE else None,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    log.info("task created", extra={"user_id": user.id, "project_id": project_id, "task_id": task.id})
    return ok(task_view(task))


# -------------------- status --------------------

@router.put("/{task_id}/status")
def update_status(
    task_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "task", task_id)
    status = payload.get("status")
    if not status:
        raise ValidationFailed("Status is required")

    try:
        task = set_status(
            db,
            access.resource,
            user,
            status=str(status),
            progress_percentage=payload.get("progress_percentage"),
            notes=payload.get("notes"),
        )
    except TaskRuleError as e:
        db.rollback()
        raise ValidationFailed(str(e))
    return ok(task_view(task))


# -------------------- time tracking --------------------

@router.post("/{task_id}/time-tracking/start")
def start_time_tracking(
    task_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "task", task_id)
    try:
        row = start_timer(db, access.resource, user, description=payload.get("description"))
    except TaskRuleError as e:
        raise ValidationFailed(str(e))
    log.info("time tracking started", extra={"user_id": user.id, "task_id": task_id})
    return ok(session_view(row))


@router.post("/{task_id}/time-tracking/stop")
def stop_time_tracking(
    task_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "task", task_id)
    try:
        row = stop_timer(db, access.resource, user, description=payload.get("description"))
    except NoActiveSessionError as e:
        raise NotFoundError(str(e))
    log.info("time tracking stopped minutes=%s", row.duration_minutes, extra={"user_id": user.id, "task_id": task_id})
    return ok(session_view(row))


@router.get("/{task_id}/time-tracking")
def get_time_tracking(task_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    access = resolve_access(db, user, "task", task_id)
    summary = time_summary(db, access.resource)
    return ok(
        {
            "total_hours": summary.total_hours,
            "estimated_hours": summary.estimated_hours,
            "sessions": [session_view(s) for s in summary.sessions],
        }
    )


# -------------------- comments --------------------

@router.post("/{task_id}/comments", status_code=201)
def add_comment(
    task_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resolve_access(db, user, "task", task_id)
    content = str(payload.get("content") or "").strip()
    if not content:
        raise ValidationFailed("Comment content is required")
    ctype = one_of(payload.get("type") or "comment", COMMENT_TYPES, "type")

    metadata = payload.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise field_error("metadata", "metadata must be an object")

    row = TaskComment(task_id=task_id, user_id=user.id, content=content, type=ctype, metadata_json=dumps(metadata))
    db.add(row)
    db.commit()
    db.refresh(row)
    return ok(comment_view(row))


@router.get("/{task_id}/comments")
def list_comments(task_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolve_access(db, user, "task", task_id)
    rows = db.scalars(
        select(TaskComment).where(TaskComment.task_id == task_id).order_by(TaskComment.created_at.desc())
    ).all()
    return ok([comment_view(c) for c in rows])


# -------------------- dependencies --------------------

@router.post("/{task_id}/dependencies", status_code=201)
def create_dependency(
    task_id: str,
    payload: dict[str, Any] = Body(default_factory=dict),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    access = resolve_access(db, user, "task", task_id)
    depends_on_id = payload.get("depends_on_task_id")
    if not depends_on_id:
        raise ValidationFailed("depends_on_task_id is required")

    depends_on = db.get(ProjectTask, str(depends_on_id))
    if depends_on is None:
        raise NotFoundError("Dependency task not found")
    if depends_on.project_id != access.resource.project_id:
        raise ValidationFailed("Dependent tasks must belong to the same project")

    try:
        row = add_dependency(db, access.resource, depends_on, dependency_type=payload.get("dependency_type"))
    except DuplicateDependencyError as e:
        raise ConflictError(str(e))
    except TaskRuleError as e:
        raise ValidationFailed(str(e))
    return ok(dependency_view(row))


@router.get("/{task_id}/dependencies")
def list_dependencies(task_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    resolve_access(db, user, "task", task_id)
    deps = db.scalars(
        select(TaskDependency).where(TaskDependency.task_id == task_id).order_by(TaskDependency.created_at)
    ).all()
    dependents = db.scalars(
        select(TaskDependency).where(TaskDependency.depends_on_task_id == task_id).order_by(TaskDependency.created_at)
    ).all()

    def with_title(d: TaskDependency, other_id: str) -> dict[str, Any]:
        other: Optional[ProjectTask] = db.get(ProjectTask, other_id)
        out = dependency_view(d)
        out["task_title"] = other.title if other is not None else None
        out["task_status"] = other.status if other is not None else None
        return out

    return ok(
        {
            "dependencies": [with_title(d, d.depends_on_task_id) for d in deps],
            "dependents": [with_title(d, d.task_id) for d in dependents],
        }
    )


@router.delete("/{task_id}/dependencies/{dependency_id}")
def delete_dependency(
    task_id: str,
    dependency_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    resolve_access(db, user, "task", task_id)
    row = db.get(TaskDependency, dependency_id)
    if row is None or row.task_id != task_id:
        raise NotFoundError("Dependency not found")

    db.delete(row)
    db.commit()
    return ok({"message": "Dependency removed successfully"})
