# backend/homeskillet/services/task_state.py
"""
Task status, dependencies and time tracking.

Rules:
  - entering in_progress requires every prerequisite task to be completed
  - progress_percentage is clamped to [0, 100]
  - completed forces progress 100 and stamps completed_at
  - every status change appends a `status_update` TaskComment in the same commit
  - a user has at most one running timer, across all tasks (partial unique index)

Backward transitions (completed -> pending, etc.) are allowed. Cycle detection on
new dependencies only looks at the direct reverse edge.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.vocab import DEPENDENCY_TYPES, TASK_DONE, TASK_STARTED, TASK_STATUSES
from ..models import ProjectTask, TaskComment, TaskDependency, TaskTimeTracking, User
from .coerce import dumps, parse_date, parse_float, parse_int
from .access import access_to_task

log = logging.getLogger(__name__)


class TaskRuleError(ValueError):
    """A task rule refused the change. The message is safe to show to the caller."""


class DuplicateDependencyError(TaskRuleError):
    pass


class NoActiveSessionError(LookupError):
    pass


class BulkTaskError(ValueError):
    def __init__(self, message: str, *, status: int):
        super().__init__(message)
        self.status = status


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clamp_progress(value: Any) -> int:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise TaskRuleError("progress_percentage must be a number")
    return int(max(0, min(100, round(pct))))


# -------------------------
# Status
# -------------------------
def incomplete_prerequisites(db: Session, task_id: str) -> list[ProjectTask]:
    return list(
        db.scalars(
            select(ProjectTask)
            .join(TaskDependency, TaskDependency.depends_on_task_id == ProjectTask.id)
            .where(TaskDependency.task_id == task_id, ProjectTask.status != TASK_DONE)
            .order_by(TaskDependency.created_at)
        ).all()
    )


def _apply_status(
    db: Session,
    task: ProjectTask,
    user: User,
    *,
    status: str,
    progress_percentage: Any = None,
    notes: Optional[str] = None,
) -> None:
    if status not in TASK_STATUSES:
        raise TaskRuleError(f"Invalid status: {status}")

    if status == TASK_STARTED:
        blockers = incomplete_prerequisites(db, task.id)
        if blockers:
            raise TaskRuleError(f"Cannot start task due to incomplete dependency: {blockers[0].title}")

    old_status = task.status
    now = _now()

    task.status = status
    task.status_updated_at = now
    if progress_percentage is not None:
        task.progress_percentage = clamp_progress(progress_percentage)
    if status == TASK_DONE:
        task.progress_percentage = 100
        task.completed_at = now
    if notes:
        task.notes = notes
    db.add(task)

    db.add(
        TaskComment(
            task_id=task.id,
            user_id=user.id,
            content=notes or f"Status changed to {status}",
            type="status_update",
            metadata_json=dumps(
                {"old_status": old_status, "new_status": status, "progress_percentage": task.progress_percentage}
            ),
            created_at=now,
        )
    )


def set_status(
    db: Session,
    task: ProjectTask,
    user: User,
    *,
    status: str,
    progress_percentage: Any = None,
    notes: Optional[str] = None,
) -> ProjectTask:
    old_status = task.status
    _apply_status(db, task, user, status=status, progress_percentage=progress_percentage, notes=notes)
    db.commit()
    db.refresh(task)
    log.info("task status %s -> %s", old_status, task.status, extra={"task_id": task.id, "user_id": user.id})
    return task


# -------------------------
# Dependencies
# -------------------------
def add_dependency(
    db: Session,
    task: ProjectTask,
    depends_on: ProjectTask,
    *,
    dependency_type: Optional[str] = None,
) -> TaskDependency:
    if task.id == depends_on.id:
        raise TaskRuleError("A task cannot depend on itself")

    dtype = dependency_type or "finish_to_start"
    if dtype not in DEPENDENCY_TYPES:
        raise TaskRuleError(f"Invalid dependency_type: {dtype}")

    reverse = db.scalar(
        select(TaskDependency).where(TaskDependency.task_id == depends_on.id, TaskDependency.depends_on_task_id == task.id)
    )
    if reverse is not None:
        raise TaskRuleError("Circular dependency detected")

    existing = db.scalar(
        select(TaskDependency).where(TaskDependency.task_id == task.id, TaskDependency.depends_on_task_id == depends_on.id)
    )
    if existing is not None:
        raise DuplicateDependencyError("Dependency already exists")

    row = TaskDependency(task_id=task.id, depends_on_task_id=depends_on.id, dependency_type=dtype)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


# -------------------------
# Time tracking
# -------------------------
def active_session(db: Session, *, user_id: str, task_id: Optional[str] = None) -> TaskTimeTracking | None:
    stmt = select(TaskTimeTracking).where(TaskTimeTracking.user_id == user_id, TaskTimeTracking.is_active.is_(True))
    if task_id is not None:
        stmt = stmt.where(TaskTimeTracking.task_id == task_id)
    return db.scalar(stmt)


def start_timer(db: Session, task: ProjectTask, user: User, *, description: Optional[str] = None) -> TaskTimeTracking:
    msg = "You already have an active time tracking session. Please stop it first."
    if active_session(db, user_id=user.id) is not None:
        raise TaskRuleError(msg)

    row = TaskTimeTracking(task_id=task.id, user_id=user.id, started_at=_now(), description=description, is_active=True)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # lost the race against a concurrent start for the same user
        db.rollback()
        raise TaskRuleError(msg)
    db.refresh(row)
    return row


def stop_timer(db: Session, task: ProjectTask, user: User, *, description: Optional[str] = None) -> TaskTimeTracking:
    row = active_session(db, user_id=user.id, task_id=task.id)
    if row is None:
        raise NoActiveSessionError("No active time tracking session found")

    ended = _now()
    row.ended_at = ended
    row.duration_minutes = int(math.floor((ended - row.started_at).total_seconds() / 60))
    row.is_active = False
    if description:
        row.description = description
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@dataclass(frozen=True)
class TimeSummary:
    total_hours: float
    estimated_hours: float
    sessions: list[TaskTimeTracking]


def time_summary(db: Session, task: ProjectTask) -> TimeSummary:
    sessions = list(
        db.scalars(
            select(TaskTimeTracking).where(TaskTimeTracking.task_id == task.id).order_by(TaskTimeTracking.started_at.desc())
        ).all()
    )
    minutes = sum(int(s.duration_minutes or 0) for s in sessions if not s.is_active)
    return TimeSummary(
        total_hours=round(minutes / 60, 2),
        estimated_hours=float(task.estimated_hours or 0),
        sessions=sessions,
    )


# -------------------------
# Bulk operations
# -------------------------
BULK_UPDATABLE = (
    "status",
    "priority",
    "assigned_to",
    "due_date",
    "estimated_hours",
    "actual_hours",
    "cost",
    "sort_order",
    "progress_percentage",
    "notes",
)


def load_bulk_tasks(db: Session, user: User, task_ids: Iterable[Any]) -> list[ProjectTask]:
    """
    All-or-nothing gate for bulk operations: every id must exist and the caller
    must have access to every task, otherwise nothing is touched.
    """
    ids = list(dict.fromkeys(str(x) for x in task_ids))
    tasks = list(db.scalars(select(ProjectTask).where(ProjectTask.id.in_(ids))).all())
    if len(tasks) != len(ids):
        raise BulkTaskError("Some tasks not found", status=404)
    for t in tasks:
        if access_to_task(db, user, t) is None:
            raise BulkTaskError("Access denied to some tasks", status=403)
    return tasks


def bulk_update(db: Session, user: User, tasks: list[ProjectTask], updates: dict[str, Any]) -> int:
    unknown = sorted(k for k in updates if k not in BULK_UPDATABLE)
    if unknown:
        raise TaskRuleError(f"Unknown update fields: {', '.join(unknown)}")

    plain: dict[str, Any] = {}
    if "priority" in updates:
        plain["priority"] = str(updates["priority"])
    if "assigned_to" in updates:
        plain["assigned_to"] = updates["assigned_to"] or None
    if "due_date" in updates:
        plain["due_date"] = parse_date(updates["due_date"], "due_date")
    for k in ("estimated_hours", "actual_hours", "cost"):
        if k in updates:
            plain[k] = parse_float(updates[k], k)
    if "sort_order" in updates:
        plain["sort_order"] = parse_int(updates["sort_order"], "sort_order") or 0
    if "notes" in updates:
        plain["notes"] = updates["notes"]

    for t in tasks:
        for k, v in plain.items():
            setattr(t, k, v)
        if "status" in updates and updates["status"] != t.status:
            _apply_status(db, t, user, status=str(updates["status"]), progress_percentage=updates.get("progress_percentage"))
        else:
            if "progress_percentage" in updates and updates["progress_percentage"] is not None:
                t.progress_percentage = clamp_progress(updates["progress_percentage"])
            if t.status == TASK_DONE:
                t.progress_percentage = 100
        db.add(t)

    db.commit()
    return len(tasks)


def bulk_delete(db: Session, tasks: list[ProjectTask]) -> int:
    for t in tasks:
        db.delete(t)
    db.commit()
    return len(tasks)
