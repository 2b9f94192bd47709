# backend/homeskillet/services/report_rollups.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from ..models import Project, ProjectTask, Property, TaskTimeTracking, User, _now


@dataclass(frozen=True)
class DashboardRollup:
    properties: dict[str, Any]
    projects: dict[str, Any]
    tasks: dict[str, Any]
    summary: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {"properties": self.properties, "projects": self.projects, "tasks": self.tasks, "summary": self.summary}


def _counts_by(db: Session, col, *where) -> dict[str, int]:
    rows = db.execute(select(col, func.count()).where(*where).group_by(col)).all()
    return {str(k): int(n) for k, n in rows if k is not None}


def _sum(db: Session, col, *where) -> float:
    return float(db.scalar(select(func.coalesce(func.sum(col), 0.0)).where(*where)) or 0.0)


def _average_age(years: list[int]) -> int:
    valid = [y for y in years if y and y > 1800]
    if not valid:
        return 0
    this_year = date.today().year
    return round(sum(this_year - y for y in valid) / len(valid))


def _average_completion_days(pairs: list[tuple[Any, Any]]) -> int:
    spans = [(done - created).total_seconds() / 86400.0 for created, done in pairs if created and done]
    return round(sum(spans) / len(spans)) if spans else 0


def empty_dashboard() -> DashboardRollup:
    return DashboardRollup(
        properties={"total": 0, "byType": {}, "averageAge": 0, "withActiveProjects": 0},
        projects={
            "total": 0,
            "byStatus": {},
            "byPriority": {},
            "overdue": 0,
            "budget": {"total": 0, "actual": 0, "variance": 0},
        },
        tasks={"total": 0, "byStatus": {}, "completionRate": 0, "averageCompletionDays": 0},
        summary={"totalBudget": 0, "totalSpent": 0, "savings": 0, "activeProjects": 0, "completedTasks": 0},
    )


def compute_dashboard(db: Session, property_ids: list[str]) -> DashboardRollup:
    """Counts and budget totals across the given properties."""
    if not property_ids:
        return empty_dashboard()

    in_props = Property.id.in_(property_ids)
    project_in_props = Project.property_id.in_(property_ids)
    task_in_props = ProjectTask.project_id.in_(select(Project.id).where(project_in_props))

    # properties
    total_props = int(db.scalar(select(func.count()).select_from(Property).where(in_props)) or 0)
    years = list(db.scalars(select(Property.year_built).where(in_props, Property.year_built.is_not(None))).all())
    with_active = int(
        db.scalar(
            select(func.count(func.distinct(Project.property_id))).where(project_in_props, Project.status == "in_progress")
        )
        or 0
    )

    # projects
    total_projects = int(db.scalar(select(func.count()).select_from(Project).where(project_in_props)) or 0)
    by_status = _counts_by(db, Project.status, project_in_props)
    by_priority = _counts_by(db, Project.priority, project_in_props)
    overdue = int(
        db.scalar(
            select(func.count())
            .select_from(Project)
            .where(project_in_props, Project.due_date < date.today(), Project.status != "completed")
        )
        or 0
    )
    total_budget = _sum(db, Project.budget, project_in_props)
    total_actual = _sum(db, Project.actual_cost, project_in_props)
    variance = total_budget - total_actual

    # tasks
    total_tasks = int(db.scalar(select(func.count()).select_from(ProjectTask).where(task_in_props)) or 0)
    task_status = _counts_by(db, ProjectTask.status, task_in_props)
    completed = task_status.get("completed", 0)
    durations = db.execute(
        select(ProjectTask.created_at, ProjectTask.completed_at).where(
            task_in_props, ProjectTask.status == "completed", ProjectTask.completed_at.is_not(None)
        )
    ).all()

    return DashboardRollup(
        properties={
            "total": total_props,
            "byType": _counts_by(db, Property.type, in_props),
            "averageAge": _average_age(years),
            "withActiveProjects": with_active,
        },
        projects={
            "total": total_projects,
            "byStatus": by_status,
            "byPriority": by_priority,
            "overdue": overdue,
            "budget": {"total": total_budget, "actual": total_actual, "variance": variance},
        },
        tasks={
            "total": total_tasks,
            "byStatus": task_status,
            "completionRate": round(completed / total_tasks * 100) if total_tasks else 0,
            "averageCompletionDays": _average_completion_days([(c, d) for c, d in durations]),
        },
        summary={
            "totalBudget": total_budget,
            "totalSpent": total_actual,
            "savings": variance if variance > 0 else 0,
            "activeProjects": by_status.get("in_progress", 0),
            "completedTasks": completed,
        },
    )


def property_details(db: Session, prop: Property) -> dict[str, Any]:
    """Per-project progress, budget, tracked time and the last 30 days of task activity."""
    project_ids = select(Project.id).where(Project.property_id == prop.id)

    progress_rows = db.execute(
        select(
            Project.id,
            Project.title,
            Project.status,
            func.count(ProjectTask.id),
            func.coalesce(func.sum(case((ProjectTask.status == "completed", 1), else_=0)), 0),
        )
        .outerjoin(ProjectTask, ProjectTask.project_id == Project.id)
        .where(Project.property_id == prop.id)
        .group_by(Project.id, Project.title, Project.status)
        .order_by(Project.created_at)
    ).all()
    projects = [
        {
            "id": pid,
            "title": title,
            "projectStatus": status,
            "taskCount": int(n),
            "completedTasks": int(done),
            "completionRate": round(int(done) / int(n) * 100) if n else 0,
        }
        for pid, title, status, n, done in progress_rows
    ]

    budget_row = db.execute(
        select(
            func.coalesce(func.sum(Project.budget), 0.0),
            func.coalesce(func.sum(Project.actual_cost), 0.0),
            func.coalesce(func.avg(Project.budget), 0.0),
        ).where(Project.property_id == prop.id)
    ).one()
    budgeted, spent, avg_budget = (float(x or 0.0) for x in budget_row)

    time_row = db.execute(
        select(
            func.coalesce(func.sum(TaskTimeTracking.duration_minutes), 0),
            func.count(TaskTimeTracking.id),
            func.coalesce(func.avg(TaskTimeTracking.duration_minutes), 0.0),
        )
        .join(ProjectTask, ProjectTask.id == TaskTimeTracking.task_id)
        .where(ProjectTask.project_id.in_(project_ids), TaskTimeTracking.is_active.is_(False))
    ).one()
    total_minutes, sessions, avg_minutes = int(time_row[0] or 0), int(time_row[1] or 0), float(time_row[2] or 0.0)
    total_hours = round(total_minutes / 60.0, 2)

    since = _now() - timedelta(days=30)
    recent = db.execute(
        select(ProjectTask, Project.title, User)
        .join(Project, Project.id == ProjectTask.project_id)
        .outerjoin(User, User.id == ProjectTask.assigned_to)
        .where(Project.property_id == prop.id, ProjectTask.updated_at >= since)
        .order_by(ProjectTask.updated_at.desc())
        .limit(20)
    ).all()
    activity = [
        {
            "id": t.id,
            "title": t.title,
            "status": t.status,
            "updatedAt": t.updated_at.isoformat() if t.updated_at else None,
            "projectTitle": project_title,
            "assignedTo": assignee.full_name if assignee is not None else "Unassigned",
        }
        for t, project_title, assignee in recent
    ]

    return {
        "property": {"id": prop.id, "name": prop.name, "address": prop.address, "type": prop.type},
        "overview": {
            "totalProjects": len(projects),
            "totalTasks": sum(p["taskCount"] for p in projects),
            "completedTasks": sum(p["completedTasks"] for p in projects),
            "totalHoursTracked": total_hours,
        },
        "projects": projects,
        "budget": {
            "totalBudgeted": budgeted,
            "totalSpent": spent,
            "variance": budgeted - spent,
            "averageBudget": avg_budget,
        },
        "timeTracking": {
            "totalHours": total_hours,
            "sessionCount": sessions,
            "averageSessionMinutes": round(avg_minutes),
        },
        "recentActivity": activity,
    }
