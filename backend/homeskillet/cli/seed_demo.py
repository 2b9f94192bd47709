# backend/homeskillet/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from homeskillet.db import SessionLocal
from homeskillet.models import MaintenanceSchedule, Project, ProjectTask, Property, PropertyPermission, User
from homeskillet.services.auth_service import hash_password
from homeskillet.services.recurrence import calculate_next_due_date


@dataclass(frozen=True)
class SeedResult:
    owner_email: str
    viewer_email: str
    property_id: str
    project_id: Optional[str]
    schedule_id: Optional[str]


def _get_or_create_user(db: Session, email: str, first: str, last: str, password: str, user_type: str) -> User:
    row = db.scalar(select(User).where(User.email == email.lower()))
    if row:
        return row
    row = User(
        email=email.lower(),
        password_hash=hash_password(password),
        first_name=first,
        last_name=last,
        user_type=user_type,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _ensure_grant(db: Session, *, user_id: str, property_id: str, granted_by: str, role: str = "viewer") -> None:
    existing = db.scalar(
        select(PropertyPermission).where(
            PropertyPermission.user_id == user_id, PropertyPermission.property_id == property_id
        )
    )
    if existing:
        return
    db.add(PropertyPermission(user_id=user_id, property_id=property_id, role=role, granted_by=granted_by))
    db.commit()


def seed_demo(
    *,
    owner_email: str = "owner@demo.local",
    viewer_email: str = "viewer@demo.local",
    password: str = "demo-password-1",
    with_work: bool = True,
) -> SeedResult:
    db = SessionLocal()
    try:
        owner = _get_or_create_user(db, owner_email, "Demo", "Owner", password, "property_owner")
        viewer = _get_or_create_user(db, viewer_email, "Demo", "Viewer", password, "family_member")

        prop = db.scalar(select(Property).where(Property.owner_id == owner.id).limit(1))
        if not prop:
            prop = Property(
                owner_id=owner.id,
                name="Maple Street House",
                address="55 Maple St, Ann Arbor, MI 48104",
                type="single_family",
                bedrooms=3,
                bathrooms=1.5,
                square_feet=1400,
                year_built=1962,
            )
            db.add(prop)
            db.commit()
            db.refresh(prop)

        _ensure_grant(db, user_id=viewer.id, property_id=prop.id, granted_by=owner.id)

        project_id: Optional[str] = None
        schedule_id: Optional[str] = None
        if with_work:
            project = db.scalar(select(Project).where(Project.property_id == prop.id).limit(1))
            if not project:
                project = Project(
                    property_id=prop.id,
                    title="Kitchen refresh",
                    category="interior",
                    status="in_progress",
                    priority="high",
                    budget=8000.0,
                    due_date=date.today() + timedelta(days=45),
                    created_by=owner.id,
                )
                for idx, title in enumerate(("Remove old cabinets", "Patch drywall", "Install new cabinets")):
                    project.tasks.append(ProjectTask(title=title, sort_order=idx))
                db.add(project)
                db.commit()
                db.refresh(project)
            project_id = project.id

            schedule = db.scalar(select(MaintenanceSchedule).where(MaintenanceSchedule.property_id == prop.id).limit(1))
            if not schedule:
                schedule = MaintenanceSchedule(
                    property_id=prop.id,
                    title="Replace HVAC filter",
                    category="hvac",
                    frequency="monthly",
                    next_due_date=calculate_next_due_date("monthly"),
                    created_by=owner.id,
                )
                db.add(schedule)
                db.commit()
                db.refresh(schedule)
            schedule_id = schedule.id

        return SeedResult(
            owner_email=owner.email,
            viewer_email=viewer.email,
            property_id=prop.id,
            project_id=project_id,
            schedule_id=schedule_id,
        )
    finally:
        db.close()
