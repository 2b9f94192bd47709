# backend/homeskillet/schemas.py
from __future__ import annotations

import re
from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain.vocab import (
    AssignmentRole,
    Frequency,
    MaintenanceCategory,
    MaintenanceRecordStatus,
    Priority,
    ProjectCategory,
    ProjectStatus,
    PropertyRole,
    PropertyType,
    TaskStatus,
    UserType,
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


class CamelModel(BaseModel):
    """Accepts camelCase (wire) or snake_case (python) field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _AtLeastOne(CamelModel):
    @model_validator(mode="after")
    def require_some_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


def _check_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not _EMAIL_RE.match(v):
        raise ValueError("Please provide a valid email address")
    return v


def _check_password(v: str) -> str:
    if not _PASSWORD_RE.match(v or ""):
        raise ValueError(
            "Password must be at least 8 characters and contain an uppercase letter, "
            "a lowercase letter, a number and a special character (@$!%*?&)"
        )
    return v


# -------------------- Auth / users --------------------

class RegisterIn(CamelModel):
    email: str
    password: str
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    user_type: UserType = "property_owner"

    normalize_email = field_validator("email")(_check_email)
    strong_password = field_validator("password")(_check_password)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class LoginIn(CamelModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return (v or "").strip().lower()


class MeUpdateIn(_AtLeastOne):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_email(v)


class UserUpdateIn(_AtLeastOne):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    user_type: Optional[UserType] = None


class ForgotPasswordIn(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return (v or "").strip().lower()


class ResetPasswordIn(CamelModel):
    token: str = Field(min_length=1)
    password: str

    strong_password = field_validator("password")(_check_password)


class PermissionGrantIn(CamelModel):
    user_id: str
    role: PropertyRole = "viewer"


class PermissionUpdateIn(CamelModel):
    role: PropertyRole


# -------------------- Properties --------------------

class PropertyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    address: Optional[str] = None
    type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    square_feet: Optional[int] = Field(default=None, gt=0)
    lot_size: Optional[float] = Field(default=None, ge=0)
    year_built: Optional[int] = Field(default=None, ge=1800, le=2100)


class PropertyUpdate(_AtLeastOne):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    address: Optional[str] = None
    type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[float] = Field(default=None, ge=0)
    square_feet: Optional[int] = Field(default=None, gt=0)
    lot_size: Optional[float] = Field(default=None, ge=0)
    year_built: Optional[int] = Field(default=None, ge=1800, le=2100)


# -------------------- Projects --------------------

class ProjectTaskIn(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)
    status: TaskStatus = "pending"
    priority: Priority = "medium"
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    cost: Optional[float] = Field(default=None, ge=0)
    sort_order: Optional[int] = None


class ProjectCreate(CamelModel):
    property_id: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[ProjectCategory] = None
    status: ProjectStatus = "pending"
    priority: Priority = "medium"
    budget: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    tasks: List[ProjectTaskIn] = Field(default_factory=list)


class ProjectUpdate(_AtLeastOne):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[ProjectCategory] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    budget: Optional[float] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    due_date: Optional[date] = None
    tasks: Optional[List[ProjectTaskIn]] = None


class AssignIn(CamelModel):
    user_id: str
    role: AssignmentRole = "assignee"


# -------------------- Maintenance --------------------

class ScheduleCreate(CamelModel):
    property_id: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[MaintenanceCategory] = None
    frequency: Frequency
    frequency_value: int = Field(default=1, ge=1)
    priority: Priority = "medium"
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    instructions: Optional[str] = Field(default=None, max_length=2000)
    next_due_date: Optional[date] = None
    is_active: bool = True
    assigned_to: Optional[str] = None


class ScheduleUpdate(_AtLeastOne):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[MaintenanceCategory] = None
    frequency: Optional[Frequency] = None
    frequency_value: Optional[int] = Field(default=None, ge=1)
    priority: Optional[Priority] = None
    estimated_duration: Optional[int] = Field(default=None, gt=0)
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    instructions: Optional[str] = Field(default=None, max_length=2000)
    next_due_date: Optional[date] = None
    is_active: Optional[bool] = None
    assigned_to: Optional[str] = None


class CompleteIn(CamelModel):
    completed_date: date
    notes: Optional[str] = Field(default=None, max_length=1000)
    actual_duration: Optional[int] = Field(default=None, gt=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    status: MaintenanceRecordStatus = "completed"
    next_due_date: Optional[date] = None
