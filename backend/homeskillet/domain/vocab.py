# backend/homeskillet/domain/vocab.py
"""
Closed vocabularies.

Each Literal alias is the type; the tuple next to it is the allow-list used by
request validation and by the state logic. Both come from the same definition.
"""
from __future__ import annotations

from typing import Literal, get_args

UserType = Literal["property_owner", "family_member", "contractor", "tenant", "realtor"]
USER_TYPES: tuple[str, ...] = get_args(UserType)

PropertyRole = Literal["viewer", "editor", "admin", "contractor", "tenant", "manager"]
PROPERTY_ROLES: tuple[str, ...] = get_args(PropertyRole)

AssignmentRole = Literal["assignee", "contractor", "supervisor"]
ASSIGNMENT_ROLES: tuple[str, ...] = get_args(AssignmentRole)

PropertyType = Literal["single_family", "condo", "townhouse", "multi_family", "apartment", "mobile_home", "land", "other"]
PROPERTY_TYPES: tuple[str, ...] = get_args(PropertyType)

ProjectStatus = Literal["pending", "not_started", "in_progress", "completed", "on_hold", "cancelled"]
PROJECT_STATUSES: tuple[str, ...] = get_args(ProjectStatus)

Priority = Literal["low", "medium", "high", "urgent"]
PRIORITIES: tuple[str, ...] = get_args(Priority)

TaskStatus = Literal["pending", "in_progress", "completed", "on_hold", "cancelled"]
TASK_STATUSES: tuple[str, ...] = get_args(TaskStatus)
TASK_DONE: TaskStatus = "completed"
TASK_STARTED: TaskStatus = "in_progress"

CommentType = Literal["comment", "status_update"]
COMMENT_TYPES: tuple[str, ...] = get_args(CommentType)

DependencyType = Literal["finish_to_start", "start_to_start", "finish_to_finish", "start_to_finish"]
DEPENDENCY_TYPES: tuple[str, ...] = get_args(DependencyType)

Frequency = Literal["daily", "weekly", "biweekly", "monthly", "quarterly", "biannual", "yearly", "seasonal", "as_needed"]
FREQUENCIES: tuple[str, ...] = get_args(Frequency)

MaintenanceRecordStatus = Literal["completed", "partial", "skipped"]
MAINTENANCE_RECORD_STATUSES: tuple[str, ...] = get_args(MaintenanceRecordStatus)

RecordStatus = Literal["active", "deleted"]
RECORD_STATUSES: tuple[str, ...] = get_args(RecordStatus)

DocumentType = Literal[
    "receipt",
    "invoice",
    "warranty",
    "manual",
    "contract",
    "permit",
    "insurance",
    "inspection",
    "estimate",
    "photo",
    "other",
]
DOCUMENT_TYPES: tuple[str, ...] = get_args(DocumentType)

DocumentAction = Literal["view", "download", "edit", "delete", "upload"]
DOCUMENT_ACTIONS: tuple[str, ...] = get_args(DocumentAction)

InsuranceCategory = Literal[
    "electronics",
    "furniture",
    "appliances",
    "jewelry",
    "art",
    "collectibles",
    "clothing",
    "tools",
    "sports_equipment",
    "musical_instruments",
    "kitchenware",
    "books_media",
    "other",
]
INSURANCE_CATEGORIES: tuple[str, ...] = get_args(InsuranceCategory)

ItemCondition = Literal["excellent", "good", "fair", "poor", "damaged"]
ITEM_CONDITIONS: tuple[str, ...] = get_args(ItemCondition)

PhotoType = Literal["overview", "detail", "serial_number", "receipt", "damage", "label", "other"]
PHOTO_TYPES: tuple[str, ...] = get_args(PhotoType)

DocumentRelationship = Literal["receipt", "warranty", "manual", "appraisal", "insurance", "other"]
DOCUMENT_RELATIONSHIPS: tuple[str, ...] = get_args(DocumentRelationship)

ProjectCategory = Literal["plumbing", "electrical", "hvac", "interior", "exterior", "cosmetic", "landscaping", "other"]
PROJECT_CATEGORIES: tuple[str, ...] = get_args(ProjectCategory)

MaintenanceCategory = Literal[
    "hvac",
    "plumbing",
    "electrical",
    "exterior",
    "interior",
    "appliances",
    "safety",
    "landscaping",
    "other",
]
MAINTENANCE_CATEGORIES: tuple[str, ...] = get_args(MaintenanceCategory)

ValuationType = Literal["professional", "insurance", "market_estimate", "depreciation_calc", "self_estimate"]
VALUATION_TYPES: tuple[str, ...] = get_args(ValuationType)
