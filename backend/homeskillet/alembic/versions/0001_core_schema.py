"""core schema: users, properties, projects, tasks, maintenance, documents, insurance

Revision ID: 0001_core_schema
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0001_core_schema"
down_revision = None
branch_labels = None
depends_on = None


def _insp():
    return inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return name in _insp().get_table_names()


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _fk(name: str, target: str, *, ondelete: str, nullable: bool) -> sa.Column:
    return sa.Column(name, sa.String(length=36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # -------------------------
    # Users / grants
    # -------------------------
    if not _has_table("users"):
        op.create_table(
            "users",
            _id(),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("first_name", sa.String(length=50), nullable=False),
            sa.Column("last_name", sa.String(length=50), nullable=False),
            sa.Column("user_type", sa.String(length=30), nullable=False, server_default="property_owner"),
            sa.Column("reset_token_hash", sa.String(length=128), nullable=True),
            sa.Column("reset_token_expires_at", sa.DateTime(), nullable=True),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_reset_token_hash", "users", ["reset_token_hash"])

    if not _has_table("properties"):
        op.create_table(
            "properties",
            _id(),
            _fk("owner_id", "users.id", ondelete="CASCADE", nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=True),
            sa.Column("bedrooms", sa.Integer(), nullable=True),
            sa.Column("bathrooms", sa.Float(), nullable=True),
            sa.Column("square_feet", sa.Integer(), nullable=True),
            sa.Column("lot_size", sa.Float(), nullable=True),
            sa.Column("year_built", sa.Integer(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_properties_owner_id", "properties", ["owner_id"])

    if not _has_table("property_permissions"):
        op.create_table(
            "property_permissions",
            _id(),
            _fk("user_id", "users.id", ondelete="CASCADE", nullable=False),
            _fk("property_id", "properties.id", ondelete="CASCADE", nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="viewer"),
            _fk("granted_by", "users.id", ondelete="SET NULL", nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "property_id", name="uq_property_permissions_user_property"),
        )
        op.create_index("ix_property_permissions_user_id", "property_permissions", ["user_id"])
        op.create_index("ix_property_permissions_property_id", "property_permissions", ["property_id"])

    # -------------------------
    # Projects / tasks
    # -------------------------
    if not _has_table("projects"):
        op.create_table(
            "projects",
            _id(),
            _fk("property_id", "properties.id", ondelete="CASCADE", nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=30), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("budget", sa.Float(), nullable=True),
            sa.Column("actual_cost", sa.Float(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            _fk("created_by", "users.id", ondelete="SET NULL", nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_projects_property_id", "projects", ["property_id"])

    if not _has_table("project_assignments"):
        op.create_table(
            "project_assignments",
            _id(),
            _fk("user_id", "users.id", ondelete="CASCADE", nullable=False),
            _fk("project_id", "projects.id", ondelete="CASCADE", nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="assignee"),
            _fk("assigned_by", "users.id", ondelete="SET NULL", nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("user_id", "project_id", name="uq_project_assignments_user_project"),
        )
        op.create_index("ix_project_assignments_user_id", "project_assignments", ["user_id"])
        op.create_index("ix_project_assignments_project_id", "project_assignments", ["project_id"])

    if not _has_table("project_tasks"):
        op.create_table(
            "project_tasks",
            _id(),
            _fk("project_id", "projects.id", ondelete="CASCADE", nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            _fk("assigned_to", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("estimated_hours", sa.Float(), nullable=True),
            sa.Column("actual_hours", sa.Float(), nullable=True),
            sa.Column("cost", sa.Float(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("status_updated_at", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.CheckConstraint(
                "progress_percentage >= 0 AND progress_percentage <= 100", name="ck_project_tasks_progress_range"
            ),
        )
        op.create_index("ix_project_tasks_project_id", "project_tasks", ["project_id"])
        op.create_index("ix_project_tasks_assigned_to", "project_tasks", ["assigned_to"])

    if not _has_table("task_dependencies"):
        op.create_table(
            "task_dependencies",
            _id(),
            _fk("task_id", "project_tasks.id", ondelete="CASCADE", nullable=False),
            _fk("depends_on_task_id", "project_tasks.id", ondelete="CASCADE", nullable=False),
            sa.Column("dependency_type", sa.String(length=30), nullable=False, server_default="finish_to_start"),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependencies_edge"),
            sa.CheckConstraint("task_id <> depends_on_task_id", name="ck_task_dependencies_not_self"),
        )
        op.create_index("ix_task_dependencies_task_id", "task_dependencies", ["task_id"])
        op.create_index("ix_task_dependencies_depends_on_task_id", "task_dependencies", ["depends_on_task_id"])

    if not _has_table("task_time_tracking"):
        op.create_table(
            "task_time_tracking",
            _id(),
            _fk("task_id", "project_tasks.id", ondelete="CASCADE", nullable=False),
            _fk("user_id", "users.id", ondelete="CASCADE", nullable=False),
            sa.Column("started_at", sa.DateTime(), nullable=False),
            sa.Column("ended_at", sa.DateTime(), nullable=True),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            *_timestamps(),
        )
        op.create_index("ix_task_time_tracking_task_id", "task_time_tracking", ["task_id"])
        op.create_index("ix_task_time_tracking_user_id", "task_time_tracking", ["user_id"])
        # at most one running timer per user
        op.create_index(
            "uq_task_time_tracking_one_active_per_user",
            "task_time_tracking",
            ["user_id"],
            unique=True,
            sqlite_where=sa.text("is_active = 1"),
            postgresql_where=sa.text("is_active"),
        )

    if not _has_table("task_comments"):
        op.create_table(
            "task_comments",
            _id(),
            _fk("task_id", "project_tasks.id", ondelete="CASCADE", nullable=False),
            _fk("user_id", "users.id", ondelete="CASCADE", nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False, server_default="comment"),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_task_comments_task_id", "task_comments", ["task_id"])

    # -------------------------
    # Maintenance
    # -------------------------
    if not _has_table("maintenance_schedules"):
        op.create_table(
            "maintenance_schedules",
            _id(),
            _fk("property_id", "properties.id", ondelete="CASCADE", nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=30), nullable=True),
            sa.Column("frequency", sa.String(length=20), nullable=False),
            sa.Column("frequency_value", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("estimated_duration", sa.Integer(), nullable=True),
            sa.Column("estimated_cost", sa.Float(), nullable=True),
            sa.Column("instructions", sa.Text(), nullable=True),
            sa.Column("next_due_date", sa.Date(), nullable=True),
            sa.Column("last_completed_date", sa.Date(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            _fk("assigned_to", "users.id", ondelete="SET NULL", nullable=True),
            _fk("created_by", "users.id", ondelete="SET NULL", nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_maintenance_schedules_property_id", "maintenance_schedules", ["property_id"])
        op.create_index("ix_maintenance_schedules_next_due_date", "maintenance_schedules", ["next_due_date"])

    if not _has_table("maintenance_records"):
        op.create_table(
            "maintenance_records",
            _id(),
            _fk("schedule_id", "maintenance_schedules.id", ondelete="CASCADE", nullable=False),
            sa.Column("completed_date", sa.Date(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("actual_duration", sa.Integer(), nullable=True),
            sa.Column("actual_cost", sa.Float(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
            _fk("completed_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_maintenance_records_schedule_id", "maintenance_records", ["schedule_id"])

    # -------------------------
    # Documents
    # -------------------------
    if not _has_table("documents"):
        op.create_table(
            "documents",
            _id(),
            _fk("property_id", "properties.id", ondelete="CASCADE", nullable=True),
            _fk("project_id", "projects.id", ondelete="CASCADE", nullable=True),
            _fk("uploaded_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("document_type", sa.String(length=50), nullable=False, server_default="other"),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("vendor_name", sa.String(length=200), nullable=True),
            sa.Column("amount", sa.Float(), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
            sa.Column("document_date", sa.Date(), nullable=True),
            sa.Column("expiry_date", sa.Date(), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("filename", sa.String(length=255), nullable=False),
            sa.Column("original_filename", sa.String(length=255), nullable=True),
            sa.Column("file_path", sa.String(length=500), nullable=True),
            sa.Column("file_url", sa.String(length=1000), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("mime_type", sa.String(length=120), nullable=True),
            sa.Column("file_hash", sa.String(length=64), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("tags_json", sa.Text(), nullable=True),
            sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.CheckConstraint("property_id IS NOT NULL OR project_id IS NOT NULL", name="ck_documents_has_owner"),
        )
        op.create_index("ix_documents_property_id", "documents", ["property_id"])
        op.create_index("ix_documents_project_id", "documents", ["project_id"])
        op.create_index("ix_documents_hash_scope", "documents", ["file_hash", "property_id", "project_id"])

    if not _has_table("document_access_log"):
        op.create_table(
            "document_access_log",
            _id(),
            _fk("document_id", "documents.id", ondelete="CASCADE", nullable=False),
            _fk("user_id", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("action", sa.String(length=20), nullable=False),
            sa.Column("ip_address", sa.String(length=64), nullable=True),
            sa.Column("user_agent", sa.String(length=500), nullable=True),
            sa.Column("additional_info_json", sa.Text(), nullable=True),
            sa.Column("accessed_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_document_access_log_document_id", "document_access_log", ["document_id"])

    # -------------------------
    # Insurance inventory
    # -------------------------
    if not _has_table("insurance_items"):
        op.create_table(
            "insurance_items",
            _id(),
            _fk("property_id", "properties.id", ondelete="CASCADE", nullable=False),
            _fk("created_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=50), nullable=False),
            sa.Column("subcategory", sa.String(length=100), nullable=True),
            sa.Column("room_location", sa.String(length=100), nullable=True),
            sa.Column("specific_location", sa.String(length=200), nullable=True),
            sa.Column("brand", sa.String(length=100), nullable=True),
            sa.Column("model", sa.String(length=100), nullable=True),
            sa.Column("serial_number", sa.String(length=100), nullable=True),
            sa.Column("condition", sa.String(length=20), nullable=False, server_default="good"),
            sa.Column("purchase_date", sa.Date(), nullable=True),
            sa.Column("purchase_location", sa.String(length=200), nullable=True),
            sa.Column("purchase_price", sa.Float(), nullable=True),
            sa.Column("current_estimated_value", sa.Float(), nullable=True),
            sa.Column("replacement_cost", sa.Float(), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
            sa.Column("last_appraised_date", sa.Date(), nullable=True),
            sa.Column("appraisal_type", sa.String(length=50), nullable=True),
            sa.Column("is_insured", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("insurance_policy_number", sa.String(length=100), nullable=True),
            sa.Column("insurance_coverage_amount", sa.Float(), nullable=True),
            sa.Column("requires_separate_coverage", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("custom_fields_json", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("tags_json", sa.Text(), nullable=True),
            sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.CheckConstraint("priority >= 1 AND priority <= 3", name="ck_insurance_items_priority"),
        )
        op.create_index("ix_insurance_items_property_id", "insurance_items", ["property_id"])

    if not _has_table("insurance_item_photos"):
        op.create_table(
            "insurance_item_photos",
            _id(),
            _fk("item_id", "insurance_items.id", ondelete="CASCADE", nullable=False),
            _fk("uploaded_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("photo_type", sa.String(length=30), nullable=False, server_default="overview"),
            sa.Column("title", sa.String(length=200), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("filename", sa.String(length=255), nullable=False),
            sa.Column("original_filename", sa.String(length=255), nullable=True),
            sa.Column("file_path", sa.String(length=500), nullable=False),
            sa.Column("file_url", sa.String(length=1000), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("mime_type", sa.String(length=120), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("exif_data_json", sa.Text(), nullable=True),
            sa.Column("annotations_json", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_insurance_item_photos_item_id", "insurance_item_photos", ["item_id"])

    if not _has_table("insurance_item_documents"):
        op.create_table(
            "insurance_item_documents",
            _id(),
            _fk("item_id", "insurance_items.id", ondelete="CASCADE", nullable=False),
            _fk("document_id", "documents.id", ondelete="CASCADE", nullable=False),
            sa.Column("relationship_type", sa.String(length=30), nullable=False, server_default="receipt"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("linked_at", sa.DateTime(), nullable=False),
            _fk("linked_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.UniqueConstraint("item_id", "document_id", name="uq_insurance_item_documents_item_document"),
        )
        op.create_index("ix_insurance_item_documents_item_id", "insurance_item_documents", ["item_id"])
        op.create_index("ix_insurance_item_documents_document_id", "insurance_item_documents", ["document_id"])

    if not _has_table("insurance_valuations"):
        op.create_table(
            "insurance_valuations",
            _id(),
            _fk("item_id", "insurance_items.id", ondelete="CASCADE", nullable=False),
            sa.Column("appraised_value", sa.Float(), nullable=False),
            sa.Column("replacement_cost", sa.Float(), nullable=True),
            sa.Column("valuation_date", sa.Date(), nullable=False),
            sa.Column("valuation_type", sa.String(length=30), nullable=False, server_default="self_estimate"),
            sa.Column("appraiser_name", sa.String(length=200), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            _fk("created_by", "users.id", ondelete="SET NULL", nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_insurance_valuations_item_id", "insurance_valuations", ["item_id"])


def downgrade() -> None:
    for name in (
        "insurance_valuations",
        "insurance_item_documents",
        "insurance_item_photos",
        "insurance_items",
        "document_access_log",
        "documents",
        "maintenance_records",
        "maintenance_schedules",
        "task_comments",
        "task_time_tracking",
        "task_dependencies",
        "project_tasks",
        "project_assignments",
        "projects",
        "property_permissions",
        "properties",
        "users",
    ):
        if _has_table(name):
            op.drop_table(name)
