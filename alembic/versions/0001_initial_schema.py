"""initial schema: organizations, users, templates, inspections, locks, audit

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_organizations_id", "organizations", ["id"])
    op.create_index("ix_organizations_name", "organizations", ["name"])

    op.create_table(
        "areas",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_areas_id", "areas", ["id"])
    op.create_index("ix_areas_organization_id", "areas", ["organization_id"])

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("areas.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_departments_id", "departments", ["id"])
    op.create_index("ix_departments_organization_id", "departments", ["organization_id"])
    op.create_index("ix_departments_area_id", "departments", ["area_id"])
    op.create_index("ix_departments_org_area", "departments", ["organization_id", "area_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("areas.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("departments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('SUPER_ADMIN', 'ADMIN', 'MINI_ADMIN', 'INSPECTOR')",
            name="ck_users_role_allowed",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("ix_users_area_id", "users", ["area_id"])
    op.create_index("ix_users_department_id", "users", ["department_id"])
    op.create_index("ix_users_org_role_dept", "users", ["organization_id", "role", "department_id"])

    op.create_table(
        "templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("departments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("frequency_days", sa.Integer(), nullable=False, server_default="30"),
        *_timestamps(),
        sa.CheckConstraint("frequency_days > 0", name="ck_templates_frequency_positive"),
    )
    op.create_index("ix_templates_id", "templates", ["id"])
    op.create_index("ix_templates_name", "templates", ["name"])
    op.create_index("ix_templates_organization_id", "templates", ["organization_id"])
    op.create_index("ix_templates_department_id", "templates", ["department_id"])

    op.create_table(
        "checklist_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("qr_code_id", sa.String(64), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_checklist_items_id", "checklist_items", ["id"])
    op.create_index("ix_checklist_items_template_id", "checklist_items", ["template_id"])
    op.create_index("ix_checklist_items_qr_code_id", "checklist_items", ["qr_code_id"], unique=True)

    op.create_table(
        "inspection_instances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("inspector_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("departments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('PENDING', 'IN_PROGRESS', 'COMPLETED')",
            name="ck_inspection_instances_status_allowed",
        ),
    )
    op.create_index("ix_inspection_instances_id", "inspection_instances", ["id"])
    op.create_index("ix_inspection_instances_template_id", "inspection_instances", ["template_id"])
    op.create_index("ix_inspection_instances_inspector_id", "inspection_instances", ["inspector_id"])
    op.create_index("ix_inspection_instances_department_id", "inspection_instances", ["department_id"])
    op.create_index("ix_inspection_instances_due_date", "inspection_instances", ["due_date"])
    op.create_index("ix_inspection_instances_status", "inspection_instances", ["status"])
    op.create_index("ix_inspections_template_status", "inspection_instances", ["template_id", "status"])
    op.create_index("ix_inspections_inspector_status", "inspection_instances", ["inspector_id", "status"])
    op.create_index(
        "ix_inspections_template_completed", "inspection_instances", ["template_id", "completed_at"]
    )

    op.create_table(
        "inspection_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "inspection_id",
            sa.Integer(),
            sa.ForeignKey("inspection_instances.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inspection_reports_id", "inspection_reports", ["id"])

    op.create_table(
        "report_item_results",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("inspection_reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "checklist_item_id",
            sa.Integer(),
            sa.ForeignKey("checklist_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("checklist_item_id", "report_id", name="uq_report_item_result"),
    )
    op.create_index("ix_report_item_results_id", "report_item_results", ["id"])
    op.create_index("ix_report_item_results_report_id", "report_item_results", ["report_id"])
    op.create_index(
        "ix_report_item_results_checklist_item_id", "report_item_results", ["checklist_item_id"]
    )

    op.create_table(
        "scheduler_locks",
        sa.Column("name", sa.String(100), primary_key=True),
        sa.Column("holder", sa.String(64), nullable=False),
        sa.Column("acquired_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_scheduler_locks_expires_at", "scheduler_locks", ["expires_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=True),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("meta", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_organization_id", "audit_logs", ["organization_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade():
    for table in (
        "audit_logs",
        "scheduler_locks",
        "report_item_results",
        "inspection_reports",
        "inspection_instances",
        "checklist_items",
        "templates",
        "users",
        "departments",
        "areas",
        "organizations",
    ):
        op.drop_table(table)
