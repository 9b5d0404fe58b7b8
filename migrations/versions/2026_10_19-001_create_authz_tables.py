"""Create authorization and module provisioning tables

Revision ID: 001_create_authz_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_create_authz_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column(
        "id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # Companies
    op.create_table(
        "companies",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
    )
    op.create_index(op.f("ix_companies_slug"), "companies", ["slug"], unique=True)

    # Users (super-admins may have no company)
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("role", sa.String(20), server_default="user", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_company_id"), "users", ["company_id"], unique=False)

    # Module catalog
    op.create_table(
        "modules",
        _id(),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("module_type", sa.String(20), server_default="add-on", nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("module_classification", sa.String(20), server_default="addon", nullable=False),
        sa.Column("is_core_required", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("default_monthly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("default_per_user_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("classification_changed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("classification_changed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["classification_changed_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_modules_key"), "modules", ["key"], unique=True)

    # Company provisioning
    op.create_table(
        "company_modules",
        _id(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("module_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("enabled_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("enabled_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("per_user_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("users_licensed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("configuration", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["module_id"], ["modules.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["enabled_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("company_id", "module_id", name="uq_company_modules_company_module"),
    )
    op.create_index(op.f("ix_company_modules_company_id"), "company_modules", ["company_id"], unique=False)
    op.create_index(op.f("ix_company_modules_module_id"), "company_modules", ["module_id"], unique=False)

    # User module grants
    op.create_table(
        "user_modules",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("module_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("granted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("granted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["module_id"], ["modules.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["granted_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "user_id", "module_id", "company_id", name="uq_user_modules_user_module_company"
        ),
    )
    op.create_index(op.f("ix_user_modules_user_id"), "user_modules", ["user_id"], unique=False)
    op.create_index("idx_user_modules_company_module", "user_modules", ["company_id", "module_id"])

    # Custom roles
    op.create_table(
        "custom_roles",
        _id(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("based_on_role", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("company_id", "name", name="uq_custom_roles_company_name"),
    )
    op.create_index(op.f("ix_custom_roles_company_id"), "custom_roles", ["company_id"], unique=False)

    op.create_table(
        "custom_role_permissions",
        _id(),
        sa.Column("role_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("permission_key", sa.String(100), nullable=False),
        sa.Column("is_granted", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["custom_roles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("role_id", "permission_key", name="uq_custom_role_permissions_role_key"),
    )
    op.create_index(
        op.f("ix_custom_role_permissions_role_id"), "custom_role_permissions", ["role_id"], unique=False
    )

    # Role templates
    op.create_table(
        "role_templates",
        _id(),
        sa.Column("template_name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_role", sa.String(20), nullable=True),
        sa.Column("base_permissions", postgresql.ARRAY(sa.String(100)), server_default="{}", nullable=False),
        sa.Column("required_modules", postgresql.ARRAY(sa.String(100)), server_default="{}", nullable=False),
        sa.Column("target_use_cases", postgresql.ARRAY(sa.String(255)), server_default="{}", nullable=False),
        sa.Column("is_system_template", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("template_name", name="uq_role_templates_template_name"),
    )

    # Role assignments: exactly one role, at most one active row per (user, company)
    op.create_table(
        "user_role_assignments",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("custom_role_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("system_role", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("assigned_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("superseded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["custom_role_id"], ["custom_roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_by"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "(custom_role_id IS NULL) <> (system_role IS NULL)",
            name="ck_user_role_assignments_one_role",
        ),
    )
    op.create_index(
        op.f("ix_user_role_assignments_user_id"), "user_role_assignments", ["user_id"], unique=False
    )
    op.create_index(
        "uq_user_role_assignments_active",
        "user_role_assignments",
        ["user_id", "company_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # Data permission overrides
    op.create_table(
        "user_data_permissions",
        _id(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("permission_key", sa.String(100), nullable=False),
        sa.Column("is_granted", sa.Boolean(), nullable=False),
        sa.Column("granted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("granted_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["granted_by"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "user_id", "company_id", "permission_key", name="uq_user_data_permissions_user_company_key"
        ),
    )
    op.create_index(
        op.f("ix_user_data_permissions_user_id"), "user_data_permissions", ["user_id"], unique=False
    )

    # Append-only audit trail
    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("subject_type", sa.String(20), nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("before_state", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("after_state", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_audit_logs_actor_id"), "audit_logs", ["actor_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_company_id"), "audit_logs", ["company_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_subject_id"), "audit_logs", ["subject_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_action"), "audit_logs", ["action"], unique=False)
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"], unique=False)
    op.create_index("idx_audit_logs_company_created", "audit_logs", ["company_id", "created_at"])
    op.create_index("idx_audit_logs_action_created", "audit_logs", ["action", "created_at"])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key constraints)
    op.drop_table("audit_logs")
    op.drop_table("user_data_permissions")
    op.drop_table("user_role_assignments")
    op.drop_table("role_templates")
    op.drop_table("custom_role_permissions")
    op.drop_table("custom_roles")
    op.drop_table("user_modules")
    op.drop_table("company_modules")
    op.drop_table("modules")
    op.drop_table("users")
    op.drop_table("companies")
