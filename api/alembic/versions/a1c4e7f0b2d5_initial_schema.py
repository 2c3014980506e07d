"""initial_schema

Revision ID: a1c4e7f0b2d5
Revises:
Create Date: 2026-10-19

Users, properties (with manager/tenant associations), spending configs,
tenant payments and monthly reports. One monthly report per
(property_id, report_month); one payment per (tenant, property, month).
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "a1c4e7f0b2d5"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="tenant"),  # admin | property_manager | tenant
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("monthly_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "properties",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    for table in ("property_managers", "property_tenants"):
        op.create_table(
            table,
            sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.PrimaryKeyConstraint("property_id", "user_id"),
            sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        )

    op.create_table(
        "spending_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_spending_configs_created_by_user_id", "spending_configs", ["created_by_user_id"])

    op.create_table(
        "property_spending_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("spending_config_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["spending_config_id"], ["spending_configs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("property_id", "spending_config_id", name="uq_property_spending_config"),
    )
    op.create_index("ix_property_spending_configs_property_id", "property_spending_configs", ["property_id"])

    op.create_table(
        "tenant_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payment_month", sa.Date(), nullable=False),  # always day 1
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),  # pending | paid | overdue
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "property_id", "payment_month", name="uq_tenant_property_month"),
        sa.CheckConstraint("amount >= 0", name="ck_tenant_payments_amount_non_negative"),
    )
    op.create_index("ix_tenant_payments_tenant_id", "tenant_payments", ["tenant_id"])
    op.create_index("ix_tenant_payments_property_id", "tenant_payments", ["property_id"])
    op.create_index("ix_tenant_payments_payment_month", "tenant_payments", ["payment_month"])
    op.create_index("ix_tenant_payments_status", "tenant_payments", ["status"])

    op.create_table(
        "monthly_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("report_month", sa.Date(), nullable=False),  # first day of the month
        sa.Column("generated_by_user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("total_budget", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_tenants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("paid_tenants", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pending_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(
            "spending_breakdown",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["generated_by_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("property_id", "report_month", name="uq_monthly_reports_property_month"),
    )
    op.create_index("ix_monthly_reports_property_id", "monthly_reports", ["property_id"])
    op.create_index("ix_monthly_reports_report_month", "monthly_reports", ["report_month"])
    op.create_index("ix_monthly_reports_generated_by_user_id", "monthly_reports", ["generated_by_user_id"])


def downgrade() -> None:
    op.drop_table("monthly_reports")
    op.drop_table("tenant_payments")
    op.drop_table("property_spending_configs")
    op.drop_table("spending_configs")
    op.drop_table("property_tenants")
    op.drop_table("property_managers")
    op.drop_table("properties")
    op.drop_index("ix_users_email", "users")
    op.drop_table("users")
