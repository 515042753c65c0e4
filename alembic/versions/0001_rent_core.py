"""rent core schema: properties, units, tenants, bindings, payments, notifications

Revision ID: 0001_rent_core
Revises:
Create Date: 2026-10-16

"""
from alembic import op
import sqlalchemy as sa


revision = "0001_rent_core"
down_revision = None
branch_labels = None
depends_on = None


PAYMENT_STATUS = ("pending", "late", "partial", "paid")
NOTIFICATION_TYPE = ("rent_due", "rent_late", "receipt", "form_n4", "form_l1")
NOTIFICATION_CHANNEL = ("whatsapp", "email")
NOTIFICATION_STATUS = ("pending", "sent", "failed")


def _timestamps():
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "properties",
        *_timestamps(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("province", sa.String(50), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_properties_id"), "properties", ["id"], unique=False)

    op.create_table(
        "units",
        *_timestamps(),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("unit_number", sa.String(50), nullable=False),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_units_id"), "units", ["id"], unique=False)
    op.create_index(op.f("ix_units_property_id"), "units", ["property_id"], unique=False)

    op.create_table(
        "tenants",
        *_timestamps(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_tenants_id"), "tenants", ["id"], unique=False)

    op.create_table(
        "tenant_units",
        *_timestamps(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("unit_id", sa.Uuid(), nullable=False),
        sa.Column("rent_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("rent_due_day", sa.Integer(), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("lease_start", sa.Date(), nullable=True),
        sa.Column("lease_end", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "unit_id", name="uq_tenant_units_tenant_unit"),
        sa.CheckConstraint("rent_amount IS NULL OR rent_amount >= 0", name="ck_tenant_units_rent_amount"),
        sa.CheckConstraint(
            "rent_due_day IS NULL OR (rent_due_day >= 1 AND rent_due_day <= 31)",
            name="ck_tenant_units_rent_due_day",
        ),
    )
    op.create_index(op.f("ix_tenant_units_id"), "tenant_units", ["id"], unique=False)
    op.create_index(op.f("ix_tenant_units_tenant_id"), "tenant_units", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_tenant_units_unit_id"), "tenant_units", ["unit_id"], unique=False)
    # At most one primary binding per tenant
    op.create_index(
        "uq_tenant_units_one_primary",
        "tenant_units",
        ["tenant_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
        sqlite_where=sa.text("is_primary"),
    )

    op.create_table(
        "rent_payments",
        *_timestamps(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("unit_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("status", sa.Enum(*PAYMENT_STATUS, name="payment_status"), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_link", sa.Text(), nullable=True),
        sa.Column("last_notified_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "unit_id", "period_start", name="uq_rent_payments_period"),
    )
    op.create_index(op.f("ix_rent_payments_id"), "rent_payments", ["id"], unique=False)
    op.create_index(op.f("ix_rent_payments_tenant_id"), "rent_payments", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_rent_payments_unit_id"), "rent_payments", ["unit_id"], unique=False)
    op.create_index(op.f("ix_rent_payments_due_date"), "rent_payments", ["due_date"], unique=False)
    op.create_index(op.f("ix_rent_payments_status"), "rent_payments", ["status"], unique=False)

    op.create_table(
        "notifications",
        *_timestamps(),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("payment_id", sa.Uuid(), nullable=True),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPE, name="notification_type"), nullable=False),
        sa.Column("channel", sa.Enum(*NOTIFICATION_CHANNEL, name="notification_channel"), nullable=False),
        sa.Column("status", sa.Enum(*NOTIFICATION_STATUS, name="notification_status"), nullable=False),
        sa.Column("message_id", sa.String(255), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["payment_id"], ["rent_payments.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_id"), "notifications", ["id"], unique=False)
    op.create_index(op.f("ix_notifications_tenant_id"), "notifications", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_notifications_payment_id"), "notifications", ["payment_id"], unique=False)


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("rent_payments")
    op.drop_index("uq_tenant_units_one_primary", table_name="tenant_units")
    op.drop_table("tenant_units")
    op.drop_table("tenants")
    op.drop_table("units")
    op.drop_table("properties")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in ("notification_status", "notification_channel", "notification_type", "payment_status"):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
