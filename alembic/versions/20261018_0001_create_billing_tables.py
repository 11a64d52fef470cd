"""create organizations, billing mirror and daily_metrics tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

_EVENT_TYPE = postgresql.ENUM(
    "NEW",
    "UPGRADE",
    "DOWNGRADE",
    "CANCELED",
    name="subscription_event_type",
    create_type=False,
)


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _organization_fk(table: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["organization_id"],
        ["organizations.id"],
        name=f"fk_{table}_organization_id_organizations",
        ondelete="CASCADE",
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        _uuid("id", nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
            comment="Inactive organizations are skipped by scheduled jobs",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_organizations"),
    )
    op.create_index("ix_organizations_is_active", "organizations", ["is_active"])

    op.create_table(
        "billing_customers",
        _uuid("id", nullable=False),
        _uuid("organization_id", nullable=False),
        sa.Column("stripe_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("delinquent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("stripe_created_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_billing_customers"),
        _organization_fk("billing_customers"),
        sa.UniqueConstraint(
            "organization_id", "stripe_id", name="uq_billing_customers_org_stripe_id"
        ),
    )
    op.create_index(
        "ix_billing_customers_organization_id", "billing_customers", ["organization_id"]
    )

    op.create_table(
        "billing_subscriptions",
        _uuid("id", nullable=False),
        _uuid("organization_id", nullable=False),
        _uuid("customer_id", nullable=False),
        sa.Column("stripe_id", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="active, trialing, past_due, canceled, unpaid, incomplete",
        ),
        sa.Column("plan_id", sa.String(length=255), nullable=True),
        sa.Column("plan_nickname", sa.String(length=255), nullable=True),
        sa.Column("plan_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("plan_interval", sa.String(length=16), nullable=False, server_default="month"),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("mrr", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discount_percent", sa.Float(), nullable=True),
        sa.Column("discount_amount_off", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stripe_created_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_billing_subscriptions"),
        _organization_fk("billing_subscriptions"),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["billing_customers.id"],
            name="fk_billing_subscriptions_customer_id_billing_customers",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "organization_id", "stripe_id", name="uq_billing_subscriptions_org_stripe_id"
        ),
    )
    op.create_index(
        "ix_billing_subscriptions_organization_id", "billing_subscriptions", ["organization_id"]
    )
    op.create_index(
        "ix_billing_subscriptions_customer_id", "billing_subscriptions", ["customer_id"]
    )
    op.create_index(
        "ix_billing_subscriptions_org_status",
        "billing_subscriptions",
        ["organization_id", "status"],
    )

    op.create_table(
        "billing_payments",
        _uuid("id", nullable=False),
        _uuid("organization_id", nullable=False),
        _uuid("customer_id", nullable=True),
        sa.Column("stripe_id", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="succeeded, failed, pending",
        ),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("stripe_created_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_billing_payments"),
        _organization_fk("billing_payments"),
        sa.ForeignKeyConstraint(
            ["customer_id"],
            ["billing_customers.id"],
            name="fk_billing_payments_customer_id_billing_customers",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "organization_id", "stripe_id", name="uq_billing_payments_org_stripe_id"
        ),
    )
    op.create_index(
        "ix_billing_payments_organization_id", "billing_payments", ["organization_id"]
    )
    op.create_index(
        "ix_billing_payments_org_created",
        "billing_payments",
        ["organization_id", "stripe_created_at"],
    )

    _EVENT_TYPE.create(op.get_bind(), checkfirst=True)
    op.create_table(
        "subscription_events",
        _uuid("id", nullable=False),
        _uuid("organization_id", nullable=False),
        _uuid("subscription_id", nullable=False),
        sa.Column("type", _EVENT_TYPE, nullable=False),
        sa.Column("previous_plan_id", sa.String(length=255), nullable=True),
        sa.Column("previous_plan_nickname", sa.String(length=255), nullable=True),
        sa.Column("new_plan_id", sa.String(length=255), nullable=True),
        sa.Column("new_plan_nickname", sa.String(length=255), nullable=True),
        sa.Column("previous_mrr", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("new_mrr", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("previous_quantity", sa.Integer(), nullable=True),
        sa.Column("new_quantity", sa.Integer(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_subscription_events"),
        _organization_fk("subscription_events"),
        sa.ForeignKeyConstraint(
            ["subscription_id"],
            ["billing_subscriptions.id"],
            name="fk_subscription_events_subscription_id_billing_subscriptions",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_subscription_events_organization_id", "subscription_events", ["organization_id"]
    )
    op.create_index(
        "ix_subscription_events_org_occurred",
        "subscription_events",
        ["organization_id", "occurred_at"],
    )
    op.create_index(
        "ix_subscription_events_org_type", "subscription_events", ["organization_id", "type"]
    )
    op.create_index(
        "ix_subscription_events_subscription_id", "subscription_events", ["subscription_id"]
    )

    op.create_table(
        "daily_metrics",
        _uuid("id", nullable=False),
        _uuid("organization_id", nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("mrr", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("arr", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("arpu", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_subscriptions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("new_subscriptions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("canceled_subscriptions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("upgrades", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downgrades", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gross_churn_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("revenue_churn_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("net_revenue_retention", sa.Float(), nullable=False, server_default="100"),
        sa.Column("successful_payments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_payments", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed_payment_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_payment_volume", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("average_discount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("effective_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("discount_leakage", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "plan_distribution",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Plan display name -> fraction of active subscriptions",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_daily_metrics"),
        _organization_fk("daily_metrics"),
        sa.UniqueConstraint("organization_id", "date", name="uq_daily_metrics_org_date"),
    )
    op.create_index("ix_daily_metrics_organization_id", "daily_metrics", ["organization_id"])


def downgrade() -> None:
    op.drop_index("ix_daily_metrics_organization_id", table_name="daily_metrics")
    op.drop_table("daily_metrics")

    op.drop_index("ix_subscription_events_subscription_id", table_name="subscription_events")
    op.drop_index("ix_subscription_events_org_type", table_name="subscription_events")
    op.drop_index("ix_subscription_events_org_occurred", table_name="subscription_events")
    op.drop_index("ix_subscription_events_organization_id", table_name="subscription_events")
    op.drop_table("subscription_events")
    _EVENT_TYPE.drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_billing_payments_org_created", table_name="billing_payments")
    op.drop_index("ix_billing_payments_organization_id", table_name="billing_payments")
    op.drop_table("billing_payments")

    op.drop_index("ix_billing_subscriptions_org_status", table_name="billing_subscriptions")
    op.drop_index("ix_billing_subscriptions_customer_id", table_name="billing_subscriptions")
    op.drop_index("ix_billing_subscriptions_organization_id", table_name="billing_subscriptions")
    op.drop_table("billing_subscriptions")

    op.drop_index("ix_billing_customers_organization_id", table_name="billing_customers")
    op.drop_table("billing_customers")

    op.drop_index("ix_organizations_is_active", table_name="organizations")
    op.drop_table("organizations")
