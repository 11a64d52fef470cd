"""add cancel_at_period_end and current_period_end to billing_subscriptions

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 12:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "billing_subscriptions",
        sa.Column(
            "cancel_at_period_end",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment="Customer scheduled cancellation at current_period_end",
        ),
    )
    op.add_column(
        "billing_subscriptions",
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_billing_subscriptions_org_cancel_at_period_end",
        "billing_subscriptions",
        ["organization_id", "cancel_at_period_end"],
    )
    op.create_index(
        "ix_billing_customers_org_delinquent",
        "billing_customers",
        ["organization_id", "delinquent"],
    )


def downgrade() -> None:
    op.drop_index("ix_billing_customers_org_delinquent", table_name="billing_customers")
    op.drop_index(
        "ix_billing_subscriptions_org_cancel_at_period_end",
        table_name="billing_subscriptions",
    )
    op.drop_column("billing_subscriptions", "current_period_end")
    op.drop_column("billing_subscriptions", "cancel_at_period_end")
