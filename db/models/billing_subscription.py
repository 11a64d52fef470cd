"""
db/models/billing_subscription.py

Mirrored billing-provider subscription, one plan line per row.

``mrr`` is the normalized monthly amount before discounts, in cents.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, OrganizationScopedMixin, TimestampMixin

if TYPE_CHECKING:
    from db.models.billing_customer import BillingCustomer

ACTIVE_STATUSES = ("active", "trialing")


class BillingSubscription(Base, OrganizationScopedMixin, TimestampMixin):
    __tablename__ = "billing_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("billing_customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="active, trialing, past_due, canceled, unpaid, incomplete",
    )

    plan_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    plan_interval: Mapped[str] = mapped_column(String(16), nullable=False, default="month")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    mrr: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    discount_percent: Mapped[float | None] = mapped_column(Float, nullable=True)
    discount_amount_off: Mapped[int | None] = mapped_column(Integer, nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_period_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    stripe_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    customer: Mapped["BillingCustomer"] = relationship(
        "BillingCustomer",
        back_populates="subscriptions",
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "stripe_id",
            name="uq_billing_subscriptions_org_stripe_id",
        ),
        Index("ix_billing_subscriptions_customer_id", "customer_id"),
        Index("ix_billing_subscriptions_org_status", "organization_id", "status"),
        Index(
            "ix_billing_subscriptions_org_cancel_at_period_end",
            "organization_id",
            "cancel_at_period_end",
        ),
    )
