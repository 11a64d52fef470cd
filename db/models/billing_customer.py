"""
db/models/billing_customer.py

Mirrored billing-provider customer.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, OrganizationScopedMixin, TimestampMixin

if TYPE_CHECKING:
    from db.models.billing_subscription import BillingSubscription


class BillingCustomer(Base, OrganizationScopedMixin, TimestampMixin):
    __tablename__ = "billing_customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    delinquent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stripe_created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    subscriptions: Mapped[list["BillingSubscription"]] = relationship(
        "BillingSubscription",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "stripe_id",
            name="uq_billing_customers_org_stripe_id",
        ),
        Index("ix_billing_customers_org_delinquent", "organization_id", "delinquent"),
    )
