"""
db/models/billing_payment.py

Mirrored billing-provider payment (charge) attempt.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, OrganizationScopedMixin, TimestampMixin


class BillingPayment(Base, OrganizationScopedMixin, TimestampMixin):
    __tablename__ = "billing_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("billing_customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    stripe_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="succeeded, failed, pending",
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    stripe_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "stripe_id",
            name="uq_billing_payments_org_stripe_id",
        ),
        Index("ix_billing_payments_org_created", "organization_id", "stripe_created_at"),
    )
