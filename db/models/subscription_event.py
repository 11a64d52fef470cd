"""
db/models/subscription_event.py

Immutable record of one billing-state transition.

Rows are appended by the sync collaborator when it detects a plan or status
change and are never updated. The customer of an event is the customer of
its subscription.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from analytics.types import EventType
from db.base import Base, OrganizationScopedMixin
from db.models.billing_subscription import BillingSubscription


class SubscriptionEvent(Base, OrganizationScopedMixin):
    __tablename__ = "subscription_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("billing_subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[EventType] = mapped_column(
        Enum(EventType, name="subscription_event_type"),
        nullable=False,
    )

    previous_plan_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    previous_plan_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_plan_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    new_plan_nickname: Mapped[str | None] = mapped_column(String(255), nullable=True)

    previous_mrr: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_mrr: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    previous_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    new_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    subscription: Mapped[BillingSubscription] = relationship("BillingSubscription")

    __table_args__ = (
        Index("ix_subscription_events_org_occurred", "organization_id", "occurred_at"),
        Index("ix_subscription_events_org_type", "organization_id", "type"),
        Index("ix_subscription_events_subscription_id", "subscription_id"),
    )
