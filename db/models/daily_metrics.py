"""
db/models/daily_metrics.py

Persisted point-in-time aggregates, one row per organization per calendar day.

The unique constraint on ``(organization_id, date)`` drives upsert semantics:
recomputing a day overwrites its row instead of inserting a duplicate.
"""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Any

from sqlalchemy import BigInteger, Date, DateTime, Float, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, OrganizationScopedMixin

_UPSERT_CONSTRAINT = "uq_daily_metrics_org_date"


class DailyMetrics(Base, OrganizationScopedMixin):
    __tablename__ = "daily_metrics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    mrr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    arr: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    arpu: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    active_subscriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new_subscriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    canceled_subscriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    upgrades: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downgrades: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    gross_churn_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    revenue_churn_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    net_revenue_retention: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)

    successful_payments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_payments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_payment_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_payment_volume: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    average_discount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    effective_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_leakage: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    plan_distribution: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Plan display name -> fraction of active subscriptions",
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "date", name=_UPSERT_CONSTRAINT),
    )
