"""
db/repositories/billing_repository.py

Read queries over mirrored billing entities, shaped as inputs for the
daily metrics formulas in ``analytics.daily``.

Every public method issues exactly one SQL statement. No formula logic
lives here.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from analytics.daily import PaymentFacts, SubscriptionFacts
from analytics.types import EventType
from db.models.billing_payment import BillingPayment
from db.models.billing_subscription import ACTIVE_STATUSES, BillingSubscription
from db.models.organization import Organization
from db.models.subscription_event import SubscriptionEvent
from db.repositories.errors import upstream_errors


class BillingRepository:
    """
    Read-only queries over subscriptions, payments and events.

    Time ranges are half-open: ``start <= t < end``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_active_organization_ids(self) -> list[uuid.UUID]:
        stmt = select(Organization.id).where(Organization.is_active.is_(True))
        with upstream_errors("list active organizations"):
            return list(self._session.scalars(stmt).all())

    def active_subscriptions(
        self,
        organization_id: uuid.UUID,
        at: datetime,
    ) -> list[SubscriptionFacts]:
        """Subscriptions active or trialing at ``at``."""
        stmt = select(BillingSubscription).where(
            *self._active_at(organization_id, at)
        )
        with upstream_errors("list active subscriptions"):
            rows = self._session.scalars(stmt).all()
        return [
            SubscriptionFacts(
                mrr=row.mrr,
                plan_amount=row.plan_amount,
                quantity=row.quantity,
                plan_id=row.plan_id,
                plan_nickname=row.plan_nickname,
                plan_interval=row.plan_interval,
                discount_percent=row.discount_percent,
                discount_amount_off=row.discount_amount_off,
            )
            for row in rows
        ]

    def count_active_subscriptions(self, organization_id: uuid.UUID, at: datetime) -> int:
        stmt = select(func.count(BillingSubscription.id)).where(
            *self._active_at(organization_id, at)
        )
        with upstream_errors("count active subscriptions"):
            return int(self._session.scalar(stmt) or 0)

    def count_created_subscriptions(
        self,
        organization_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> int:
        stmt = select(func.count(BillingSubscription.id)).where(
            BillingSubscription.organization_id == organization_id,
            BillingSubscription.stripe_created_at >= start,
            BillingSubscription.stripe_created_at < end,
        )
        with upstream_errors("count new subscriptions"):
            return int(self._session.scalar(stmt) or 0)

    def canceled_subscription_mrrs(
        self,
        organization_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> list[int]:
        """MRR of each subscription canceled within the range."""
        stmt = select(BillingSubscription.mrr).where(
            BillingSubscription.organization_id == organization_id,
            BillingSubscription.canceled_at >= start,
            BillingSubscription.canceled_at < end,
        )
        with upstream_errors("list canceled subscriptions"):
            return [int(mrr) for mrr in self._session.scalars(stmt).all()]

    def count_events(
        self,
        organization_id: uuid.UUID,
        event_type: EventType,
        start: datetime,
        end: datetime,
    ) -> int:
        stmt = select(func.count(SubscriptionEvent.id)).where(
            SubscriptionEvent.organization_id == organization_id,
            SubscriptionEvent.type == event_type,
            SubscriptionEvent.occurred_at >= start,
            SubscriptionEvent.occurred_at < end,
        )
        with upstream_errors("count subscription events"):
            return int(self._session.scalar(stmt) or 0)

    def payments_between(
        self,
        organization_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> list[PaymentFacts]:
        stmt = select(BillingPayment.status, BillingPayment.amount).where(
            BillingPayment.organization_id == organization_id,
            BillingPayment.stripe_created_at >= start,
            BillingPayment.stripe_created_at < end,
        )
        with upstream_errors("list payments"):
            rows = self._session.execute(stmt).all()
        return [PaymentFacts(status=status, amount=amount) for status, amount in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _active_at(organization_id: uuid.UUID, at: datetime) -> tuple:
        return (
            BillingSubscription.organization_id == organization_id,
            BillingSubscription.status.in_(ACTIVE_STATUSES),
            BillingSubscription.start_date <= at,
            or_(BillingSubscription.ended_at.is_(None), BillingSubscription.ended_at > at),
        )
