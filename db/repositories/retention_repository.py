"""
db/repositories/retention_repository.py

Read queries feeding churn-risk ranking and cohort retention in
``analytics.retention``.

Every public method issues exactly one SQL statement. Scoring and grouping
happen in the analytics core.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from analytics.retention import (
    REVENUE_STATUSES,
    CancelingSubscriptionFacts,
    CohortSubscriptionFacts,
    DelinquentCustomerFacts,
    FailedPaymentFacts,
)
from db.models.billing_customer import BillingCustomer
from db.models.billing_payment import BillingPayment
from db.models.billing_subscription import BillingSubscription
from db.repositories.errors import upstream_errors

_PAYMENT_FAILED = "failed"


class RetentionRepository:
    """
    Read-only queries over customers, subscriptions and payments.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def canceling_subscriptions(self, organization_id: uuid.UUID) -> list[CancelingSubscriptionFacts]:
        """Active subscriptions scheduled to cancel at the end of their period."""
        stmt = (
            select(
                BillingSubscription.customer_id,
                BillingCustomer.email,
                BillingSubscription.mrr,
                BillingSubscription.current_period_end,
                BillingSubscription.updated_at,
            )
            .join(BillingCustomer, BillingCustomer.id == BillingSubscription.customer_id)
            .where(
                BillingSubscription.organization_id == organization_id,
                BillingSubscription.status == "active",
                BillingSubscription.cancel_at_period_end.is_(True),
            )
        )
        with upstream_errors("list canceling subscriptions"):
            rows = self._session.execute(stmt).all()
        return [
            CancelingSubscriptionFacts(
                customer_id=customer_id,
                email=email,
                mrr=mrr,
                current_period_end=period_end,
                updated_at=updated_at,
            )
            for customer_id, email, mrr, period_end, updated_at in rows
        ]

    def delinquent_customers(self, organization_id: uuid.UUID) -> list[DelinquentCustomerFacts]:
        """
        Delinquent customers with their most recent revenue-bearing
        subscription; customers without one carry ``mrr=0``.
        """
        stmt = (
            select(
                BillingCustomer.id,
                BillingCustomer.email,
                BillingCustomer.created_at,
                BillingSubscription.mrr,
                BillingSubscription.updated_at,
            )
            .outerjoin(
                BillingSubscription,
                and_(
                    BillingSubscription.customer_id == BillingCustomer.id,
                    BillingSubscription.status.in_(REVENUE_STATUSES),
                ),
            )
            .where(
                BillingCustomer.organization_id == organization_id,
                BillingCustomer.delinquent.is_(True),
            )
            .order_by(BillingCustomer.id, BillingSubscription.stripe_created_at.desc())
        )
        with upstream_errors("list delinquent customers"):
            rows = self._session.execute(stmt).all()

        facts: dict[uuid.UUID, DelinquentCustomerFacts] = {}
        for customer_id, email, created_at, mrr, updated_at in rows:
            if customer_id in facts:
                continue
            facts[customer_id] = DelinquentCustomerFacts(
                customer_id=customer_id,
                email=email,
                mrr=mrr or 0,
                since=updated_at or created_at,
            )
        return list(facts.values())

    def failed_payments_since(
        self,
        organization_id: uuid.UUID,
        since: datetime,
    ) -> list[FailedPaymentFacts]:
        """
        Failed payments at or after ``since``, newest first, each with the
        payer's revenue-bearing subscription MRR (0 when there is none).
        Payments without a known customer are left out.
        """
        stmt = (
            select(
                BillingPayment.id,
                BillingPayment.customer_id,
                BillingCustomer.email,
                BillingPayment.stripe_created_at,
                BillingSubscription.mrr,
            )
            .join(BillingCustomer, BillingCustomer.id == BillingPayment.customer_id)
            .outerjoin(
                BillingSubscription,
                and_(
                    BillingSubscription.customer_id == BillingCustomer.id,
                    BillingSubscription.status.in_(REVENUE_STATUSES),
                ),
            )
            .where(
                BillingPayment.organization_id == organization_id,
                BillingPayment.status == _PAYMENT_FAILED,
                BillingPayment.stripe_created_at >= since,
            )
            .order_by(
                BillingPayment.stripe_created_at.desc(),
                BillingPayment.id,
                BillingSubscription.stripe_created_at.desc(),
            )
        )
        with upstream_errors("list failed payments"):
            rows = self._session.execute(stmt).all()

        facts: dict[uuid.UUID, FailedPaymentFacts] = {}
        for payment_id, customer_id, email, failed_at, mrr in rows:
            if payment_id in facts:
                continue
            facts[payment_id] = FailedPaymentFacts(
                customer_id=customer_id,
                email=email,
                mrr=mrr or 0,
                failed_at=failed_at,
            )
        return list(facts.values())

    def subscriptions_created_since(
        self,
        organization_id: uuid.UUID,
        since: datetime,
    ) -> list[CohortSubscriptionFacts]:
        stmt = select(
            BillingSubscription.stripe_created_at,
            BillingSubscription.status,
            BillingSubscription.canceled_at,
            BillingSubscription.ended_at,
        ).where(
            BillingSubscription.organization_id == organization_id,
            BillingSubscription.stripe_created_at >= since,
        )
        with upstream_errors("list subscriptions for cohorts"):
            rows = self._session.execute(stmt).all()
        return [
            CohortSubscriptionFacts(
                created_at=created_at,
                status=status,
                canceled_at=canceled_at,
                ended_at=ended_at,
            )
            for created_at, status, canceled_at, ended_at in rows
        ]
