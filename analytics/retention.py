"""
analytics/retention.py

Churn-risk ranking and signup-cohort retention.

At-risk customers
-----------------
Three signals, checked in this order; a customer is flagged once, by the
first signal that applies:

downgrade_intent  active subscription set to cancel at period end
                  score = min(100, 0.7 × max(0, 100 - 3 × days until period end)
                                   + min(30, mrr / 1000))
past_due          delinquent customer with a revenue-bearing subscription
                  score = min(100, 70 + min(30, mrr / 1000))
failed_payment    failed payment in the last 30 days, newest first
                  score = min(100, max(30, 80 - 2 × days since failure)
                                   + min(20, mrr / 1000))

Customers without revenue are skipped for the last two signals. The result
is ordered by score, then MRR, both descending.

Cohort retention
----------------
Subscriptions are grouped by the UTC month they were created in. For month
``m`` of a cohort the retained share is the fraction of the cohort still
subscribed at the start of month ``m + 1``.
"""

from __future__ import annotations

import math
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from dateutil.relativedelta import relativedelta

from analytics.formatting import round_half_up
from analytics.types import AtRiskCustomer, CohortRetention, RiskReason

DEFAULT_AT_RISK_LIMIT = 20
FAILED_PAYMENT_LOOKBACK_DAYS = 30
COHORT_MAX_MONTHS = 12

RETAINED_STATUSES = frozenset({"active", "trialing"})
REVENUE_STATUSES = frozenset({"active", "past_due", "trialing"})

UNKNOWN_EMAIL = "Unknown"
_DAY = timedelta(days=1)


@dataclass(frozen=True)
class CancelingSubscriptionFacts:
    customer_id: uuid.UUID
    email: str | None
    mrr: int
    current_period_end: datetime | None
    updated_at: datetime


@dataclass(frozen=True)
class DelinquentCustomerFacts:
    """``since`` is when the customer's subscription last changed."""

    customer_id: uuid.UUID
    email: str | None
    mrr: int
    since: datetime


@dataclass(frozen=True)
class FailedPaymentFacts:
    """``mrr`` belongs to the paying customer's revenue-bearing subscription."""

    customer_id: uuid.UUID
    email: str | None
    mrr: int
    failed_at: datetime


@dataclass(frozen=True)
class CohortSubscriptionFacts:
    created_at: datetime
    status: str
    canceled_at: datetime | None = None
    ended_at: datetime | None = None

    def retained_at(self, moment: datetime) -> bool:
        if self.status in RETAINED_STATUSES:
            return True
        if self.canceled_at is None and self.ended_at is None:
            return True
        return any(t is not None and t > moment for t in (self.canceled_at, self.ended_at))


def _whole_days(delta: timedelta) -> int:
    return math.floor(delta / _DAY)


def _flag(
    customer_id: uuid.UUID,
    email: str | None,
    mrr: int,
    reason: RiskReason,
    score: float,
    days_since_issue: int,
) -> AtRiskCustomer:
    return AtRiskCustomer(
        customer_id=customer_id,
        email=email or UNKNOWN_EMAIL,
        mrr=mrr,
        risk_reason=reason,
        risk_score=min(100, round_half_up(score)),
        days_since_issue=max(0, days_since_issue),
    )


def rank_at_risk_customers(
    *,
    canceling: Iterable[CancelingSubscriptionFacts],
    delinquent: Iterable[DelinquentCustomerFacts],
    failed_payments: Iterable[FailedPaymentFacts],
    now: datetime,
    limit: int = DEFAULT_AT_RISK_LIMIT,
) -> list[AtRiskCustomer]:
    """Highest-risk paying customers first, at most ``limit`` of them."""
    flagged: dict[uuid.UUID, AtRiskCustomer] = {}

    for sub in canceling:
        if sub.customer_id in flagged:
            continue
        period_end = sub.current_period_end or now
        days_until = max(0, _whole_days(period_end - now))
        urgency = max(0, 100 - days_until * 3)
        flagged[sub.customer_id] = _flag(
            sub.customer_id,
            sub.email,
            sub.mrr,
            RiskReason.DOWNGRADE_INTENT,
            urgency * 0.7 + min(30, sub.mrr / 1000),
            _whole_days(now - sub.updated_at),
        )

    for customer in delinquent:
        if customer.customer_id in flagged or customer.mrr <= 0:
            continue
        flagged[customer.customer_id] = _flag(
            customer.customer_id,
            customer.email,
            customer.mrr,
            RiskReason.PAST_DUE,
            70 + min(30, customer.mrr / 1000),
            _whole_days(now - customer.since),
        )

    cutoff = now - timedelta(days=FAILED_PAYMENT_LOOKBACK_DAYS)
    recent = sorted(
        (p for p in failed_payments if p.failed_at >= cutoff),
        key=lambda p: p.failed_at,
        reverse=True,
    )
    for payment in recent:
        if payment.customer_id in flagged or payment.mrr <= 0:
            continue
        days_since = _whole_days(now - payment.failed_at)
        flagged[payment.customer_id] = _flag(
            payment.customer_id,
            payment.email,
            payment.mrr,
            RiskReason.FAILED_PAYMENT,
            max(30, 80 - days_since * 2) + min(20, payment.mrr / 1000),
            days_since,
        )

    ranked = sorted(flagged.values(), key=lambda c: (-c.risk_score, -c.mrr))
    return ranked[:limit]


def cohort_window_start(now: datetime, months: int) -> datetime:
    """UTC midnight on the first day of the oldest of the last ``months`` months."""
    now = now.astimezone(timezone.utc)
    current_month = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    return current_month - relativedelta(months=months - 1)


def build_cohort_retention(
    subscriptions: Iterable[CohortSubscriptionFacts],
    *,
    now: datetime,
    max_months: int = COHORT_MAX_MONTHS,
) -> list[CohortRetention]:
    """Cohorts oldest first; each carries at most ``max_months`` retention columns."""
    now = now.astimezone(timezone.utc)
    cohorts: dict[date, list[CohortSubscriptionFacts]] = defaultdict(list)
    for sub in subscriptions:
        created = sub.created_at.astimezone(timezone.utc)
        cohorts[date(created.year, created.month, 1)].append(sub)

    result: list[CohortRetention] = []
    for cohort_start in sorted(cohorts):
        members = cohorts[cohort_start]
        start_at = datetime.combine(cohort_start, time.min, tzinfo=timezone.utc)
        elapsed = (now.year - cohort_start.year) * 12 + now.month - cohort_start.month

        columns: list[int | None] = [100]
        for m in range(1, min(elapsed, max_months - 1) + 1):
            month_end = start_at + relativedelta(months=m + 1)
            if month_end > now:
                columns.append(None)
                continue
            retained = sum(1 for sub in members if sub.retained_at(month_end))
            columns.append(round_half_up(retained / len(members) * 100))

        result.append(
            CohortRetention(
                cohort=cohort_start.strftime("%b %Y"),
                cohort_start=cohort_start,
                start_count=len(members),
                months=columns,
            )
        )
    return result
