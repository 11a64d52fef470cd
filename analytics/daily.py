"""
analytics/daily.py

Daily metrics snapshot formulas.

Expected inputs
---------------
active_subscriptions : list[SubscriptionFacts]
    Subscriptions active or trialing on the target day.
new_subscriptions, canceled_subscriptions : int
    Subscriptions created / canceled during the target day.
upgrades, downgrades : int
    UPGRADE / DOWNGRADE events during the target day.
previous_active_subscriptions : int
    Active subscriptions at the end of the previous month.
canceled_this_month : list[int]
    MRR of every subscription canceled during the target month.
previous_mrr : int
    MRR of the latest snapshot on or before the previous month end.
payments : list[PaymentFacts]
    Payments created during the target day.

Formulas
--------
Effective MRR   = mrr × (1 - pct/100)            (percent discount)
                = max(0, mrr - amount_off[/12])  (amount-off discount)
MRR             = Σ effective MRR
ARR             = MRR × 12
ARPU            = MRR / active
Gross churn     = canceled this month / previous active × 100
Revenue churn   = Σ canceled MRR / previous MRR × 100
NRR             = MRR / previous MRR × 100 (100 without a baseline)

Division-by-zero cases return 0 (or 100 for NRR).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from analytics.formatting import round_half_up
from analytics.types import UNKNOWN_PLAN, MetricsSnapshot

PAYMENT_SUCCEEDED = "succeeded"
PAYMENT_FAILED = "failed"


@dataclass(frozen=True)
class SubscriptionFacts:
    mrr: int
    plan_amount: int
    quantity: int = 1
    plan_id: str | None = None
    plan_nickname: str | None = None
    plan_interval: str = "month"
    discount_percent: float | None = None
    discount_amount_off: int | None = None

    @property
    def plan_name(self) -> str:
        return self.plan_nickname or self.plan_id or UNKNOWN_PLAN

    @property
    def is_discounted(self) -> bool:
        return bool(self.discount_percent) or bool(self.discount_amount_off)


@dataclass(frozen=True)
class PaymentFacts:
    status: str
    amount: int


@dataclass(frozen=True)
class DailyMetricsInput:
    target_date: date
    active_subscriptions: Sequence[SubscriptionFacts] = ()
    new_subscriptions: int = 0
    canceled_subscriptions: int = 0
    upgrades: int = 0
    downgrades: int = 0
    previous_active_subscriptions: int = 0
    canceled_this_month: Sequence[int] = field(default_factory=tuple)
    previous_mrr: int = 0
    payments: Sequence[PaymentFacts] = ()


def compute_daily_metrics(data: DailyMetricsInput) -> MetricsSnapshot:
    """Compute one day's snapshot from pre-fetched billing facts."""
    subscriptions = list(data.active_subscriptions)
    active = len(subscriptions)

    mrr = sum(_effective_mrr(s) for s in subscriptions)
    arpu = round_half_up(mrr / active) if active else 0

    churned = len(data.canceled_this_month)
    gross_churn = _percent(churned, data.previous_active_subscriptions)
    revenue_churn = _percent(sum(data.canceled_this_month), data.previous_mrr)
    nrr = (mrr / data.previous_mrr) * 100 if data.previous_mrr > 0 else 100.0

    succeeded = [p for p in data.payments if p.status == PAYMENT_SUCCEEDED]
    failed = [p for p in data.payments if p.status == PAYMENT_FAILED]

    list_total = sum(s.plan_amount * s.quantity for s in subscriptions)
    actual_total = sum(_discounted_list_price(s) for s in subscriptions)

    return MetricsSnapshot(
        date=data.target_date,
        mrr=mrr,
        arr=mrr * 12,
        arpu=arpu,
        active_subscriptions=active,
        new_subscriptions=data.new_subscriptions,
        canceled_subscriptions=data.canceled_subscriptions,
        upgrades=data.upgrades,
        downgrades=data.downgrades,
        gross_churn_rate=gross_churn,
        revenue_churn_rate=revenue_churn,
        net_revenue_retention=nrr,
        successful_payments=len(succeeded),
        failed_payments=len(failed),
        failed_payment_rate=_percent(len(failed), len(data.payments)),
        total_payment_volume=sum(p.amount for p in succeeded),
        average_discount=_average_discount(subscriptions),
        effective_price=round_half_up(actual_total / active) if active else 0,
        discount_leakage=list_total - actual_total,
        plan_distribution=plan_distribution(subscriptions),
    )


def plan_distribution(subscriptions: Sequence[SubscriptionFacts]) -> dict[str, float]:
    """Fraction of active subscriptions per plan display name."""
    if not subscriptions:
        return {}
    counts = Counter(s.plan_name for s in subscriptions)
    total = len(subscriptions)
    return {plan: count / total for plan, count in counts.items()}


# ---------------------------------------------------------------------------
# Pure formula helpers
# ---------------------------------------------------------------------------


def _effective_mrr(sub: SubscriptionFacts) -> int:
    if sub.discount_percent:
        return round_half_up(sub.mrr * (1 - sub.discount_percent / 100))
    if sub.discount_amount_off:
        monthly = (
            round_half_up(sub.discount_amount_off / 12)
            if sub.plan_interval == "year"
            else sub.discount_amount_off
        )
        return max(0, sub.mrr - monthly)
    return sub.mrr


def _discounted_list_price(sub: SubscriptionFacts) -> int:
    price = sub.plan_amount * sub.quantity
    if sub.discount_percent:
        return round_half_up(price * (1 - sub.discount_percent / 100))
    if sub.discount_amount_off:
        return max(0, price - sub.discount_amount_off)
    return price


def _average_discount(subscriptions: Sequence[SubscriptionFacts]) -> float:
    discounted = [s for s in subscriptions if s.is_discounted]
    if not discounted:
        return 0.0
    total = 0.0
    for sub in discounted:
        if sub.discount_percent:
            total += sub.discount_percent
        elif sub.discount_amount_off and sub.plan_amount > 0:
            total += (sub.discount_amount_off / sub.plan_amount) * 100
    return total / len(discounted)


def _percent(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return (numerator / denominator) * 100
